"""
The lofi effect chain, shared by live playback and offline rendering.

    source -> high-pass -> low-pass -> compressor -> split
      dry -> dry gain --------------------------> mix
      wet -> convolution(IR) -> wet gain -------> mix
    mix -> main gain -> [analysis tap, live only] -> output
    ambient loop -> ambient gain -> output (added, no effects)

Both execution modes build this graph from the same EffectCoefficients and
pull it through render_block(); only the block size differs.
"""
from typing import Optional
import logging

import torch

from lofi.core.types import AudioAsset
from lofi.dsp.analyser import Analyser
from lofi.dsp.convolution import ConvolutionReverb, DEFAULT_PARTITION
from lofi.dsp.filters import Biquad, Compressor, DTYPE
from lofi.dsp.mixer import Bus
from lofi.dsp.source import BufferSource
from lofi.params.mapper import EffectCoefficients

logger = logging.getLogger(__name__)

HIGHPASS_Q = 0.707


class LofiGraph:
    """
    Stateful effect chain for one channel layout and sample rate.
    apply() retunes every stage in place without clearing filter or reverb state.
    """

    def __init__(
        self,
        channels: int,
        sample_rate: int,
        impulse: torch.Tensor,
        coefficients: EffectCoefficients,
        analysis: bool = False,
        main_gain: float = 1.0,
        partition_size: int = DEFAULT_PARTITION,
    ):
        self.channels = int(channels)
        self.sample_rate = int(sample_rate)
        self.highpass = Biquad("highpass", sample_rate, channels, coefficients.highpass_hz, HIGHPASS_Q)
        self.lowpass = Biquad("lowpass", sample_rate, channels, coefficients.lowpass_hz, coefficients.lowpass_q)
        self.compressor = Compressor(
            sample_rate,
            threshold_db=coefficients.compressor_threshold_db,
            ratio=coefficients.compressor_ratio,
        )
        self.reverb = ConvolutionReverb(impulse, channels, partition_size=partition_size)
        self.analyser: Optional[Analyser] = Analyser() if analysis else None
        self.main_gain = float(main_gain)
        self._mix = Bus(channels)
        self.apply(coefficients)

    def apply(self, coefficients: EffectCoefficients) -> None:
        self.coefficients = coefficients
        self.highpass.set_params(coefficients.highpass_hz, HIGHPASS_Q)
        self.lowpass.set_params(coefficients.lowpass_hz, coefficients.lowpass_q)
        self.compressor.set_params(coefficients.compressor_threshold_db, coefficients.compressor_ratio)
        self.dry_gain = coefficients.dry_gain
        self.wet_gain = coefficients.wet_gain

    def reset(self) -> None:
        self.highpass.reset()
        self.lowpass.reset()
        self.compressor.reset()
        self.reverb.reset()
        if self.analyser is not None:
            self.analyser.reset()

    def process(self, block: torch.Tensor) -> torch.Tensor:
        """[channels, n] in, [channels, n] float64 out."""
        n = block.shape[-1]
        x = self.highpass.process(block.to(DTYPE))
        x = self.lowpass.process(x)
        x = self.compressor.process(x)
        # Convolver runs at any wet gain; its tail carries across blocks
        wet = self.reverb.process(x)

        self._mix.clear()
        self._mix.add("dry", x, gain=self.dry_gain)
        self._mix.add("wet", wet, gain=self.wet_gain)
        out = self._mix.mix(n) * self.main_gain

        if self.analyser is not None:
            self.analyser.process(out)
        return out

    def analysis_frame(self) -> Optional[bytes]:
        if self.analyser is None:
            return None
        return self.analyser.byte_frequency_data()


def build_graph(
    asset: AudioAsset,
    coefficients: EffectCoefficients,
    impulse: torch.Tensor,
    analysis: bool = False,
    main_gain: float = 1.0,
    partition_size: int = DEFAULT_PARTITION,
) -> LofiGraph:
    """partition_size: reverb FFT partition; match it to the block size the graph is pulled with."""
    logger.debug(
        "Building %s graph: %d ch @ %d Hz, partition %d, coefficients=%s",
        "live" if analysis else "offline",
        asset.channels,
        asset.sample_rate,
        partition_size,
        coefficients,
    )
    return LofiGraph(
        asset.channels,
        asset.sample_rate,
        impulse,
        coefficients,
        analysis=analysis,
        main_gain=main_gain,
        partition_size=partition_size,
    )


def primary_source(asset: AudioAsset, coefficients: EffectCoefficients, offset_seconds: float = 0.0) -> BufferSource:
    """One-shot reader for the main track. offset_seconds is in buffer time."""
    return BufferSource(
        asset.samples,
        rate=coefficients.playback_rate,
        offset_frames=offset_seconds * asset.sample_rate,
    )


def ambient_source(ambient: Optional[AudioAsset], sample_rate: int) -> Optional[BufferSource]:
    """Looping reader for the ambient track, resampled to the output rate at natural speed."""
    if ambient is None or ambient.frames == 0:
        return None
    return BufferSource(ambient.samples, rate=ambient.sample_rate / float(sample_rate), loop=True)


def render_block(
    graph: LofiGraph,
    source: BufferSource,
    frames: int,
    ambient: Optional[BufferSource] = None,
    ambient_gain: float = 0.0,
) -> torch.Tensor:
    """Pull `frames` output frames: effect chain on the source, plus the ambient loop."""
    out = graph.process(source.read(frames))
    if ambient is None:
        return out
    bus = Bus(graph.channels)
    bus.add("main", out)
    bus.add("ambient", ambient.read(frames), gain=ambient_gain)
    return bus.mix(frames)
