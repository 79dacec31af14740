"""
Offline (non-real-time) render of the full lofi chain.

1. Output length = round(frames * 100 / slowdown)
2. Build the effect graph (no analysis tap, unity main gain)
3. Loop the ambient track underneath for the whole stretched duration
4. Pull the graph block by block until the output is full
5. Bit crush
6. Encode (render_wav)

Any failure is logged and reported as None; nothing is raised to the caller.
"""
from typing import Optional
import logging
import time

import torch

from lofi.core.types import AudioAsset, RenderedArtifact
from lofi.dsp.crusher import BitCrusher
from lofi.dsp.graph import build_graph, primary_source, ambient_source, render_block
from lofi.dsp.impulse import generate_impulse_response
from lofi.export.wav import encode_wav
from lofi.params.mapper import map_settings, render_frames
from lofi.params.settings import EffectsSettings

logger = logging.getLogger(__name__)

DEFAULT_RENDER_BLOCK = 65536
MAX_PARTITION = 16384  # reverb partition cap for offline passes


class OfflineRenderer:
    def __init__(self, block_size: int = DEFAULT_RENDER_BLOCK):
        self.block_size = max(1, int(block_size))

    def _render(
        self,
        asset: AudioAsset,
        settings: EffectsSettings,
        impulse: Optional[torch.Tensor],
        ambient: Optional[AudioAsset],
        ambient_gain: float,
        seed: Optional[int],
    ) -> RenderedArtifact:
        coefficients = map_settings(settings)
        out_frames = render_frames(asset.frames, settings.slowdown)
        if impulse is None:
            impulse = generate_impulse_response(asset.sample_rate, asset.channels, seed=seed)

        graph = build_graph(
            asset,
            coefficients,
            impulse,
            analysis=False,
            main_gain=1.0,
            partition_size=min(self.block_size, MAX_PARTITION),
        )
        source = primary_source(asset, coefficients)
        loop = ambient_source(ambient, asset.sample_rate)

        out = torch.zeros(asset.channels, out_frames, dtype=torch.float32)
        for start in range(0, out_frames, self.block_size):
            n = min(self.block_size, out_frames - start)
            out[:, start:start + n] = render_block(graph, source, n, loop, ambient_gain).to(torch.float32)

        crushed = BitCrusher.process(out, coefficients.crush_intensity)
        return RenderedArtifact(samples=crushed, sample_rate=asset.sample_rate)

    def render(
        self,
        asset: AudioAsset,
        settings: EffectsSettings,
        impulse: Optional[torch.Tensor] = None,
        ambient: Optional[AudioAsset] = None,
        ambient_gain: float = 0.0,
        seed: Optional[int] = None,
    ) -> Optional[RenderedArtifact]:
        """
        Render the processed track. impulse: reverb tail to reuse (generated when None).
        Returns None if any stage fails.
        """
        started = time.perf_counter()
        try:
            artifact = self._render(asset, settings, impulse, ambient, ambient_gain, seed)
        except Exception:
            logger.exception("Offline render failed (settings=%s)", settings)
            return None
        logger.info(
            "Rendered %d frames (%.2fs) in %.2fs, settings=%s",
            artifact.frames,
            artifact.duration,
            time.perf_counter() - started,
            settings.to_dict(),
        )
        return artifact

    def render_wav(self, *args, **kwargs) -> Optional[bytes]:
        """render() followed by WAV encoding; None if either fails."""
        artifact = self.render(*args, **kwargs)
        if artifact is None:
            return None
        try:
            return encode_wav(artifact)
        except Exception:
            logger.exception("WAV encoding failed")
            return None
