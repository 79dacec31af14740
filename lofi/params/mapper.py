"""
Slider-to-coefficient mapping shared by the live graph and the offline render.
Every DSP value in the chain comes from here; neither graph computes its own.
Inputs are clamped to slider range and outputs to their documented range, so a
value reused outside the validated settings path still maps safely.
"""
from dataclasses import dataclass, asdict
from typing import Dict, Optional
import math

from lofi.params.settings import EffectsSettings

LOWPASS_MIN_HZ = 100.0
LOWPASS_MAX_HZ = 20000.0
HIGHPASS_MIN_HZ = 20.0
HIGHPASS_SPAN_HZ = 200.0
WET_CEILING = 0.6  # wet path never exceeds 60% so reverb cannot bury the source


def clamp(value: float, min: Optional[float] = None, max: Optional[float] = None) -> float:
    """Clamp value to [min, max]; a None bound is open."""
    v = float(value)
    if min is not None and v < min:
        return float(min)
    if max is not None and v > max:
        return float(max)
    return v


def _pct(value: float) -> float:
    return clamp(value, 0.0, 100.0)


def lowpass_frequency(lowpass: float) -> float:
    """0% -> 20 kHz (open), 100% -> 100 Hz (fully muffled)."""
    hz = LOWPASS_MIN_HZ + (LOWPASS_MAX_HZ - LOWPASS_MIN_HZ) * ((100.0 - _pct(lowpass)) / 100.0)
    return clamp(hz, LOWPASS_MIN_HZ, LOWPASS_MAX_HZ)


def lowpass_q(lowpass: float) -> float:
    return clamp(1.0 + (_pct(lowpass) / 100.0) * 5.0, 1.0, 6.0)


def highpass_frequency(lowpass: float) -> float:
    """Companion high-pass that narrows the band as the low-pass closes."""
    hz = HIGHPASS_MIN_HZ + (_pct(lowpass) / 100.0) * HIGHPASS_SPAN_HZ
    return clamp(hz, HIGHPASS_MIN_HZ, HIGHPASS_MIN_HZ + HIGHPASS_SPAN_HZ)


def average_intensity(lowpass: float, reverb: float) -> float:
    return clamp((_pct(lowpass) + _pct(reverb)) / 200.0, 0.0, 1.0)


def compressor_threshold(lowpass: float, reverb: float) -> float:
    """Threshold in dB: -24 at rest down to -36 at full intensity."""
    return clamp(-24.0 - average_intensity(lowpass, reverb) * 12.0, -36.0, -24.0)


def compressor_ratio(lowpass: float, reverb: float) -> float:
    return clamp(4.0 + average_intensity(lowpass, reverb) * 8.0, 4.0, 12.0)


def dry_gain(reverb: float) -> float:
    return clamp(1.0 - _pct(reverb) / 100.0, 0.0, 1.0)


def wet_gain(reverb: float) -> float:
    return clamp((_pct(reverb) / 100.0) * WET_CEILING, 0.0, WET_CEILING)


def playback_rate(slowdown: float) -> float:
    return clamp(float(slowdown) / 100.0, 0.7, 1.0)


def crush_intensity(lowpass: float) -> float:
    return clamp(_pct(lowpass) / 100.0, 0.0, 1.0)


@dataclass(frozen=True)
class EffectCoefficients:
    lowpass_hz: float
    lowpass_q: float
    highpass_hz: float
    avg_intensity: float
    compressor_threshold_db: float
    compressor_ratio: float
    dry_gain: float
    wet_gain: float
    playback_rate: float
    crush_intensity: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def map_settings(settings: EffectsSettings) -> EffectCoefficients:
    """Map one EffectsSettings value to the full coefficient set."""
    lp, rv = settings.lowpass, settings.reverb
    return EffectCoefficients(
        lowpass_hz=lowpass_frequency(lp),
        lowpass_q=lowpass_q(lp),
        highpass_hz=highpass_frequency(lp),
        avg_intensity=average_intensity(lp, rv),
        compressor_threshold_db=compressor_threshold(lp, rv),
        compressor_ratio=compressor_ratio(lp, rv),
        dry_gain=dry_gain(rv),
        wet_gain=wet_gain(rv),
        playback_rate=playback_rate(settings.slowdown),
        crush_intensity=crush_intensity(lp),
    )


def render_frames(input_frames: int, slowdown: int) -> int:
    """Offline output length: slowing the playback rate stretches duration by 100/slowdown."""
    return int(math.floor(input_frames * 100.0 / clamp(slowdown, 70, 100) + 0.5))
