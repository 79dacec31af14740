"""
Effects settings and their mapping to DSP coefficients.
"""
from lofi.params.settings import EffectsSettings, DEFAULT_SETTINGS, resolve_settings
from lofi.params.mapper import EffectCoefficients, map_settings, render_frames

__all__ = [
    "EffectsSettings",
    "DEFAULT_SETTINGS",
    "resolve_settings",
    "EffectCoefficients",
    "map_settings",
    "render_frames",
]
