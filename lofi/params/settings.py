"""
Effects settings: the three slider values that drive the whole chain.
Wire shape is a flat object of bounded integers; missing keys fall back to the
defaults the effects panel starts with.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict
import logging

from lofi.core.config import is_dev
from lofi.core.errors import InvalidSettingsError

logger = logging.getLogger(__name__)

DEV = is_dev()

# Slider bounds (inclusive)
SETTINGS_BOUNDS = {
    "slowdown": (70, 100),
    "reverb": (0, 100),
    "lowpass": (0, 100),
}

DEFAULT_SETTINGS = {
    "slowdown": 85,  # 85% of original speed
    "reverb": 30,
    "lowpass": 50,
}


@dataclass(frozen=True)
class EffectsSettings:
    slowdown: int = DEFAULT_SETTINGS["slowdown"]
    reverb: int = DEFAULT_SETTINGS["reverb"]
    lowpass: int = DEFAULT_SETTINGS["lowpass"]

    def __post_init__(self):
        for name, (lo, hi) in SETTINGS_BOUNDS.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidSettingsError(f"{name} must be an integer, got {value!r}")
            if not lo <= value <= hi:
                raise InvalidSettingsError(f"{name}={value} outside [{lo}, {hi}]")

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _coerce_int(name: str, value: Any) -> int:
    """Accept ints and integral floats (JSON numbers); reject everything else."""
    if isinstance(value, bool):
        raise InvalidSettingsError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise InvalidSettingsError(f"{name} must be an integer, got {value!r}")


def resolve_settings(raw: Dict[str, Any] = None) -> EffectsSettings:
    """
    Build EffectsSettings from a wire object.
    Missing keys take DEFAULT_SETTINGS; unknown keys are dropped (warned about in dev mode).
    Raises InvalidSettingsError for non-integer or out-of-range values.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise InvalidSettingsError(f"settings must be an object, got {type(raw).__name__}")
    unknown = sorted(k for k in raw if k not in SETTINGS_BOUNDS)
    if unknown:
        if DEV:
            logger.warning("Unknown settings keys ignored: %s", unknown)
        else:
            logger.debug("Unknown settings keys ignored: %s", unknown)
    merged = dict(DEFAULT_SETTINGS)
    for key in SETTINGS_BOUNDS:
        if key in raw:
            merged[key] = _coerce_int(key, raw[key])
    return EffectsSettings(**merged)
