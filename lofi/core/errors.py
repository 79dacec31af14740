"""
Exception types raised across the engine.
"""


class LofiError(Exception):
    """Base class for engine errors."""


class DecodeError(LofiError):
    """Raw bytes could not be decoded into PCM."""


class InvalidSettingsError(LofiError, ValueError):
    """Effects settings outside the accepted wire shape."""


class RenderBusyError(LofiError):
    """An offline render is already in flight for this session."""
