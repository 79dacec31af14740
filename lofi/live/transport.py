"""
Transport clock: playback position across play / pause / seek.

Playback instances are one-shot: every play() asks the factory for a fresh one
and every pause() discards it. Position while playing is derived from the host
clock and an anchor (clock time at which position 0 would have started).
Callers serialize transport calls; the clock is not thread-safe on its own.
"""
from enum import Enum
from typing import Any, Callable, Optional
import logging
import time

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class TransportClock:
    def __init__(
        self,
        playback_factory: Callable[[float], Any],
        clock: Callable[[], float] = time.monotonic,
        duration: Optional[float] = None,
    ):
        """
        playback_factory(offset_seconds) -> playback instance with a stop() method.
        duration: timeline length in seconds; positions are clamped to it when set.
        """
        self._factory = playback_factory
        self._clock = clock
        self.duration = duration
        self.state = PlaybackState.IDLE
        self.playback = None
        self._anchor = 0.0
        self._paused_position = 0.0

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    def _clamp(self, t: float) -> float:
        t = max(0.0, float(t))
        if self.duration is not None:
            t = min(t, self.duration)
        return t

    def _discard_playback(self) -> None:
        if self.playback is not None:
            self.playback.stop()
            self.playback = None

    def play(self, offset: Optional[float] = None) -> None:
        """Start from offset (seconds), or resume from the paused position when None."""
        if self.state is PlaybackState.PLAYING:
            logger.debug("play() ignored: already playing")
            return
        start = self._clamp(self._paused_position if offset is None else offset)
        self.playback = self._factory(start)
        self._anchor = self._clock() - start
        self.state = PlaybackState.PLAYING

    def pause(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self._paused_position = self._clamp(self._clock() - self._anchor)
        self._discard_playback()
        self.state = PlaybackState.PAUSED

    def seek_to(self, t: float) -> None:
        was_playing = self.state is PlaybackState.PLAYING
        if was_playing:
            self.pause()
        self._paused_position = self._clamp(t)
        if was_playing:
            self.play(self._paused_position)
        else:
            self.state = PlaybackState.PAUSED

    def finish(self) -> None:
        """The one-shot instance ran out: park at the end of the timeline."""
        if self.state is not PlaybackState.PLAYING:
            return
        self._discard_playback()
        end = self.duration if self.duration is not None else self._clock() - self._anchor
        self._paused_position = self._clamp(end)
        self.state = PlaybackState.PAUSED

    def stop(self) -> None:
        """Back to IDLE at position 0 (session teardown)."""
        self._discard_playback()
        self._paused_position = 0.0
        self.state = PlaybackState.IDLE

    def current_time(self) -> float:
        if self.state is PlaybackState.PLAYING:
            return self._clamp(self._clock() - self._anchor)
        return self._paused_position
