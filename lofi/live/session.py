"""
Processing session: one primary track, an optional ambient loop, one settings value.

The session owns the live graph (pulled by the output callback through pull())
and launches offline renders of the same chain. Transport positions are in
seconds of the processed timeline (buffer seconds / playback rate).

Thread model: an RLock serializes control calls against the audio callback.
Offline renders run in a worker thread on a snapshot of asset, settings and
impulse; only one render may be in flight.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
import asyncio
import logging
import threading
import time

import torch

from lofi.core.config import EngineConfig
from lofi.core.errors import RenderBusyError
from lofi.core.io import AudioIO
from lofi.core.types import AudioAsset
from lofi.dsp.graph import LofiGraph, build_graph, primary_source, ambient_source, render_block
from lofi.dsp.impulse import generate_impulse_response
from lofi.dsp.source import BufferSource
from lofi.live.transport import TransportClock, PlaybackState
from lofi.params.mapper import EffectCoefficients, map_settings, clamp
from lofi.params.settings import EffectsSettings, resolve_settings
from lofi.render.offline import OfflineRenderer

logger = logging.getLogger(__name__)


@dataclass
class Playback:
    """One-shot playback instance: the primary reader plus the ambient loop started with it."""
    primary: BufferSource
    ambient: Optional[BufferSource] = None

    def stop(self) -> None:
        self.primary.stop()
        if self.ambient is not None:
            self.ambient.stop()


class LofiSession:
    def __init__(self, config: Optional[EngineConfig] = None, clock=time.monotonic):
        self.config = config or EngineConfig.from_env()
        self._clock = clock
        self._lock = threading.RLock()
        self._renderer = OfflineRenderer(self.config.render_block_size)
        self._render_in_flight = False

        self._asset: Optional[AudioAsset] = None
        self._ambient: Optional[AudioAsset] = None
        self._impulse: Optional[torch.Tensor] = None
        self._graph: Optional[LofiGraph] = None
        self._transport: Optional[TransportClock] = None

        self._settings = EffectsSettings()
        self._coefficients = map_settings(self._settings)
        self._volume = clamp(self.config.volume, 0.0, 1.0)
        self._ambient_volume = clamp(self.config.ambient_volume, 0.0, 1.0)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._asset is not None

    @property
    def asset(self) -> Optional[AudioAsset]:
        return self._asset

    @property
    def settings(self) -> EffectsSettings:
        return self._settings

    @property
    def coefficients(self) -> EffectCoefficients:
        return self._coefficients

    @property
    def state(self) -> PlaybackState:
        if self._transport is None:
            return PlaybackState.IDLE
        return self._transport.state

    def _timeline_duration(self) -> float:
        return self._asset.duration / self._coefficients.playback_rate

    def load_primary(self, asset: AudioAsset) -> None:
        """Install a decoded track. Replaces (and stops) any previous one."""
        with self._lock:
            if self._transport is not None:
                self._transport.stop()
            self._asset = asset
            # One reverb tail per asset, shared by preview and render
            self._impulse = generate_impulse_response(asset.sample_rate, asset.channels, seed=self.config.ir_seed)
            self._graph = build_graph(
                asset,
                self._coefficients,
                self._impulse,
                analysis=True,
                main_gain=self._volume,
                partition_size=self.config.block_size,
            )
            self._transport = TransportClock(self._start_playback, self._clock, duration=self._timeline_duration())
        logger.info("Loaded primary: %d ch, %d Hz, %.2fs", asset.channels, asset.sample_rate, asset.duration)

    def load_primary_bytes(self, data: bytes) -> AudioAsset:
        """Decode and install. DecodeError propagates; the session is left unchanged."""
        asset = AudioIO.decode(data)
        self.load_primary(asset)
        return asset

    def load_ambient_asset(self, asset: Optional[AudioAsset]) -> None:
        """Install (or with None, remove) the ambient loop. Applies to the running playback too."""
        with self._lock:
            self._ambient = asset
            if self._transport is not None and self._transport.playback is not None:
                playback = self._transport.playback
                if playback.ambient is not None:
                    playback.ambient.stop()
                playback.ambient = ambient_source(asset, self._asset.sample_rate)

    async def load_ambient(self, url: Optional[str]) -> Optional[AudioAsset]:
        """
        Fetch and decode an ambient loop. Failures are logged and leave the session
        without ambient audio; they never affect the primary track.
        """
        if not url:
            self.load_ambient_asset(None)
            return None
        try:
            data = await asyncio.to_thread(AudioIO.fetch, url, self.config.fetch_timeout)
            asset = await asyncio.to_thread(AudioIO.decode, data)
        except Exception as e:
            logger.warning("Ambient audio unavailable (%s): %s", url, e)
            self.load_ambient_asset(None)
            return None
        self.load_ambient_asset(asset)
        logger.info("Loaded ambient loop from %s (%.2fs)", url, asset.duration)
        return asset

    # ------------------------------------------------------------------
    # Settings and levels
    # ------------------------------------------------------------------

    def set_effects(self, settings: Union[EffectsSettings, Dict[str, Any]]) -> EffectsSettings:
        """
        Replace the settings. Takes effect immediately on the live graph.
        A playback-rate change keeps the same spot in the track.
        """
        if not isinstance(settings, EffectsSettings):
            settings = resolve_settings(settings)
        with self._lock:
            old_rate = self._coefficients.playback_rate
            self._settings = settings
            self._coefficients = map_settings(settings)
            if self._graph is None:
                return settings
            self._graph.apply(self._coefficients)

            new_rate = self._coefficients.playback_rate
            transport = self._transport
            if new_rate != old_rate:
                position = transport.current_time() * old_rate / new_rate
                transport.duration = self._timeline_duration()
                if transport.state is not PlaybackState.IDLE:
                    transport.seek_to(position)
        logger.debug("Effects set: %s", settings)
        return settings

    def set_volume(self, volume: float) -> None:
        with self._lock:
            self._volume = clamp(volume, 0.0, 1.0)
            if self._graph is not None:
                self._graph.main_gain = self._volume

    def set_ambient_volume(self, volume: float) -> None:
        with self._lock:
            self._ambient_volume = clamp(volume, 0.0, 1.0)

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def ambient_volume(self) -> float:
        return self._ambient_volume

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _start_playback(self, offset_seconds: float) -> Playback:
        rate = self._coefficients.playback_rate
        return Playback(
            primary=primary_source(self._asset, self._coefficients, offset_seconds * rate),
            ambient=ambient_source(self._ambient, self._asset.sample_rate),
        )

    def play(self, offset: Optional[float] = None) -> None:
        with self._lock:
            if self._transport is None:
                logger.debug("play() without a loaded track; ignored")
                return
            self._transport.play(offset)

    def pause(self) -> None:
        with self._lock:
            if self._transport is not None:
                self._transport.pause()

    def seek_to(self, t: float) -> None:
        with self._lock:
            if self._transport is None:
                logger.debug("seek_to() without a loaded track; ignored")
                return
            self._transport.seek_to(t)

    def current_time(self) -> float:
        with self._lock:
            if self._transport is None:
                return 0.0
            return self._transport.current_time()

    def duration(self) -> float:
        with self._lock:
            return self._timeline_duration() if self._asset is not None else 0.0

    def is_playing(self) -> bool:
        with self._lock:
            return self._transport is not None and self._transport.is_playing

    # ------------------------------------------------------------------
    # Live output
    # ------------------------------------------------------------------

    @property
    def output_channels(self) -> int:
        return self._asset.channels if self._asset is not None else 2

    @property
    def output_sample_rate(self) -> Optional[int]:
        return self._asset.sample_rate if self._asset is not None else None

    def pull(self, frames: int) -> torch.Tensor:
        """Next block for the output device: float32 [channels, frames]; silence unless playing."""
        with self._lock:
            if self._transport is None or not self._transport.is_playing:
                return torch.zeros(self.output_channels, frames, dtype=torch.float32)
            playback = self._transport.playback
            block = render_block(self._graph, playback.primary, frames, playback.ambient, self._ambient_volume)
            if playback.primary.finished:
                self._transport.finish()
            return block.to(torch.float32)

    def analysis_frame(self) -> Optional[bytes]:
        """Byte magnitudes (0-255) per frequency bin while playing, else None."""
        with self._lock:
            if self._graph is None or not self.is_playing():
                return None
            return self._graph.analysis_frame()

    # ------------------------------------------------------------------
    # Offline render
    # ------------------------------------------------------------------

    @property
    def rendering(self) -> bool:
        return self._render_in_flight

    async def render_artifact(self) -> Optional[bytes]:
        """
        Render the whole track with the current settings and return WAV bytes.
        None when nothing is loaded or the render fails. Raises RenderBusyError
        if another render of this session is still running.
        """
        with self._lock:
            if self._render_in_flight:
                raise RenderBusyError("a render is already in progress")
            if self._asset is None:
                logger.debug("render_artifact() without a loaded track")
                return None
            asset, settings, impulse = self._asset, self._settings, self._impulse
            ambient, ambient_gain = self._ambient, self._ambient_volume
            self._render_in_flight = True
        try:
            return await asyncio.to_thread(
                self._renderer.render_wav,
                asset,
                settings,
                impulse=impulse,
                ambient=ambient,
                ambient_gain=ambient_gain,
            )
        finally:
            with self._lock:
                self._render_in_flight = False

    def close(self) -> None:
        with self._lock:
            if self._transport is not None:
                self._transport.stop()
            self._transport = None
            self._graph = None
            self._asset = None
            self._ambient = None
            self._impulse = None
