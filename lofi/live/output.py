"""
Real-time output via sounddevice.
A single output stream at the track's sample rate; the callback pulls the
session one block at a time.
"""
import logging

import numpy as np
import sounddevice as sd

from lofi.live.session import LofiSession

logger = logging.getLogger(__name__)


class LiveOutput:
    def __init__(self, session: LofiSession, block_size: int = 512, device=None):
        self.session = session
        self.block_size = int(block_size)
        self.device = device
        self._stream = None

    @property
    def running(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        if self._stream is not None:
            return
        sample_rate = self.session.output_sample_rate
        if sample_rate is None:
            raise RuntimeError("no track loaded")
        channels = self.session.output_channels

        def _cb(outdata, frames, time_info, status):
            if status:
                logger.debug("Output stream status: %s", status)
            block = self.session.pull(frames).numpy()  # [channels, frames]
            outdata[:] = np.clip(block, -1.0, 1.0).T

        self._stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            blocksize=self.block_size,
            device=self.device,
            callback=_cb,
        )
        self._stream.start()
        logger.info("Output stream started: %d ch @ %d Hz, block %d", channels, sample_rate, self.block_size)

    def stop(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
