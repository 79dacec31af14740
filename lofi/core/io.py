import io
import logging
import urllib.request

import numpy as np
import soundfile as sf
import torch

from lofi.core.errors import DecodeError
from lofi.core.types import AudioAsset

logger = logging.getLogger(__name__)


class AudioIO:
    @staticmethod
    def decode(data: bytes) -> AudioAsset:
        """
        Decode a complete audio file (any container libsndfile reads) into an AudioAsset.
        Raises DecodeError on unreadable or empty input.
        """
        if not data:
            raise DecodeError("no audio data")
        try:
            pcm, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (sf.SoundFileError, RuntimeError) as e:
            raise DecodeError(f"could not decode audio: {e}") from e
        if pcm.shape[0] == 0:
            raise DecodeError("decoded audio has no frames")
        # soundfile is [frames, channels]; the engine works on [channels, frames]
        samples = torch.from_numpy(np.ascontiguousarray(pcm.T))
        logger.debug("Decoded %d ch x %d frames @ %d Hz", samples.shape[0], samples.shape[1], sample_rate)
        return AudioAsset(samples=samples, sample_rate=int(sample_rate))

    @staticmethod
    def load(path: str) -> AudioAsset:
        """Decode a file on disk."""
        with open(path, "rb") as f:
            return AudioIO.decode(f.read())

    @staticmethod
    def fetch(url: str, timeout: float = 15.0) -> bytes:
        """Download a remote resource. Network errors propagate to the caller."""
        with urllib.request.urlopen(url, timeout=timeout) as response:
            return response.read()

    @staticmethod
    def from_numpy(data: np.ndarray, sample_rate: int) -> AudioAsset:
        """Wrap float PCM ([frames] or [channels, frames]) as an AudioAsset."""
        arr = np.asarray(data, dtype=np.float32)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]
        return AudioAsset(samples=torch.from_numpy(np.ascontiguousarray(arr)), sample_rate=int(sample_rate))
