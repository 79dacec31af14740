"""
16-bit PCM WAV encoder.
Samples are clamped to [-1, 1]; negatives scale by 32768 and the rest by 32767,
then truncate toward zero, so -1.0 and 1.0 both land exactly on the int16 limits.
soundfile writes the canonical 44-byte RIFF header and interleaved frames.
"""
import io

import numpy as np
import soundfile as sf

from lofi.core.types import RenderedArtifact

HEADER_SIZE = 44


def to_pcm16(samples: np.ndarray) -> np.ndarray:
    """float [channels, frames] -> int16 [channels, frames]."""
    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.trunc(scaled).astype(np.int16)


def encode_wav(artifact: RenderedArtifact) -> bytes:
    data = artifact.samples.detach().cpu().numpy()
    if data.ndim == 1:
        data = data[np.newaxis, :]
    pcm = to_pcm16(data)

    buffer = io.BytesIO()
    # soundfile expects [frames, channels]
    sf.write(buffer, pcm.T, artifact.sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def save_wav(artifact: RenderedArtifact, path: str) -> None:
    with open(path, "wb") as f:
        f.write(encode_wav(artifact))
