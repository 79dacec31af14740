"""
Tests for lofi/export/wav: canonical header layout, sample scaling, interleaving, round-trip.
"""
import sys
import os
import io
import struct

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import soundfile as sf
import torch
from lofi.core.types import RenderedArtifact
from lofi.export.wav import encode_wav, save_wav, HEADER_SIZE


def _artifact(samples, sr=44100):
    return RenderedArtifact(samples=torch.tensor(samples, dtype=torch.float32), sample_rate=sr)


# -----------------------------------------------------------------------------
# Header
# -----------------------------------------------------------------------------

def test_header_fields():
    art = _artifact(np.zeros((2, 10)), sr=48000)
    data = encode_wav(art)
    fields = struct.unpack("<4sI4s4sIHHIIHH4sI", data[:HEADER_SIZE])
    assert fields == (
        b"RIFF", 36 + 40, b"WAVE", b"fmt ", 16, 1, 2, 48000, 48000 * 4, 4, 16, b"data", 40,
    )
    assert len(data) == 44 + 10 * 2 * 2


def test_mono_header():
    data = encode_wav(_artifact(np.zeros((1, 7)), sr=22050))
    channels, sr, byte_rate, align, bits = struct.unpack("<HIIHH", data[22:36])
    assert (channels, sr, byte_rate, align, bits) == (1, 22050, 44100, 2, 16)


def test_data_chunk_follows_fmt_directly():
    rng = np.random.default_rng(3)
    art = _artifact(rng.uniform(-1.0, 1.0, size=(2, 3000)))
    data = encode_wav(art)
    assert data[36:40] == b"data"
    assert struct.unpack("<I", data[40:44])[0] == 3000 * 2 * 2
    assert len(data) == HEADER_SIZE + 3000 * 2 * 2


# -----------------------------------------------------------------------------
# Samples
# -----------------------------------------------------------------------------

def test_scaling_and_clamping():
    data = encode_wav(_artifact([[0.0, 1.0, -1.0, 2.0, -3.0, 0.5, -0.5]]))
    values = np.frombuffer(data[HEADER_SIZE:], dtype="<i2").tolist()
    assert values == [0, 32767, -32768, 32767, -32768, 16383, -16384]


def test_interleaved_frames():
    data = encode_wav(_artifact([[0.5, 0.25], [-0.5, -0.25]]))
    values = np.frombuffer(data[HEADER_SIZE:], dtype="<i2").tolist()
    assert values == [16383, -16384, 8191, -8192]


def test_round_trip_within_one_step():
    rng = np.random.default_rng(7)
    original = rng.uniform(-1.0, 1.0, size=(2, 5000)).astype(np.float32)
    data = encode_wav(_artifact(original, sr=16000))

    decoded, sr = sf.read(io.BytesIO(data), dtype="int16", always_2d=True)
    assert sr == 16000
    ints = decoded.T.astype(np.float64)
    restored = np.where(ints < 0, ints / 32768.0, ints / 32767.0)
    assert np.max(np.abs(restored - original.astype(np.float64))) <= 1.0 / 32767


def test_save_wav(tmp_path):
    path = tmp_path / "out.wav"
    art = _artifact(np.zeros((2, 100)))
    save_wav(art, str(path))
    assert path.read_bytes() == encode_wav(art)
