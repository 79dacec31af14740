"""
Tests for lofi/dsp/source: one-shot buffer reader (rate, offset, end, loop).
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
import torch
from lofi.dsp.source import BufferSource


def _ramp(frames=10, channels=1):
    return torch.arange(frames, dtype=torch.float32).unsqueeze(0).repeat(channels, 1)


def test_unit_rate_reads_samples():
    src = BufferSource(_ramp())
    assert src.read(5)[0].tolist() == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert src.read(3)[0].tolist() == [5.0, 6.0, 7.0]


def test_half_rate_interpolates():
    src = BufferSource(_ramp(), rate=0.5)
    assert src.read(5)[0].tolist() == pytest.approx([0.0, 0.5, 1.0, 1.5, 2.0])


def test_offset_in_frames():
    src = BufferSource(_ramp(), offset_frames=4)
    assert src.read(2)[0].tolist() == [4.0, 5.0]


def test_silence_after_end():
    src = BufferSource(_ramp(4))
    out = src.read(6)[0].tolist()
    assert out[:3] == [0.0, 1.0, 2.0]
    assert out[4:] == [0.0, 0.0]
    assert src.finished


def test_loop_wraps():
    src = BufferSource(torch.tensor([[1.0, 2.0, 3.0]]), loop=True)
    assert src.read(7)[0].tolist() == [1.0, 2.0, 3.0, 1.0, 2.0, 3.0, 1.0]
    assert not src.finished


def test_block_size_does_not_change_output():
    data = torch.rand(2, 500)
    a = BufferSource(data, rate=0.85)
    b = BufferSource(data, rate=0.85)
    whole = a.read(580)
    parts = torch.cat([b.read(n) for n in (1, 64, 200, 315)], dim=-1)
    assert torch.equal(whole, parts)


def test_stopped_source_is_silent():
    src = BufferSource(_ramp())
    src.stop()
    assert src.finished
    assert torch.count_nonzero(src.read(4)) == 0


def test_remaining_output_frames():
    src = BufferSource(_ramp(100), rate=0.5)
    assert src.remaining_output_frames() == 200
    src.read(50)
    assert src.remaining_output_frames() == 150
    assert BufferSource(_ramp(100), loop=True).remaining_output_frames() is None
    src.stop()
    assert src.remaining_output_frames() == 0


def test_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        BufferSource(_ramp(), rate=0.0)
