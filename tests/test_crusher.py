"""
Tests for lofi/dsp/crusher: identity region, bit masking, sample-and-hold.
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
import torch
from lofi.dsp.crusher import BitCrusher, crush_parameters


def _signal(frames=1000, channels=2, seed=0):
    g = torch.Generator().manual_seed(seed)
    return torch.rand(channels, frames, generator=g) * 1.6 - 0.8


@pytest.mark.parametrize("lowpass", range(0, 20))
def test_identity_below_twenty_percent(lowpass):
    x = _signal()
    out = BitCrusher.process(x, lowpass / 100.0)
    assert torch.equal(out, x)


@pytest.mark.parametrize("intensity,expected", [
    (0.2, (0, 1)),
    (0.25, (0, 1)),
    (0.5, (1, 2)),
    (0.75, (2, 3)),
    (1.0, (4, 4)),
])
def test_crush_parameters(intensity, expected):
    assert crush_parameters(intensity) == expected


def test_output_same_shape():
    x = _signal(frames=1234, channels=2)
    assert BitCrusher.process(x, 0.9).shape == x.shape


def test_sample_and_hold():
    x = _signal(frames=400)
    out = BitCrusher.process(x, 1.0)  # hold every 4 samples
    for start in range(0, 400, 4):
        block = out[:, start:start + 4]
        assert torch.all(block == block[:, :1])


def test_low_bits_masked():
    x = _signal(frames=500)
    out = BitCrusher.process(x, 1.0)  # 4 low bits cleared
    q = torch.round(out.to(torch.float64) * 32767.0).to(torch.int64)
    assert torch.all(q % 16 == 0)


def test_channels_independent():
    x = _signal(frames=200, channels=2)
    both = BitCrusher.process(x, 0.8)
    left = BitCrusher.process(x[:1], 0.8)
    assert torch.equal(both[:1], left)


def test_mild_crush_stays_close():
    x = _signal(frames=200)
    out = BitCrusher.process(x, 0.2)  # 16-bit quantize only
    assert torch.allclose(out, x, atol=1.0 / 32767)
