"""
Procedural reverb tail: exponentially decaying uniform noise, one channel per
output channel. Approximates a small room without loading a recorded response.
"""
from typing import Optional

import torch

TAIL_SECONDS = 2.0
DECAY_BASE = 0.8
DECAY_STEP_SECONDS = 0.2  # envelope drops by DECAY_BASE every 200 ms


def decay_envelope(sample_rate: int, length: int) -> torch.Tensor:
    i = torch.arange(length, dtype=torch.float64)
    return torch.pow(torch.tensor(DECAY_BASE, dtype=torch.float64), i / (sample_rate * DECAY_STEP_SECONDS))


def generate_impulse_response(
    sample_rate: int,
    channels: int = 2,
    seed: Optional[int] = None,
) -> torch.Tensor:
    """
    Returns float32 [channels, 2 * sample_rate] with values in [-1, 1].
    A seed makes the tail reproducible; without one every call differs
    (same statistical envelope).
    """
    length = int(TAIL_SECONDS * sample_rate)
    generator = None
    if seed is not None:
        generator = torch.Generator().manual_seed(int(seed))
    noise = torch.rand(channels, length, generator=generator, dtype=torch.float64) * 2.0 - 1.0
    return (noise * decay_envelope(sample_rate, length)).to(torch.float32)
