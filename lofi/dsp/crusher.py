"""
Bit crusher applied to the finished offline render.
intensity = lowpass / 100. Below 0.2 nothing changes; above it, low-order bits of
the 16-bit sample are masked off and samples are held to lower the effective rate.
"""
import math

import torch

IDENTITY_BELOW = 0.2
FULL_SCALE = 32767.0


def crush_parameters(intensity: float) -> tuple[int, int]:
    """(bit_reduction 0..4, sample_reduction >= 1) for an intensity in [0, 1]."""
    intensity = min(max(float(intensity), 0.0), 1.0)
    bit_reduction = min(4, max(0, int(math.floor((intensity - IDENTITY_BELOW) * 5))))
    sample_reduction = max(1, int(math.floor(intensity * 4)))
    return bit_reduction, sample_reduction


class BitCrusher:
    @staticmethod
    def process(samples: torch.Tensor, intensity: float) -> torch.Tensor:
        """samples: [channels, frames] float. Returns a new tensor of the same shape."""
        if intensity < IDENTITY_BELOW:
            return samples
        bit_reduction, sample_reduction = crush_parameters(intensity)
        n = samples.shape[-1]
        if n == 0:
            return samples

        # Only every Nth sample is quantized; the rest hold the last computed value
        held_index = (torch.arange(n) // sample_reduction) * sample_reduction
        picked = samples[..., held_index].to(torch.float64)

        quantized = torch.round(torch.clamp(picked, -1.0, 1.0) * FULL_SCALE).to(torch.int32)
        mask = ~((1 << bit_reduction) - 1)
        masked = torch.bitwise_and(quantized, mask)
        return (masked.to(torch.float64) / FULL_SCALE).to(samples.dtype)
