"""
One-shot buffer source: reads a decoded buffer at a playback rate.
A source is never restarted; starting playback again means building a new one.
"""
from typing import Optional
import math

import torch

from lofi.dsp.filters import DTYPE


class BufferSource:
    """
    Linear-interpolating reader over samples [channels, frames].

    rate < 1 slows playback (and lowers pitch), stretching the output.
    Read positions are computed from the start offset and the number of frames
    already produced, never accumulated, so block sizes do not affect the output.
    """

    def __init__(self, samples: torch.Tensor, rate: float = 1.0, offset_frames: float = 0.0, loop: bool = False):
        if rate <= 0:
            raise ValueError(f"playback rate must be positive, got {rate}")
        self.samples = samples
        self.rate = float(rate)
        self.loop = bool(loop)
        self.start = max(0.0, float(offset_frames))
        self.produced = 0
        self.stopped = False

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def length(self) -> int:
        return int(self.samples.shape[-1])

    @property
    def position(self) -> float:
        """Current read position in source frames."""
        return self.start + self.produced * self.rate

    @property
    def finished(self) -> bool:
        if self.stopped:
            return True
        if self.loop:
            return self.length == 0
        return self.position >= self.length

    def remaining_output_frames(self) -> Optional[int]:
        """Output frames left before the end of the buffer; None for a loop, which never ends."""
        if self.loop:
            return None
        if self.stopped:
            return 0
        return max(0, int(math.ceil((self.length - self.position) / self.rate)))

    def stop(self) -> None:
        self.stopped = True

    def read(self, frames: int) -> torch.Tensor:
        """Next `frames` output frames as float64 [channels, frames]; silence past the end."""
        out = torch.zeros(self.channels, frames, dtype=DTYPE)
        if frames <= 0 or self.finished:
            self.produced += max(0, frames)
            return out

        steps = torch.arange(self.produced, self.produced + frames, dtype=DTYPE)
        pos = self.start + steps * self.rate
        self.produced += frames

        length = self.length
        if self.loop:
            pos = torch.remainder(pos, length)
            valid = torch.ones_like(pos, dtype=torch.bool)
        else:
            valid = pos < length

        i0 = torch.floor(pos).long()
        frac = pos - i0.to(DTYPE)
        if self.loop:
            i1 = (i0 + 1) % length
        else:
            i1 = i0 + 1

        i0c = torch.clamp(i0, 0, length - 1)
        i1c = torch.clamp(i1, 0, length - 1)
        x0 = self.samples[:, i0c].to(DTYPE)
        x1 = self.samples[:, i1c].to(DTYPE)
        if not self.loop:
            x1 = torch.where(i1 < length, x1, torch.zeros_like(x1))
        y = x0 * (1.0 - frac) + x1 * frac
        out[:, valid] = y[:, valid]
        return out
