"""
Stateful filter stages built on torchaudio's IIR implementation.
All stages process [channels, frames] blocks and carry their state across calls,
so splitting a signal into blocks does not change the result. Processing is
float64 internally.
"""
import math

import torch
import torchaudio.functional as F

DTYPE = torch.float64


def _zero_input_response(a: torch.Tensor, z1: torch.Tensor, z2: torch.Tensor, n: int) -> torch.Tensor:
    """
    Output of the biquad for zero input, starting from transposed-DF2 state (z1, z2).
    Equivalent to the impulse response of (b=[z1, z2, 0], a), one filter per channel.
    """
    channels = z1.shape[0]
    delta = torch.zeros(channels, n, dtype=DTYPE)
    delta[:, 0] = 1.0
    b_state = torch.stack([z1, z2, torch.zeros_like(z1)], dim=-1)
    a_state = a.unsqueeze(0).expand(channels, 3).contiguous()
    return F.lfilter(delta, a_state, b_state, clamp=False, batching=True)


class Biquad:
    """
    Second-order low/high-pass section (RBJ cookbook coefficients, minimum-phase IIR).
    Cutoff is kept under Nyquist.
    """

    def __init__(self, kind: str, sample_rate: int, channels: int, cutoff_hz: float, q: float = 0.707):
        if kind not in ("lowpass", "highpass"):
            raise ValueError(f"unsupported biquad kind: {kind}")
        self.kind = kind
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.b = torch.zeros(3, dtype=DTYPE)
        self.a = torch.zeros(3, dtype=DTYPE)
        self.set_params(cutoff_hz, q)
        self.reset()

    def set_params(self, cutoff_hz: float, q: float) -> None:
        """Retune in place; filter state is kept."""
        cutoff_hz = min(float(cutoff_hz), self.sample_rate / 2 - 1)
        self.cutoff_hz = cutoff_hz
        self.q = float(q)
        w0 = 2.0 * math.pi * cutoff_hz / self.sample_rate
        cos_w0 = math.cos(w0)
        alpha = math.sin(w0) / (2.0 * self.q)
        if self.kind == "lowpass":
            b0 = (1.0 - cos_w0) / 2.0
            b1 = 1.0 - cos_w0
        else:
            b0 = (1.0 + cos_w0) / 2.0
            b1 = -(1.0 + cos_w0)
        b2 = b0
        a0 = 1.0 + alpha
        a1 = -2.0 * cos_w0
        a2 = 1.0 - alpha
        self.b = torch.tensor([b0 / a0, b1 / a0, b2 / a0], dtype=DTYPE)
        self.a = torch.tensor([1.0, a1 / a0, a2 / a0], dtype=DTYPE)

    def reset(self) -> None:
        self.z1 = torch.zeros(self.channels, dtype=DTYPE)
        self.z2 = torch.zeros(self.channels, dtype=DTYPE)

    def process(self, x: torch.Tensor) -> torch.Tensor:
        n = x.shape[-1]
        if n == 0:
            return x
        x = x.to(DTYPE)
        y = F.lfilter(x, self.a, self.b, clamp=False)
        y = y + _zero_input_response(self.a, self.z1, self.z2, n)

        b0, b1, b2 = self.b.tolist()
        _, a1, a2 = self.a.tolist()
        if n >= 2:
            prev_z2 = b2 * x[:, -2] - a2 * y[:, -2]
        else:
            prev_z2 = self.z2
        self.z1 = b1 * x[:, -1] - a1 * y[:, -1] + prev_z2
        self.z2 = b2 * x[:, -1] - a2 * y[:, -1]
        return y


def _one_pole(x: torch.Tensor, coeff: float, prev: float) -> torch.Tensor:
    """y[n] = coeff * y[n-1] + (1 - coeff) * x[n], continuing from y[-1] = prev."""
    n = x.shape[-1]
    a = torch.tensor([1.0, -coeff], dtype=DTYPE)
    b = torch.tensor([1.0 - coeff, 0.0], dtype=DTYPE)
    y = F.lfilter(x.unsqueeze(0), a, b, clamp=False).squeeze(0)
    decay = torch.pow(torch.tensor(coeff, dtype=DTYPE), torch.arange(1, n + 1, dtype=DTYPE))
    return y + prev * decay


class Compressor:
    """
    Feed-forward peak compressor with a soft knee, linked across channels.
    Defaults match the browser DynamicsCompressor: 30 dB knee, 3 ms attack, 250 ms release.
    Gain reduction is smoothed twice (attack and release one-poles) and the larger
    reduction wins, giving a fast rise and slow recovery. No makeup gain.
    """

    def __init__(
        self,
        sample_rate: int,
        threshold_db: float = -24.0,
        ratio: float = 12.0,
        knee_db: float = 30.0,
        attack_s: float = 0.003,
        release_s: float = 0.25,
    ):
        self.sample_rate = int(sample_rate)
        self.knee_db = float(knee_db)
        self.attack_coeff = math.exp(-1.0 / (attack_s * self.sample_rate)) if attack_s > 0 else 0.0
        self.release_coeff = math.exp(-1.0 / (release_s * self.sample_rate)) if release_s > 0 else 0.0
        self.set_params(threshold_db, ratio)
        self.reset()

    def set_params(self, threshold_db: float, ratio: float) -> None:
        self.threshold_db = float(threshold_db)
        self.ratio = max(1.0, float(ratio))

    def reset(self) -> None:
        self._fast = 0.0
        self._slow = 0.0
        self.last_reduction_db = 0.0

    def gain_reduction_db(self, level_db: torch.Tensor) -> torch.Tensor:
        """Static curve: dB of reduction (>= 0) for each detector level."""
        over = level_db - self.threshold_db
        slope = 1.0 / self.ratio - 1.0
        knee = self.knee_db
        out = torch.zeros_like(level_db)
        if knee > 0:
            in_knee = torch.abs(2.0 * over) <= knee
            out = torch.where(in_knee, -slope * (over + knee / 2.0) ** 2 / (2.0 * knee), out)
            above = 2.0 * over > knee
        else:
            above = over > 0
        out = torch.where(above, -slope * over, out)
        return torch.clamp(out, min=0.0)

    def process(self, x: torch.Tensor) -> torch.Tensor:
        n = x.shape[-1]
        if n == 0 or self.ratio <= 1.0:
            return x
        x = x.to(DTYPE)
        peak = torch.max(torch.abs(x), dim=0).values
        level_db = 20.0 * torch.log10(torch.clamp(peak, min=1e-9))
        target = self.gain_reduction_db(level_db)

        fast = _one_pole(target, self.attack_coeff, self._fast)
        slow = _one_pole(target, self.release_coeff, self._slow)
        self._fast = float(fast[-1])
        self._slow = float(slow[-1])

        reduction = torch.maximum(fast, slow)
        self.last_reduction_db = float(reduction[-1])
        gain = torch.pow(10.0, -reduction / 20.0)
        return x * gain.unsqueeze(0)
