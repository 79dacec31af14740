"""
Frequency analysis tap for visualizers.
Mirrors the browser analyser: Blackman window over the latest fft_size samples
(channels averaged), per-bin smoothing over time, dB range mapped to bytes.
"""
import torch

from lofi.dsp.filters import DTYPE


class Analyser:
    def __init__(
        self,
        fft_size: int = 2048,
        smoothing: float = 0.8,
        min_db: float = -100.0,
        max_db: float = -30.0,
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        self.fft_size = int(fft_size)
        self.smoothing = float(smoothing)
        self.min_db = float(min_db)
        self.max_db = float(max_db)
        self._window = torch.blackman_window(self.fft_size, periodic=True, dtype=DTYPE)
        self.reset()

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        self._history = torch.zeros(self.fft_size, dtype=DTYPE)
        self._smoothed = torch.zeros(self.bin_count, dtype=DTYPE)

    def process(self, x: torch.Tensor) -> torch.Tensor:
        """Pass-through; records the latest samples."""
        n = x.shape[-1]
        if n == 0:
            return x
        mono = x.to(DTYPE).mean(dim=0)
        if n >= self.fft_size:
            self._history = mono[-self.fft_size:].clone()
        else:
            self._history = torch.cat([self._history[n:], mono])
        return x

    def byte_frequency_data(self) -> bytes:
        spectrum = torch.fft.rfft(self._history * self._window)[: self.bin_count]
        magnitude = torch.abs(spectrum) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude
        db = 20.0 * torch.log10(torch.clamp(self._smoothed, min=1e-12))
        scaled = torch.floor((255.0 / (self.max_db - self.min_db)) * (db - self.min_db))
        return bytes(torch.clamp(scaled, 0, 255).to(torch.uint8).tolist())
