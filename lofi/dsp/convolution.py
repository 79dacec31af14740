"""
Uniformly partitioned FFT convolution with a fixed impulse response.

The impulse response is cut into partitions of `partition_size` frames whose
spectra are computed once. Completed input partitions are kept as spectra in a
frequency-domain delay line, so a callback only pays for one partition's worth
of FFTs plus a multiply-accumulate over the delay line. Output has no added
latency and does not depend on how the input is split into blocks.
"""
import torch
import torch.nn.functional as nnf

from lofi.dsp.filters import DTYPE

DEFAULT_PARTITION = 512


def normalize_impulse(impulse: torch.Tensor) -> torch.Tensor:
    """Scale an impulse response to unit energy per channel (on average)."""
    ir = impulse.to(DTYPE)
    energy = torch.mean(torch.sum(ir ** 2, dim=-1))
    if float(energy) <= 0.0:
        return ir
    return ir / torch.sqrt(energy)


def _match_ir_channels(impulse: torch.Tensor, channels: int) -> torch.Tensor:
    if impulse.shape[0] == channels:
        return impulse
    index = torch.arange(channels) % impulse.shape[0]
    return impulse[index]


def partition_spectra(impulse: torch.Tensor, size: int) -> torch.Tensor:
    """[C, L] -> [K, C, size + 1]: spectra of the zero-padded size-frame partitions."""
    channels, length = impulse.shape
    count = max(1, -(-length // size))
    padded = nnf.pad(impulse, (0, count * size - length))
    parts = padded.reshape(channels, count, size).transpose(0, 1)
    return torch.fft.rfft(parts, n=2 * size)


class ConvolutionReverb:
    """
    Convolves each channel with its own impulse response channel.

    Per partition m the output is
        y_m = base_m + head(x_m * h_0)
    where base_m collects everything earlier partitions contribute. base_m is
    fixed once partition m-1 completes, so a partially filled partition can be
    answered exactly from its own samples and the first IR partition.
    """

    def __init__(self, impulse: torch.Tensor, channels: int, normalize: bool = True,
                 partition_size: int = DEFAULT_PARTITION):
        ir = normalize_impulse(impulse) if normalize else impulse.to(DTYPE)
        self.impulse = _match_ir_channels(ir, channels)
        self.channels = int(channels)
        self.partition_size = max(1, int(partition_size))
        self._spectra = partition_spectra(self.impulse, self.partition_size)
        self.reset()

    @property
    def partitions(self) -> int:
        return int(self._spectra.shape[0])

    def reset(self) -> None:
        size = self.partition_size
        self._input = torch.zeros(self.channels, size, dtype=DTYPE)
        self._filled = 0
        self._delay_line = torch.zeros_like(self._spectra)
        self._base = torch.zeros(self.channels, size, dtype=DTYPE)

    def _head(self, spectrum: torch.Tensor) -> torch.Tensor:
        return torch.fft.irfft(spectrum, n=2 * self.partition_size)[..., : self.partition_size]

    def _complete_partition(self) -> torch.Tensor:
        """Close the current partition: its full output, and base for the next one."""
        size = self.partition_size
        current = torch.fft.rfft(self._input, n=2 * size)
        out = self._base + self._head(current * self._spectra[0])

        self._delay_line = torch.roll(self._delay_line, 1, dims=0)
        self._delay_line[0] = current
        full = torch.fft.irfft(torch.sum(self._delay_line * self._spectra, dim=0), n=2 * size)
        base = full[:, size:].clone()
        if self.partitions > 1:
            shifted = torch.sum(self._delay_line[:-1] * self._spectra[1:], dim=0)
            base = base + self._head(shifted)
        self._base = base

        self._input = torch.zeros_like(self._input)
        self._filled = 0
        return out

    def process(self, x: torch.Tensor) -> torch.Tensor:
        n = x.shape[-1]
        if n == 0:
            return x
        x = x.to(DTYPE)
        size = self.partition_size
        outs = []
        i = 0
        while i < n:
            start = self._filled
            k = min(size - start, n - i)
            self._input[:, start:start + k] = x[:, i:i + k]
            self._filled += k
            i += k
            if self._filled == size:
                outs.append(self._complete_partition()[:, start:])
            else:
                partial = torch.fft.rfft(self._input, n=2 * size) * self._spectra[0]
                outs.append((self._base + self._head(partial))[:, start:start + k])
        return torch.cat(outs, dim=-1)
