"""
Additive bus: sums named inputs with per-input linear gain.
Used for the dry/wet merge inside the graph and for adding the ambient loop at the output.
"""
from dataclasses import dataclass
from typing import Dict, Optional

import torch

from lofi.dsp.filters import DTYPE


@dataclass
class BusInput:
    name: str
    gain: float = 1.0
    mute: bool = False


def match_channels(block: torch.Tensor, channels: int) -> torch.Tensor:
    """
    Adapt [c, n] to [channels, n]: mono is copied to every channel, many-to-mono
    is averaged, anything else cycles through the available channels.
    """
    have = block.shape[0]
    if have == channels:
        return block
    if have == 1:
        return block.expand(channels, block.shape[-1])
    if channels == 1:
        return block.mean(dim=0, keepdim=True)
    index = torch.arange(channels) % have
    return block[index]


class Bus:
    """
    Sum of inputs at a fixed channel count.
    Inputs shorter than the longest are zero-padded; longer ones are trimmed.
    """

    def __init__(self, channels: int):
        self.channels = int(channels)
        self._inputs: Dict[str, torch.Tensor] = {}
        self._specs: Dict[str, BusInput] = {}

    def add(self, name: str, audio: torch.Tensor, gain: float = 1.0, mute: bool = False) -> None:
        """Register an input. Same name overwrites."""
        self._inputs[name] = audio
        self._specs[name] = BusInput(name, gain=float(gain), mute=bool(mute))

    def clear(self) -> None:
        self._inputs.clear()
        self._specs.clear()

    def mix(self, length: Optional[int] = None) -> torch.Tensor:
        if not self._inputs:
            return torch.zeros(self.channels, length or 0, dtype=DTYPE)

        ref_len = length if length is not None else max(a.shape[-1] for a in self._inputs.values())
        master = torch.zeros(self.channels, ref_len, dtype=DTYPE)

        for name, raw in self._inputs.items():
            spec = self._specs[name]
            if spec.mute or spec.gain == 0.0:
                continue
            layer = match_channels(raw.to(DTYPE), self.channels)
            n = layer.shape[-1]
            if n < ref_len:
                layer = torch.nn.functional.pad(layer, (0, ref_len - n))
            elif n > ref_len:
                layer = layer[..., :ref_len]
            master = master + layer * spec.gain

        return master
