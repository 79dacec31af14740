from dataclasses import dataclass

import torch


@dataclass(frozen=True)
class AudioAsset:
    """Decoded PCM owned by a session. samples: float32 [channels, frames]."""
    samples: torch.Tensor
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[-1])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)


@dataclass(frozen=True)
class RenderedArtifact:
    """Output of one offline render: same channel layout as the source, stretched length."""
    samples: torch.Tensor
    sample_rate: int

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[-1])

    @property
    def duration(self) -> float:
        return self.frames / float(self.sample_rate)
