"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .wav import WAV_HEADER_SIZE


@dataclass(frozen=True, slots=True)
class AudioContainer:
    """A finalized WAV recording on disk; header and payload are complete."""

    path: Path
    sample_rate: int
    channels: int
    bits_per_sample: int
    data_length: int

    @property
    def frame_count(self) -> int:
        return self.data_length // (self.channels * self.bits_per_sample // 8)

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.sample_rate)

    @property
    def size(self) -> int:
        return WAV_HEADER_SIZE + self.data_length

    def exists(self) -> bool:
        return self.path.exists()

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)
