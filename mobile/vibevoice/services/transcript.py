"""Transcript segments as returned by the ASR server, and their parsing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

LOGGER = logging.getLogger("vibevoice.client")


class TranscriptSegment(BaseModel):
    """One timestamped span of transcript content."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    start: float = Field(default=0.0, alias="Start")
    end: float = Field(default=0.0, alias="End")
    content: str = Field(default="", alias="Content")

    @property
    def is_marker(self) -> bool:
        """True for non-speech markers such as ``[Silence]``."""
        stripped = self.content.strip()
        return stripped.startswith("[") and stripped.endswith("]")


_SEGMENTS = TypeAdapter(List[TranscriptSegment])


@dataclass(frozen=True, slots=True)
class TranscriptionResult:
    text: str
    segments: Tuple[TranscriptSegment, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> "TranscriptionResult":
        return cls(text="", segments=())

    @classmethod
    def from_segments(cls, segments: List[TranscriptSegment]) -> "TranscriptionResult":
        spoken = [segment.content for segment in segments if not segment.is_marker]
        return cls(text=" ".join(spoken).strip(), segments=tuple(segments))


def parse_transcription_json(raw: str) -> TranscriptionResult:
    """Parse the accumulated SSE payload into a result.

    Blank input and ``[]`` mean silence. A payload that is not a valid segment
    array is treated the same way, after being logged.
    """
    trimmed = raw.strip()
    if not trimmed or trimmed == "[]":
        return TranscriptionResult.empty()
    try:
        segments = _SEGMENTS.validate_json(trimmed)
    except ValidationError as exc:
        LOGGER.error("Failed to parse transcription JSON %r: %s", trimmed[:200], exc)
        return TranscriptionResult.empty()
    return TranscriptionResult.from_segments(segments)


__all__ = ["TranscriptSegment", "TranscriptionResult", "parse_transcription_json"]
