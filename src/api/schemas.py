"""Pydantic schemas for the ASR wire contract."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SegmentPayload(BaseModel):
    """One transcript segment, serialized with the capitalized wire names."""

    model_config = ConfigDict(populate_by_name=True)

    start: float = Field(default=0.0, alias="Start")
    end: float = Field(default=0.0, alias="End")
    content: str = Field(default="", alias="Content")


class TextChunk(BaseModel):
    text: str


class HealthResponse(BaseModel):
    ok: bool
    engine: str
    timestamp: datetime
