"""
voxscribe.transcript - Transcript data model.

Field names are the JSON schema: renaming a field changes the output
format that downstream tooling reads.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Word(BaseModel):
    """A single word/token with timing and confidence."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: float
    end: float
    probability: float = Field(ge=0.0, le=1.0)


class Segment(BaseModel):
    """A contiguous span of speech (sentence or phrase)."""

    model_config = ConfigDict(frozen=True)

    start: float = Field(ge=0.0)
    end: float = Field(ge=0.0)
    text: str
    speaker_turn: bool = False
    no_speech_probability: float = Field(default=0.0, ge=0.0, le=1.0)
    words: list[Word] | None = None

    @model_validator(mode="after")
    def validate_order(self) -> Segment:
        if self.end < self.start:
            raise ValueError(f"segment ends ({self.end}) before it starts ({self.start})")
        return self


class Transcript(BaseModel):
    """Complete transcription result."""

    model_config = ConfigDict(frozen=True)

    segments: list[Segment] = Field(default_factory=list)
    language: str
    duration: float = Field(ge=0.0)
    model: str
    source_url: str | None = None
    source_title: str | None = None

    @property
    def text(self) -> str:
        """All segment texts, trimmed and joined with single spaces."""
        return " ".join(seg.text.strip() for seg in self.segments)
