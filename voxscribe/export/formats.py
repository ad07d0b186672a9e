"""
voxscribe.export.formats - Transcript rendering.

Renders a Transcript as plain text, SRT, WebVTT or JSON. All renderers
are pure and deterministic; only JSON encoding can fail.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from voxscribe.exceptions import SerializationError
from voxscribe.export.timecode import format_srt_time, format_vtt_time
from voxscribe.io import read_text, write_text
from voxscribe.transcript import Transcript

VTT_HEADER = "WEBVTT\n\n"


class OutputFormat(str, Enum):
    TEXT = "text"
    SRT = "srt"
    VTT = "vtt"
    JSON = "json"


def to_text(transcript: Transcript) -> str:
    """Plain text: trimmed segment texts joined by single spaces."""
    return transcript.text


def to_srt(transcript: Transcript) -> str:
    """Render SRT subtitles.

    Each cue is a 1-based index line, a ``start --> end`` line with
    comma-separated milliseconds, the trimmed text, and a blank line.
    An empty transcript renders as an empty string.
    """
    lines = []
    for i, seg in enumerate(transcript.segments, start=1):
        lines.append(f"{i}\n")
        lines.append(f"{format_srt_time(seg.start)} --> {format_srt_time(seg.end)}\n")
        lines.append(f"{seg.text.strip()}\n\n")
    return "".join(lines)


def to_vtt(transcript: Transcript) -> str:
    """Render WebVTT subtitles (header only for an empty transcript)."""
    lines = [VTT_HEADER]
    for seg in transcript.segments:
        lines.append(f"{format_vtt_time(seg.start)} --> {format_vtt_time(seg.end)}\n")
        lines.append(f"{seg.text.strip()}\n\n")
    return "".join(lines)


def to_json(transcript: Transcript, pretty: bool = False) -> str:
    """Serialize a transcript with the data model's own field names."""
    try:
        return transcript.model_dump_json(indent=2 if pretty else None)
    except PydanticSerializationError as e:
        raise SerializationError(f"Cannot encode transcript: {e}") from e


def from_json(data: str | bytes) -> Transcript:
    """Parse a transcript previously produced by ``to_json``."""
    try:
        return Transcript.model_validate_json(data)
    except ValidationError as e:
        raise SerializationError(f"Invalid transcript JSON: {e}") from e


def render(transcript: Transcript, fmt: OutputFormat | str) -> str:
    """Render a transcript in the requested output format (JSON is pretty-printed)."""
    fmt = OutputFormat(fmt)
    if fmt is OutputFormat.TEXT:
        return to_text(transcript)
    if fmt is OutputFormat.SRT:
        return to_srt(transcript)
    if fmt is OutputFormat.VTT:
        return to_vtt(transcript)
    return to_json(transcript, pretty=True)


def write_transcript(transcript: Transcript, path: Path, fmt: OutputFormat | str) -> None:
    """Render and atomically write a transcript to disk."""
    write_text(path, render(transcript, fmt))


def load_transcript(path: Path) -> Transcript:
    """Load a JSON transcript from disk."""
    return from_json(read_text(path))
