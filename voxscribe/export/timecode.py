"""
voxscribe.export.timecode - Subtitle timestamp formatting.

SRT and WebVTT share the HH:MM:SS?mmm layout and differ only in the
millisecond separator (comma for SRT, period for WebVTT). Milliseconds are
truncated, not rounded: 2.9999s renders as 00:00:02,999.
"""

from __future__ import annotations

SRT_SEPARATOR = ","
VTT_SEPARATOR = "."


def format_timestamp(seconds: float, separator: str) -> str:
    """Convert float seconds to a subtitle timestamp.

    Args:
        seconds: Time in seconds (negative values clamp to zero)
        separator: Character between seconds and milliseconds

    Returns:
        Timestamp string in HH:MM:SS<sep>mmm format
    """
    total_ms = max(int(seconds * 1000), 0)

    hh = total_ms // 3_600_000
    mm = (total_ms % 3_600_000) // 60_000
    ss = (total_ms % 60_000) // 1_000
    ms = total_ms % 1_000

    return f"{hh:02d}:{mm:02d}:{ss:02d}{separator}{ms:03d}"


def format_srt_time(seconds: float) -> str:
    return format_timestamp(seconds, SRT_SEPARATOR)


def format_vtt_time(seconds: float) -> str:
    return format_timestamp(seconds, VTT_SEPARATOR)
