"""
voxscribe.utils - Shared utility functions.

Contains common helpers used across multiple modules to avoid duplication.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from voxscribe.logging import logger


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS or MM:SS.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (HH:MM:SS if >= 1 hour, otherwise MM:SS)
    """
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_size(num_bytes: int) -> str:
    """Format a byte count in human-readable decimal units."""
    if num_bytes >= 1_000_000_000:
        return f"{num_bytes / 1_000_000_000:.1f} GB"
    if num_bytes >= 1_000_000:
        return f"{num_bytes / 1_000_000:.0f} MB"
    return f"{num_bytes / 1_000:.0f} KB"


class CleanupGuard:
    """Remove a file or directory when the guarded scope exits.

    The removal runs at most once. Call ``disarm()`` on the success path to
    keep the artifact.

    Usage:
        with CleanupGuard(tmp_path) as guard:
            write(tmp_path)
            tmp_path.rename(final)
            guard.disarm()
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.armed = True
        self._done = False

    def disarm(self) -> None:
        self.armed = False

    def cleanup(self) -> None:
        if self._done:
            return
        self._done = True
        if not self.armed:
            return
        try:
            if self.path.is_dir():
                shutil.rmtree(self.path)
            else:
                self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to clean up %s: %s", self.path, e)

    def __enter__(self) -> CleanupGuard:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cleanup()
        return False
