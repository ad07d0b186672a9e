"""
voxscribe.validation - Dependency checks and validation utilities.

Validates the environment (external tools, disk space) before processing.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any

from voxscribe.exceptions import ConfigError, DependencyError


def _tool_version(path: str, flag: str) -> str:
    try:
        proc = subprocess.run(
            [path, flag],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.TimeoutExpired, OSError):
        return "unknown"
    version_line = proc.stdout.split("\n")[0]
    return version_line or "unknown"


def check_ffmpeg() -> dict[str, str]:
    """Check that FFmpeg is installed and get its version.

    Returns:
        Dict with 'path' and 'version'

    Raises:
        DependencyError: If FFmpeg is not found
    """
    ffmpeg_path = shutil.which("ffmpeg")
    if not ffmpeg_path:
        raise DependencyError(
            "ffmpeg",
            "FFmpeg not found in PATH",
            "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)",
        )

    version_line = _tool_version(ffmpeg_path, "-version")
    parts = version_line.split()
    version = parts[2] if len(parts) > 2 else "unknown"
    return {"path": ffmpeg_path, "version": version}


def check_ytdlp() -> dict[str, str]:
    """Check that yt-dlp is installed and get its version.

    Returns:
        Dict with 'path' and 'version'

    Raises:
        DependencyError: If yt-dlp is not found
    """
    ytdlp_path = shutil.which("yt-dlp")
    if not ytdlp_path:
        raise DependencyError(
            "yt-dlp",
            "yt-dlp not found in PATH (needed for URL transcription)",
            "Install with: pip install yt-dlp",
        )

    return {"path": ytdlp_path, "version": _tool_version(ytdlp_path, "--version").strip()}


def check_disk_space(path: Path, required_mb: int) -> dict[str, Any]:
    """Check if there's enough disk space at the given path.

    Args:
        path: Path to check (nearest existing ancestor is used)
        required_mb: Required space in megabytes

    Returns:
        Dict with 'available_mb', 'required_mb', 'sufficient'

    Raises:
        ConfigError: If no ancestor of the path can be inspected
    """
    check_path = path
    while not check_path.exists() and check_path != check_path.parent:
        check_path = check_path.parent

    try:
        stat = shutil.disk_usage(check_path)
    except OSError as e:
        raise ConfigError(f"Cannot check disk space at {path}: {e}") from e

    available_mb = stat.free // (1024 * 1024)
    return {
        "available_mb": available_mb,
        "required_mb": required_mb,
        "sufficient": available_mb >= required_mb,
    }


def check_whisper() -> dict[str, str]:
    """Check that the whisper.cpp Python bindings can be imported.

    Raises:
        DependencyError: If pywhispercpp is not installed
    """
    from voxscribe.transcribe.backend import load_binding

    binding = load_binding()
    return {"path": str(getattr(binding, "__file__", "built-in")), "version": "installed"}
