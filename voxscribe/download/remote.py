"""
voxscribe.download.remote - Remote audio download via yt-dlp.

Security:
- Only http:// and https:// URLs with a host are accepted
- Arguments are passed as a list (no shell expansion)
- ``--no-exec`` stops yt-dlp from running post-processing commands
- The reported file path must resolve inside the output directory
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from voxscribe.exceptions import DownloadError
from voxscribe.logging import logger

AUDIO_EXTENSIONS = {".wav", ".mp3", ".ogg", ".m4a", ".opus", ".flac", ".webm", ".aac"}
MAX_STDERR_CHARS = 1000


@dataclass(frozen=True)
class DownloadResult:
    """A downloaded audio file plus whatever metadata yt-dlp reported."""

    audio_path: Path
    title: str | None = None
    duration: float | None = None


def validate_url(url: str) -> str:
    """Check that a string is a plain http(s) URL.

    Args:
        url: Candidate URL

    Returns:
        The URL with surrounding whitespace removed

    Raises:
        DownloadError: For any other scheme, a missing host, or embedded
            whitespace/control characters
    """
    candidate = url.strip()
    if not candidate.startswith(("http://", "https://")):
        raise DownloadError(f"Invalid URL (must start with http:// or https://): {candidate!r}")

    if any(ch.isspace() or ord(ch) < 32 or ord(ch) == 127 for ch in candidate):
        raise DownloadError(
            f"Invalid URL (contains whitespace or control characters): {candidate!r}"
        )

    parts = urlsplit(candidate)
    if not parts.netloc:
        raise DownloadError(f"Invalid URL (missing host): {candidate!r}")

    return candidate


def validate_path_in_dir(path: Path, expected_dir: Path) -> Path:
    """Ensure ``path`` lies inside ``expected_dir`` after canonicalization.

    Returns:
        The canonical path

    Raises:
        DownloadError: If the path escapes the directory
    """
    canonical_dir = expected_dir.resolve()
    canonical_path = path.resolve()

    if canonical_path == canonical_dir or not canonical_path.is_relative_to(canonical_dir):
        logger.warning("Downloaded file path %s is outside %s", path, expected_dir)
        raise DownloadError("Downloaded file path is outside the expected output directory")
    return canonical_path


def find_audio_file(directory: Path) -> Path:
    """Return the most recently modified audio file in a directory."""
    candidates = [
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS
    ]
    if not candidates:
        raise DownloadError("No audio file found after download")
    return max(candidates, key=lambda p: p.stat().st_mtime)


def download_audio(url: str, output_dir: Path) -> DownloadResult:
    """Download the audio track of a URL into ``output_dir`` as WAV.

    Args:
        url: http(s) URL of a page or media file
        output_dir: Directory to download into (created if needed)

    Returns:
        DownloadResult with the local file and optional title/duration

    Raises:
        DownloadError: If the URL is invalid, yt-dlp is missing or fails,
            or no acceptable file is produced
    """
    url = validate_url(url)
    logger.info("Downloading audio from %s", url)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_template = str(output_dir / "%(id)s.%(ext)s")

    info = _fetch_metadata(url)

    cmd = [
        "yt-dlp",
        "--extract-audio",
        "--audio-format",
        "wav",
        "--audio-quality",
        "0",
        "--no-playlist",
        "--no-exec",
        "--output",
        output_template,
        "--print",
        "after_move:filepath",
        url,
    ]
    proc = _run_ytdlp(cmd)
    if proc.returncode != 0:
        stderr = proc.stderr[:MAX_STDERR_CHARS]
        raise DownloadError(f"yt-dlp failed: {stderr}")

    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if lines:
        audio_path = validate_path_in_dir(Path(lines[-1]), output_dir)
    else:
        audio_path = find_audio_file(output_dir)

    if not audio_path.exists():
        raise DownloadError(f"Downloaded file not found at {audio_path}")

    logger.debug("Audio downloaded to %s", audio_path)

    duration = info.get("duration")
    return DownloadResult(
        audio_path=audio_path,
        title=info.get("title"),
        duration=float(duration) if isinstance(duration, (int, float)) else None,
    )


def _fetch_metadata(url: str) -> dict:
    """Title/duration lookup. Failures only cost the metadata."""
    proc = _run_ytdlp(["yt-dlp", "--dump-json", "--no-download", "--no-exec", "--no-playlist", url])
    if proc.returncode != 0:
        return {}
    try:
        info = json.loads(proc.stdout)
    except json.JSONDecodeError:
        return {}
    return info if isinstance(info, dict) else {}


def _run_ytdlp(cmd: list[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, errors="replace")
    except FileNotFoundError as e:
        raise DownloadError("yt-dlp not found. Install with: pip install yt-dlp") from e
    except OSError as e:
        raise DownloadError(f"Failed to run yt-dlp: {e}") from e
