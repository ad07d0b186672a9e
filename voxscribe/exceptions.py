"""
voxscribe.exceptions - Custom exception classes.

All Voxscribe-specific exceptions inherit from VoxscribeError.
"""

from __future__ import annotations

from pathlib import Path


class VoxscribeError(Exception):
    """Base exception for all Voxscribe errors."""

    pass


class ConfigError(VoxscribeError):
    """Configuration loading or validation error."""

    pass


class ResourceNotFoundError(VoxscribeError):
    """A required local file does not exist."""

    kind = "file"

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"{self.kind} not found: {self.path}")


class ModelNotFoundError(ResourceNotFoundError):
    """Custom model file does not exist."""

    kind = "model"


class AudioNotFoundError(ResourceNotFoundError):
    """Input audio file does not exist."""

    kind = "audio file"


class DecodeError(VoxscribeError):
    """Audio decoding error."""

    pass


class DownloadError(VoxscribeError):
    """Remote audio download error."""

    pass


class ModelDownloadError(DownloadError):
    """Model artifact download or verification error."""

    pass


class TranscriptionError(VoxscribeError):
    """Transcription error."""

    pass


class SerializationError(VoxscribeError):
    """Transcript encode/decode error."""

    pass


class DependencyError(VoxscribeError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
