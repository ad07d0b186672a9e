"""
voxscribe.cache - Whisper model cache and verified downloads.

Resolves a ModelSpec to a local ggml file, downloading presets from the
whisper.cpp model host on a cache miss. The cache directory holds one file
per model, named by its canonical filename; presence of the file is the
only state.

Concurrent processes may download the same model at once. Each streams
into its own ``<name>.<pid>.part`` file and atomically renames it into
place only after verification, so readers see either no file or a complete
one. The last rename wins; no lock file is taken.
"""

from __future__ import annotations

import http.client
import os
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path

from voxscribe import __version__
from voxscribe.config import ModelSpec
from voxscribe.exceptions import ModelDownloadError, ModelNotFoundError
from voxscribe.logging import logger
from voxscribe.utils import CleanupGuard

MODEL_BASE_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"

MAX_MODEL_BYTES = 5_000_000_000
# Anything smaller is an error page, not a model.
MIN_MODEL_BYTES = 1_000_000
CHUNK_SIZE = 1024 * 1024

# Approximate download sizes in MB, for listings and disk-space checks.
MODEL_SIZES: dict[str, int] = {
    "tiny": 75,
    "tiny.en": 75,
    "base": 142,
    "base.en": 142,
    "small": 466,
    "small.en": 466,
    "medium": 1500,
    "medium.en": 1500,
    "large-v2": 2900,
    "large-v3": 2900,
    "large-v3-turbo": 1600,
}

ProgressCallback = Callable[[int, int | None], None]


def model_url(filename: str) -> str:
    return f"{MODEL_BASE_URL}/{filename}"


def ensure_model(
    model: ModelSpec,
    cache_dir: Path,
    progress: ProgressCallback | None = None,
) -> Path:
    """Return a path to a usable model file, downloading it if necessary.

    Args:
        model: Model to resolve
        cache_dir: Model cache directory (created on demand)
        progress: Optional callback receiving (bytes_downloaded, total_bytes)

    Returns:
        Path to the local model file

    Raises:
        ModelNotFoundError: If a custom model path does not exist
        ModelDownloadError: If the download fails or fails verification
    """
    if model.is_custom:
        if model.path is not None and model.path.exists():
            return model.path
        raise ModelNotFoundError(model.path or model.filename)

    model_path = cache_dir / model.filename
    if model_path.exists():
        logger.info("Model %s already cached at %s", model.name, model_path)
        return model_path

    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ModelDownloadError(f"Failed to create cache dir {cache_dir}: {e}") from e

    url = model_url(model.filename)
    logger.info("Downloading model %s from %s", model.name, url)
    size = download_model(url, model_path, progress=progress)
    logger.info("Model saved to %s (%d bytes)", model_path, size)
    return model_path


def download_model(
    url: str,
    dest: Path,
    progress: ProgressCallback | None = None,
) -> int:
    """Stream a model file to ``dest`` with size checks and atomic rename.

    Args:
        url: Source URL
        dest: Final path inside the cache directory
        progress: Optional callback receiving (bytes_downloaded, total_bytes)

    Returns:
        Number of bytes written

    Raises:
        ModelDownloadError: On HTTP errors, size limit violations, or a
            payload that fails verification. No temp file is left behind.
    """
    tmp_path = dest.with_name(f"{dest.name}.{os.getpid()}.part")

    with _open_url(url) as response:
        expected = _content_length(response)
        if expected is not None and expected > MAX_MODEL_BYTES:
            raise ModelDownloadError(
                f"Advertised size {expected} bytes exceeds the {MAX_MODEL_BYTES} byte limit"
            )

        with CleanupGuard(tmp_path) as guard:
            written = 0
            try:
                with open(tmp_path, "wb") as f:
                    for chunk in iter(lambda: response.read(CHUNK_SIZE), b""):
                        written += len(chunk)
                        if written > MAX_MODEL_BYTES:
                            raise ModelDownloadError(
                                f"Download exceeded the {MAX_MODEL_BYTES} byte limit"
                            )
                        f.write(chunk)
                        _report(progress, written, expected)
            except (OSError, http.client.HTTPException) as e:
                raise ModelDownloadError(f"Download of {url} failed: {e!r}") from e

            size = tmp_path.stat().st_size
            if size < MIN_MODEL_BYTES:
                raise ModelDownloadError(
                    f"Downloaded file too small ({size} bytes), likely an error page"
                )
            if expected is not None and size != expected:
                raise ModelDownloadError(
                    f"Size mismatch: expected {expected} bytes, got {size}"
                )

            os.replace(tmp_path, dest)
            guard.disarm()

    return size


def list_cached_models(cache_dir: Path) -> list[Path]:
    """List model files present in the cache directory."""
    if not cache_dir.is_dir():
        return []
    return sorted(p for p in cache_dir.iterdir() if p.is_file() and p.suffix == ".bin")


def _open_url(url: str):
    request = urllib.request.Request(url, headers={"User-Agent": f"voxscribe/{__version__}"})
    try:
        return urllib.request.urlopen(request)
    except urllib.error.HTTPError as e:
        raise ModelDownloadError(f"HTTP {e.code} fetching {url}") from e
    except urllib.error.URLError as e:
        raise ModelDownloadError(f"Cannot reach {url}: {e.reason}") from e
    except http.client.HTTPException as e:
        raise ModelDownloadError(f"Bad response from {url}: {e!r}") from e


def _content_length(response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _report(progress: ProgressCallback | None, done: int, total: int | None) -> None:
    if progress is None:
        return
    try:
        progress(done, total)
    except Exception:
        logger.debug("Progress callback failed", exc_info=True)
