"""
voxscribe.pipeline - Transcription entry points.

Composes the stages into the two public operations: transcribe a local
file, and transcribe a remote URL (download → decode → process → model →
inference). Each call runs sequentially in the calling thread; nothing is
retried.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from voxscribe.cache import ProgressCallback, ensure_model
from voxscribe.config import TranscribeConfig, resolve_cache_dir
from voxscribe.download.remote import download_audio, validate_url
from voxscribe.extract.audio import load_audio
from voxscribe.transcribe.backend import InferenceEngine
from voxscribe.transcribe.engine import transcribe_samples
from voxscribe.transcript import Transcript
from voxscribe.utils import CleanupGuard


def is_url(value: str) -> bool:
    return value.strip().startswith(("http://", "https://"))


def transcribe_file(
    path: Path | str,
    config: TranscribeConfig | None = None,
    engine: InferenceEngine | None = None,
    progress: ProgressCallback | None = None,
) -> Transcript:
    """Transcribe a local audio or video file.

    Args:
        path: Media file path
        config: Transcription options (defaults if None)
        engine: Inference engine override (whisper.cpp if None)
        progress: Optional model download progress callback

    Returns:
        Transcript of the file
    """
    config = config or TranscribeConfig()

    samples = load_audio(Path(path), config.audio)
    model_path = ensure_model(config.model, resolve_cache_dir(config), progress=progress)
    return transcribe_samples(samples, model_path, config, engine=engine)


def transcribe_url(
    url: str,
    config: TranscribeConfig | None = None,
    engine: InferenceEngine | None = None,
    progress: ProgressCallback | None = None,
) -> Transcript:
    """Download the audio behind a URL and transcribe it.

    The download goes into a private temp directory that is removed on
    every exit path. The returned transcript carries the source URL and
    the title reported by the downloader.
    """
    url = validate_url(url)
    config = config or TranscribeConfig()

    tmp_dir = Path(tempfile.mkdtemp(prefix="voxscribe-"))
    with CleanupGuard(tmp_dir):
        result = download_audio(url, tmp_dir)
        transcript = transcribe_file(result.audio_path, config, engine=engine, progress=progress)

    return transcript.model_copy(update={"source_url": url, "source_title": result.title})


def transcribe_source(
    source: str,
    config: TranscribeConfig | None = None,
    engine: InferenceEngine | None = None,
    progress: ProgressCallback | None = None,
) -> Transcript:
    """Transcribe a URL or a local path, whichever ``source`` is."""
    if is_url(source):
        return transcribe_url(source, config, engine=engine, progress=progress)
    return transcribe_file(source, config, engine=engine, progress=progress)
