"""
voxscribe.extract.audio - FFmpeg audio decoding.

Decodes any media file ffmpeg understands (mp3, wav, ogg, opus, webm, m4a,
flac, video containers, ...) to 16kHz mono float32 samples, then applies
the optional sample processing steps.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import numpy as np

from voxscribe.config import AudioProcessing
from voxscribe.exceptions import AudioNotFoundError, DecodeError
from voxscribe.extract.processing import SAMPLE_RATE, duration_seconds, process_samples
from voxscribe.logging import logger

MAX_STDERR_CHARS = 1000


def decode_audio(path: Path) -> np.ndarray:
    """Decode a media file to 16kHz mono float32 via an ffmpeg subprocess.

    ffmpeg does decoding, downmixing and resampling in one pass and writes
    raw signed 16-bit little-endian PCM to stdout.

    Args:
        path: Path to any media file

    Returns:
        Float32 samples in [-1.0, 1.0]

    Raises:
        DecodeError: If ffmpeg is missing, fails, or produces no audio
    """
    cmd = [
        "ffmpeg",
        "-nostdin",
        "-threads",
        "0",
        "-i",
        str(path),
        "-f",
        "s16le",
        "-ac",
        "1",
        "-acodec",
        "pcm_s16le",
        "-ar",
        str(SAMPLE_RATE),
        "-",
    ]

    try:
        proc = subprocess.run(cmd, capture_output=True)
    except FileNotFoundError as e:
        raise DecodeError(
            "ffmpeg not found. Install with: brew install ffmpeg (macOS) "
            "or apt install ffmpeg (Linux)"
        ) from e
    except OSError as e:
        raise DecodeError(f"Failed to run ffmpeg: {e}") from e

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace")[-MAX_STDERR_CHARS:]
        raise DecodeError(f"ffmpeg failed: {stderr}")

    if not proc.stdout:
        raise DecodeError("ffmpeg produced no output")

    return pcm16_to_float(proc.stdout)


def pcm16_to_float(data: bytes) -> np.ndarray:
    """Convert raw s16le PCM bytes to float32 samples.

    A trailing odd byte (truncated sample) is dropped.
    """
    usable = len(data) - (len(data) % 2)
    pcm = np.frombuffer(data[:usable], dtype="<i2")
    return pcm.astype(np.float32) / np.float32(32768.0)


def load_audio(path: Path, processing: AudioProcessing | None = None) -> np.ndarray:
    """Load an audio file and return samples ready for transcription.

    Args:
        path: Path to audio or video file
        processing: Optional processing steps (all off by default)

    Returns:
        16kHz mono float32 samples

    Raises:
        AudioNotFoundError: If the file does not exist
        DecodeError: If decoding fails
    """
    if not path.exists():
        raise AudioNotFoundError(path)

    logger.info("Loading audio %s", path)
    samples = decode_audio(path)
    logger.debug("Decoded %d samples (%.1fs)", len(samples), duration_seconds(samples))

    samples = process_samples(samples, processing or AudioProcessing())

    logger.info("Audio ready: %.1fs", duration_seconds(samples))
    return samples
