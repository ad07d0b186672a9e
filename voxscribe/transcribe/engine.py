"""
voxscribe.transcribe.engine - Whisper transcription orchestration.

Builds inference options from a TranscribeConfig, runs the engine over the
full sample buffer, and maps raw engine output (centisecond timestamps,
raw tokens) into the Transcript data model.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from pydantic import ValidationError

from voxscribe.config import TranscribeConfig
from voxscribe.exceptions import TranscriptionError
from voxscribe.extract.processing import duration_seconds
from voxscribe.logging import logger
from voxscribe.transcribe.backend import (
    DecodeOptions,
    GpuOptions,
    InferenceEngine,
    RawSegment,
    RawToken,
    WhisperCppEngine,
)
from voxscribe.transcript import Segment, Transcript, Word

# Candidate pool for greedy decoding when no beam size is configured.
GREEDY_BEST_OF = 5
CENTISECONDS_PER_SECOND = 100.0


def build_decode_options(config: TranscribeConfig) -> DecodeOptions:
    """Translate user options into engine decode options."""
    if config.beam_size is not None:
        strategy = "beam_search"
    else:
        strategy = "greedy"

    return DecodeOptions(
        strategy=strategy,
        best_of=GREEDY_BEST_OF,
        beam_size=config.beam_size,
        language=None if config.is_auto_language else config.language,
        detect_language=config.is_auto_language,
        translate=config.translate,
        token_timestamps=config.word_timestamps,
        temperature=config.temperature,
        n_threads=config.threads,
        vad=config.vad,
        vad_model_path=config.vad_model_path,
        diarize=config.diarize,
    )


def transcribe_samples(
    samples: np.ndarray,
    model_path: Path,
    config: TranscribeConfig,
    engine: InferenceEngine | None = None,
) -> Transcript:
    """Transcribe 16kHz mono float32 samples.

    Args:
        samples: Audio buffer (already decoded and processed)
        model_path: Local model file
        config: Validated transcription options
        engine: Inference engine (whisper.cpp if None)

    Returns:
        Transcript with segments, language, duration and model name

    Raises:
        TranscriptionError: If the model cannot be loaded, inference fails,
            or the engine output cannot be mapped
    """
    try:
        str(model_path).encode("utf-8")
    except UnicodeEncodeError as e:
        raise TranscriptionError(f"Model path is not valid UTF-8: {model_path!r}") from e

    engine = engine or WhisperCppEngine()
    options = build_decode_options(config)

    logger.info("Loading whisper model %s", model_path)
    try:
        gpu = GpuOptions(enabled=config.gpu, device=config.gpu_device)
        handle = engine.initialize(model_path, gpu)
    except TranscriptionError:
        raise
    except Exception as e:
        raise TranscriptionError(f"Failed to load model {model_path}: {e}") from e

    try:
        logger.info("Running transcription over %d samples", len(samples))
        try:
            raw = engine.run(handle, samples, options)
        except TranscriptionError:
            raise
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e
    finally:
        engine.close(handle)

    logger.debug("Engine returned %d segments", len(raw.segments))

    segments = []
    for i, raw_segment in enumerate(raw.segments):
        if raw_segment is None:
            raise TranscriptionError(f"Segment {i} not found")
        try:
            segments.append(convert_segment(raw_segment, config.word_timestamps))
        except ValidationError as e:
            raise TranscriptionError(f"Segment {i} is malformed: {e}") from e

    forced = None if config.is_auto_language else config.language
    language = raw.language or forced or "unknown"

    return Transcript(
        segments=segments,
        language=language,
        duration=duration_seconds(samples),
        model=config.model.name,
    )


def convert_segment(raw: RawSegment, word_timestamps: bool) -> Segment:
    """Map one raw engine segment to a Segment (words only when requested)."""
    return Segment(
        start=raw.t0 / CENTISECONDS_PER_SECOND,
        end=raw.t1 / CENTISECONDS_PER_SECOND,
        text=raw.text,
        speaker_turn=raw.speaker_turn_next,
        no_speech_probability=_clamp_probability(raw.no_speech_prob),
        words=convert_tokens(raw.tokens) if word_timestamps else None,
    )


def convert_tokens(tokens: list[RawToken]) -> list[Word]:
    """Map raw tokens to Words, dropping special/control tokens."""
    return [
        Word(
            text=token.text,
            start=token.t0 / CENTISECONDS_PER_SECOND,
            end=token.t1 / CENTISECONDS_PER_SECOND,
            probability=_clamp_probability(token.p),
        )
        for token in tokens
        if not is_special_token(token.text)
    ]


def is_special_token(text: str) -> bool:
    """Engine markers like ``[_BEG_]`` or ``<|en|>``, and empty tokens."""
    trimmed = text.strip()
    return not trimmed or trimmed.startswith(("[", "<"))


def _clamp_probability(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)
