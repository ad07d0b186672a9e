"""
voxscribe.transcribe.backend - Inference engine interface.

The orchestrator talks to the speech model through a narrow two-call
interface (``initialize`` then ``run``) and receives raw engine output:
centisecond timestamps, raw token text, and a None placeholder for any
segment the engine reported but could not return. Mapping that output into
a Transcript lives in ``voxscribe.transcribe.engine`` so it can be tested
with a scripted fake engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

import numpy as np

from voxscribe.exceptions import DependencyError, TranscriptionError
from voxscribe.logging import logger


@dataclass(frozen=True)
class GpuOptions:
    enabled: bool = True
    device: int = 0


@dataclass(frozen=True)
class DecodeOptions:
    """Per-run inference options, already resolved from a TranscribeConfig."""

    strategy: Literal["greedy", "beam_search"] = "greedy"
    best_of: int = 5
    beam_size: int | None = None
    language: str | None = None
    detect_language: bool = True
    translate: bool = False
    token_timestamps: bool = False
    temperature: float = 0.0
    n_threads: int | None = None
    vad: bool = True
    vad_model_path: Path | None = None
    diarize: bool = False


@dataclass
class RawToken:
    text: str
    t0: int
    t1: int
    p: float


@dataclass
class RawSegment:
    """One engine segment; t0/t1 are in centiseconds."""

    text: str
    t0: int
    t1: int
    speaker_turn_next: bool = False
    no_speech_prob: float = 0.0
    tokens: list[RawToken] = field(default_factory=list)


@dataclass
class RawOutput:
    language: str | None
    segments: list[RawSegment | None] = field(default_factory=list)


class InferenceEngine(Protocol):
    def initialize(self, model_path: Path, gpu: GpuOptions) -> Any: ...

    def run(self, handle: Any, samples: np.ndarray, options: DecodeOptions) -> RawOutput: ...

    def close(self, handle: Any) -> None: ...


class WhisperCppEngine:
    """whisper.cpp through the pywhispercpp bindings."""

    def __init__(self) -> None:
        self._pw = load_binding()

    def initialize(self, model_path: Path, gpu: GpuOptions) -> Any:
        pw = self._pw
        ctx_params = pw.whisper_context_default_params()
        ctx_params.use_gpu = gpu.enabled
        ctx_params.gpu_device = gpu.device

        ctx = pw.whisper_init_from_file_with_params(str(model_path), ctx_params)
        if ctx is None:
            raise TranscriptionError(f"whisper.cpp could not load model {model_path}")
        return ctx

    def run(self, handle: Any, samples: np.ndarray, options: DecodeOptions) -> RawOutput:
        pw = self._pw
        params = pw.whisper_full_default_params(self._strategy(options))

        settings: dict[str, Any] = {
            "language": options.language or "auto",
            "translate": options.translate,
            "token_timestamps": options.token_timestamps,
            "temperature": options.temperature,
            "tdrz_enable": options.diarize,
            "vad": False,
            "print_progress": False,
            "print_realtime": False,
            "print_timestamps": False,
        }
        if options.n_threads is not None:
            settings["n_threads"] = options.n_threads
        if options.vad and options.vad_model_path is not None:
            settings["vad"] = True
            settings["vad_model_path"] = str(options.vad_model_path)
        elif options.vad:
            logger.debug("No VAD model configured, running without voice activity detection")
        if options.strategy == "beam_search":
            settings["beam_search"] = {"beam_size": options.beam_size, "patience": -1.0}
        else:
            settings["greedy"] = {"best_of": options.best_of}

        for key, value in settings.items():
            if hasattr(params, key):
                setattr(params, key, value)
            else:
                logger.debug("whisper.cpp binding has no parameter %s, skipping", key)

        audio = np.ascontiguousarray(samples, dtype=np.float32)
        status = pw.whisper_full(handle, params, audio, audio.size)
        if status != 0:
            raise TranscriptionError(f"whisper.cpp inference failed with status {status}")

        segments = [
            self._segment(handle, i, options.token_timestamps)
            for i in range(pw.whisper_full_n_segments(handle))
        ]
        language = _decode(pw.whisper_lang_str(pw.whisper_full_lang_id(handle)))
        return RawOutput(language=language, segments=segments)

    def close(self, handle: Any) -> None:
        self._pw.whisper_free(handle)

    def _strategy(self, options: DecodeOptions) -> Any:
        strategies = self._pw.whisper_sampling_strategy
        if options.strategy == "beam_search":
            return strategies.WHISPER_SAMPLING_BEAM_SEARCH
        return strategies.WHISPER_SAMPLING_GREEDY

    def _segment(self, ctx: Any, i: int, with_tokens: bool) -> RawSegment | None:
        pw = self._pw
        try:
            text = _decode(pw.whisper_full_get_segment_text(ctx, i))
            t0 = pw.whisper_full_get_segment_t0(ctx, i)
            t1 = pw.whisper_full_get_segment_t1(ctx, i)
        except (IndexError, RuntimeError, UnicodeError):
            return None

        speaker_turn = getattr(pw, "whisper_full_get_segment_speaker_turn_next", None)
        no_speech = getattr(pw, "whisper_full_get_segment_no_speech_prob", None)

        tokens = []
        if with_tokens:
            for j in range(pw.whisper_full_n_tokens(ctx, i)):
                data = pw.whisper_full_get_token_data(ctx, i, j)
                tokens.append(
                    RawToken(
                        text=_decode(pw.whisper_full_get_token_text(ctx, i, j)),
                        t0=data.t0,
                        t1=data.t1,
                        p=data.p,
                    )
                )

        return RawSegment(
            text=text,
            t0=t0,
            t1=t1,
            speaker_turn_next=bool(speaker_turn(ctx, i)) if speaker_turn else False,
            no_speech_prob=float(no_speech(ctx, i)) if no_speech else 0.0,
            tokens=tokens,
        )


def load_binding() -> Any:
    try:
        import _pywhispercpp
    except ImportError as e:
        raise DependencyError(
            "pywhispercpp",
            "whisper.cpp bindings not installed",
            "Install with: pip install pywhispercpp",
        ) from e
    return _pywhispercpp


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
