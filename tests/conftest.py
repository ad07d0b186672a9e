"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import pytest

from voxscribe.transcribe.backend import DecodeOptions, GpuOptions, RawOutput, RawSegment, RawToken
from voxscribe.transcript import Segment, Transcript, Word

SAMPLE_RATE = 16_000


class FakeEngine:
    """Scripted inference engine that records how it was driven."""

    def __init__(
        self,
        output: RawOutput | None = None,
        init_error: Exception | None = None,
        run_error: Exception | None = None,
    ) -> None:
        self.output = output or RawOutput(language="en", segments=[])
        self.init_error = init_error
        self.run_error = run_error
        self.model_path: Path | None = None
        self.gpu: GpuOptions | None = None
        self.options: DecodeOptions | None = None
        self.samples: np.ndarray | None = None
        self.closed = False

    def initialize(self, model_path: Path, gpu: GpuOptions) -> Any:
        if self.init_error is not None:
            raise self.init_error
        self.model_path = model_path
        self.gpu = gpu
        return "handle"

    def run(self, handle: Any, samples: np.ndarray, options: DecodeOptions) -> RawOutput:
        assert handle == "handle"
        if self.run_error is not None:
            raise self.run_error
        self.samples = samples
        self.options = options
        return self.output

    def close(self, handle: Any) -> None:
        self.closed = True


@pytest.fixture
def raw_output() -> RawOutput:
    """Two engine segments with tokens, including control markers."""
    return RawOutput(
        language="en",
        segments=[
            RawSegment(
                text=" Hello world.",
                t0=0,
                t1=250,
                tokens=[
                    RawToken(text="[_BEG_]", t0=0, t1=0, p=0.99),
                    RawToken(text=" Hello", t0=0, t1=120, p=0.91),
                    RawToken(text=" world.", t0=120, t1=250, p=0.87),
                ],
            ),
            RawSegment(
                text=" Second line.",
                t0=250,
                t1=480,
                speaker_turn_next=True,
                no_speech_prob=0.02,
                tokens=[
                    RawToken(text=" Second", t0=250, t1=370, p=0.8),
                    RawToken(text=" line.", t0=370, t1=480, p=1.2),
                    RawToken(text="<|endoftext|>", t0=480, t1=480, p=0.5),
                ],
            ),
        ],
    )


@pytest.fixture
def fake_engine(raw_output: RawOutput) -> FakeEngine:
    return FakeEngine(output=raw_output)


@pytest.fixture
def sample_transcript() -> Transcript:
    """Return a small two-segment transcript."""
    return Transcript(
        segments=[
            Segment(
                start=0.0,
                end=2.5,
                text=" Hello world.",
                words=[
                    Word(text=" Hello", start=0.0, end=1.2, probability=0.91),
                    Word(text=" world.", start=1.2, end=2.5, probability=0.87),
                ],
            ),
            Segment(start=2.5, end=4.8, text=" Second line. ", speaker_turn=True),
        ],
        language="en",
        duration=5.0,
        model="base",
    )


@pytest.fixture
def tone() -> np.ndarray:
    """One second of a 440Hz sine at half amplitude."""
    t = np.arange(SAMPLE_RATE, dtype=np.float32) / SAMPLE_RATE
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def padded_tone(tone: np.ndarray) -> np.ndarray:
    """Half a second of silence, one second of tone, half a second of silence."""
    silence = np.zeros(SAMPLE_RATE // 2, dtype=np.float32)
    return np.concatenate([silence, tone, silence])


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "models"
    path.mkdir()
    return path


@pytest.fixture
def engine_factory() -> type[FakeEngine]:
    """The FakeEngine class, for tests that script their own output."""
    return FakeEngine
