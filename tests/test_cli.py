"""Tests for voxscribe CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from voxscribe import __version__, cli
from voxscribe.cli import app
from voxscribe.exceptions import DecodeError, DependencyError
from voxscribe.transcript import Transcript

runner = CliRunner()


@pytest.fixture
def recorded_transcribe(monkeypatch: pytest.MonkeyPatch, sample_transcript: Transcript) -> dict:
    """Stub the pipeline and record the config it was called with."""
    seen: dict = {}

    def transcribe_source(source, config, progress=None):
        seen["source"] = source
        seen["config"] = config
        return sample_transcript

    monkeypatch.setattr(cli, "transcribe_source", transcribe_source)
    return seen


class RecordingProgress:
    """Stands in for the rich download bar and records stop()."""

    def __init__(self) -> None:
        self.updates: list[tuple[int, int | None]] = []
        self.stopped = False

    def __call__(self, done: int, total: int | None) -> None:
        self.updates.append((done, total))

    def stop(self) -> None:
        self.stopped = True


def _record(bars: list[RecordingProgress]) -> RecordingProgress:
    bar = RecordingProgress()
    bars.append(bar)
    return bar


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestTranscribeCommand:
    def test_text_to_stdout(self, recorded_transcribe: dict, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["transcribe", "talk.mp3"])

        assert result.exit_code == 0
        assert "Hello world. Second line." in result.output
        assert recorded_transcribe["source"] == "talk.mp3"

    def test_srt_to_file(self, recorded_transcribe: dict, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        out = tmp_path / "talk.srt"

        result = runner.invoke(app, ["transcribe", "talk.mp3", "-f", "srt", "-o", str(out)])

        assert result.exit_code == 0
        assert out.read_text().startswith("1\n00:00:00,000 --> 00:00:02,500\n")

    def test_options_reach_config(
        self, recorded_transcribe: dict, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(
            app,
            [
                "transcribe",
                "talk.mp3",
                "-m",
                "small",
                "-l",
                "german",
                "--beam-size",
                "4",
                "--no-gpu",
                "--word-timestamps",
                "--normalize",
                "--trim-silence",
            ],
        )

        assert result.exit_code == 0
        config = recorded_transcribe["config"]
        assert config.model.name == "small"
        assert config.language == "de"
        assert config.beam_size == 4
        assert config.gpu is False
        assert config.word_timestamps is True
        assert config.audio.normalize is True
        assert config.audio.trim_silence is True
        assert config.audio.dc_offset_removal is False

    def test_config_file_with_override(
        self, recorded_transcribe: dict, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("model: tiny\nlanguage: fr\naudio:\n  normalize: true\n")

        result = runner.invoke(
            app, ["transcribe", "talk.mp3", "-c", str(config_file), "-l", "en"]
        )

        assert result.exit_code == 0
        config = recorded_transcribe["config"]
        assert config.model.name == "tiny"
        assert config.language == "en"
        assert config.audio.normalize is True

    def test_invalid_option(self, recorded_transcribe: dict, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["transcribe", "talk.mp3", "-l", "klingon"])

        assert result.exit_code == 1
        assert "unsupported language" in result.output
        assert "config" not in recorded_transcribe

    def test_pipeline_error(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)

        def fail(source, config, progress=None):
            raise DecodeError("ffmpeg failed")

        monkeypatch.setattr(cli, "transcribe_source", fail)

        result = runner.invoke(app, ["transcribe", "broken.mp3"])

        assert result.exit_code == 1
        assert "ffmpeg failed" in result.output

    def test_vad_model_reaches_config(
        self, recorded_transcribe: dict, tmp_path: Path, monkeypatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        vad_file = tmp_path / "ggml-silero-v5.1.2.bin"

        result = runner.invoke(app, ["transcribe", "talk.mp3", "--vad-model", str(vad_file)])

        assert result.exit_code == 0
        assert recorded_transcribe["config"].vad_model_path == vad_file

    def test_progress_stopped_on_unexpected_error(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.chdir(tmp_path)
        bars: list[RecordingProgress] = []
        monkeypatch.setattr(cli, "DownloadProgress", lambda console: _record(bars))

        def fail(source, config, progress=None):
            progress(10, 100)
            raise RuntimeError("engine crashed")

        monkeypatch.setattr(cli, "transcribe_source", fail)

        result = runner.invoke(app, ["transcribe", "talk.mp3"])

        assert result.exit_code != 0
        assert isinstance(result.exception, RuntimeError)
        assert bars[0].stopped


class TestConvertCommand:
    def test_json_to_vtt(self, sample_transcript: Transcript, tmp_path: Path) -> None:
        source = tmp_path / "talk.json"
        source.write_text(sample_transcript.model_dump_json())

        result = runner.invoke(app, ["convert", str(source), "-f", "vtt"])

        assert result.exit_code == 0
        assert "WEBVTT" in result.output
        assert "00:00:02.500 --> 00:00:04.800" in result.output

    def test_invalid_json(self, tmp_path: Path) -> None:
        source = tmp_path / "bad.json"
        source.write_text(json.dumps({"segments": "nope"}))

        result = runner.invoke(app, ["convert", str(source)])

        assert result.exit_code == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["convert", str(tmp_path / "missing.json")])
        assert result.exit_code == 1


class TestModelsCommand:
    def test_lists_presets_and_cache(self, tmp_path: Path) -> None:
        (tmp_path / "ggml-tiny.bin").write_bytes(b"x" * 10)
        (tmp_path / "ggml-finetuned.bin").write_bytes(b"x" * 10)

        result = runner.invoke(app, ["models", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "large-v3" in result.output
        assert "tiny" in result.output
        assert "ggml-finetuned.bin" in result.output


class TestDownloadModelCommand:
    def test_unknown_model(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["download-model", "huge", "--cache-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "unknown model" in result.output

    def test_custom_path_rejected(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["download-model", str(tmp_path / "m.bin"), "--cache-dir", str(tmp_path)]
        )
        assert result.exit_code == 1
        assert "preset" in result.output

    def test_already_cached(self, tmp_path: Path) -> None:
        (tmp_path / "ggml-tiny.bin").write_bytes(b"x")

        result = runner.invoke(app, ["download-model", "tiny", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 0
        assert "Model ready" in result.output

    def test_progress_stopped_on_unexpected_error(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        (tmp_path / "ggml-tiny.bin").write_bytes(b"x")
        bars: list[RecordingProgress] = []
        monkeypatch.setattr(cli, "DownloadProgress", lambda console: _record(bars))

        def fail(spec, cache_dir, progress=None):
            progress(1, 2)
            raise RuntimeError("socket closed")

        monkeypatch.setattr(cli, "ensure_model", fail)

        result = runner.invoke(app, ["download-model", "tiny", "--cache-dir", str(tmp_path)])

        assert result.exit_code != 0
        assert isinstance(result.exception, RuntimeError)
        assert bars[0].stopped


class TestLanguagesCommand:
    def test_lists_languages(self) -> None:
        result = runner.invoke(app, ["languages"])
        assert result.exit_code == 0
        assert "english" in result.output
        assert "yue" in result.output


class TestDoctorCommand:
    def test_all_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        found = lambda: {"path": "/usr/bin/tool", "version": "1.0"}  # noqa: E731
        monkeypatch.setattr(cli, "check_ffmpeg", found)
        monkeypatch.setattr(cli, "check_ytdlp", found)
        monkeypatch.setattr(cli, "check_whisper", found)

        result = runner.invoke(app, ["doctor"])

        assert result.exit_code == 0

    def test_missing_dependency(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def missing():
            raise DependencyError("yt-dlp", "not found", "pip install yt-dlp")

        found = lambda: {"path": "/usr/bin/tool", "version": "1.0"}  # noqa: E731
        monkeypatch.setattr(cli, "check_ffmpeg", found)
        monkeypatch.setattr(cli, "check_ytdlp", missing)
        monkeypatch.setattr(cli, "check_whisper", found)

        result = runner.invoke(app, ["doctor"])

        assert result.exit_code == 1
        assert "Missing" in result.output
