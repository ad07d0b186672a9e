"""Tests for voxscribe.validation module."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from voxscribe import validation
from voxscribe.exceptions import DependencyError
from voxscribe.validation import check_disk_space, check_ffmpeg, check_whisper, check_ytdlp


def _which(available: dict[str, str]):
    return lambda name: available.get(name)


class TestCheckFfmpeg:
    def test_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(validation.shutil, "which", _which({"ffmpeg": "/usr/bin/ffmpeg"}))
        monkeypatch.setattr(
            validation.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(
                cmd, 0, stdout="ffmpeg version 6.1.1 Copyright (c)\n", stderr=""
            ),
        )

        info = check_ffmpeg()

        assert info == {"path": "/usr/bin/ffmpeg", "version": "6.1.1"}

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(validation.shutil, "which", _which({}))

        with pytest.raises(DependencyError) as exc_info:
            check_ffmpeg()
        assert exc_info.value.dependency == "ffmpeg"
        assert "ffmpeg" in exc_info.value.install_hint


class TestCheckYtdlp:
    def test_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(validation.shutil, "which", _which({"yt-dlp": "/usr/bin/yt-dlp"}))
        monkeypatch.setattr(
            validation.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout="2024.08.06\n", stderr=""),
        )

        assert check_ytdlp()["version"] == "2024.08.06"

    def test_version_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def run(cmd, **kw):
            raise subprocess.TimeoutExpired(cmd, 5)

        monkeypatch.setattr(validation.shutil, "which", _which({"yt-dlp": "/usr/bin/yt-dlp"}))
        monkeypatch.setattr(validation.subprocess, "run", run)

        assert check_ytdlp()["version"] == "unknown"

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(validation.shutil, "which", _which({}))

        with pytest.raises(DependencyError, match="yt-dlp"):
            check_ytdlp()


class TestCheckWhisper:
    def test_missing_binding(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "_pywhispercpp", None)

        with pytest.raises(DependencyError) as exc_info:
            check_whisper()
        assert exc_info.value.dependency == "pywhispercpp"


class TestCheckDiskSpace:
    def test_existing_directory(self, tmp_path: Path) -> None:
        result = check_disk_space(tmp_path, 1)
        assert result["required_mb"] == 1
        assert result["available_mb"] > 0
        assert result["sufficient"] is True

    def test_uses_existing_ancestor(self, tmp_path: Path) -> None:
        result = check_disk_space(tmp_path / "not" / "yet" / "created", 1)
        assert result["sufficient"] is True

    def test_insufficient(self, tmp_path: Path) -> None:
        result = check_disk_space(tmp_path, 10**12)
        assert result["sufficient"] is False
