"""
voxscribe.config - Transcription options, YAML config loading, validation.

All options are validated when the config is built. A TranscribeConfig that
exists is always usable: unsupported languages, unknown models and
conflicting combinations are rejected up front, never coerced at use time.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from voxscribe.exceptions import ConfigError
from voxscribe.languages import AUTO, normalize_language

CONFIG_FILENAME = "voxscribe.yaml"
CACHE_DIR_ENV = "VOXSCRIBE_CACHE_DIR"

CUSTOM_MODEL = "custom"
DEFAULT_MODEL = "large-v3"
MODEL_PRESETS: tuple[str, ...] = (
    "tiny",
    "tiny.en",
    "base",
    "base.en",
    "small",
    "small.en",
    "medium",
    "medium.en",
    "large-v2",
    "large-v3",
    "large-v3-turbo",
)


class ModelSpec(BaseModel):
    """A whisper model preset, or a custom ggml file on disk."""

    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_MODEL
    path: Path | None = None

    @model_validator(mode="after")
    def validate_variant(self) -> ModelSpec:
        if self.name == CUSTOM_MODEL:
            if self.path is None:
                raise ValueError("custom model requires a path")
        elif self.name not in MODEL_PRESETS:
            raise ValueError(f"unknown model: {self.name} (presets: {', '.join(MODEL_PRESETS)})")
        elif self.path is not None:
            raise ValueError("path is only valid for custom models")
        return self

    @classmethod
    def from_string(cls, value: str) -> ModelSpec:
        """Parse a preset name, or a path to a custom model file."""
        if value in MODEL_PRESETS:
            return cls(name=value)
        if "/" in value or os.sep in value or value.endswith(".bin"):
            return cls(name=CUSTOM_MODEL, path=Path(value).expanduser())
        raise ValueError(f"unknown model: {value} (presets: {', '.join(MODEL_PRESETS)})")

    @property
    def is_custom(self) -> bool:
        return self.name == CUSTOM_MODEL

    @property
    def english_only(self) -> bool:
        return self.name.endswith(".en")

    @property
    def filename(self) -> str:
        """Canonical file name on the model host and in the local cache."""
        if self.path is not None:
            return self.path.name or "custom-model"
        return f"ggml-{self.name}.bin"


class AudioProcessing(BaseModel):
    """Optional sample processing applied after decoding.

    All steps are off by default: the decoded 16kHz PCM goes straight to the
    engine. Enable steps for recordings with DC bias, uneven levels, or long
    silent lead-in/tail.
    """

    model_config = ConfigDict(frozen=True)

    dc_offset_removal: bool = False
    normalize: bool = False
    trim_silence: bool = False
    silence_threshold_db: float = Field(default=-40.0, le=0.0)
    silence_pad_ms: int = Field(default=50, ge=0)

    @classmethod
    def all(cls) -> AudioProcessing:
        """Enable DC offset removal, peak normalization and silence trimming."""
        return cls(dc_offset_removal=True, normalize=True, trim_silence=True)


class TranscribeConfig(BaseModel):
    """Resolved, validated options for one transcription run."""

    model_config = ConfigDict(frozen=True)

    model: ModelSpec = Field(default_factory=ModelSpec)
    language: str = AUTO
    translate: bool = False
    word_timestamps: bool = False
    diarize: bool = False
    threads: int | None = Field(default=None, ge=1)
    gpu: bool = True
    gpu_device: int = Field(default=0, ge=0)
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    beam_size: int | None = Field(default=None, ge=1, le=16)
    vad: bool = True
    # Silero VAD weights for whisper.cpp (ggml-silero-*.bin). VAD is skipped without one.
    vad_model_path: Path | None = None
    cache_dir: Path | None = None
    audio: AudioProcessing = Field(default_factory=AudioProcessing)

    @field_validator("model", mode="before")
    @classmethod
    def parse_model_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ModelSpec.from_string(v)
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return normalize_language(v)

    @model_validator(mode="after")
    def validate_combinations(self) -> TranscribeConfig:
        if self.model.english_only:
            if self.translate:
                raise ValueError(f"model {self.model.name} is English-only and cannot translate")
            if self.language not in (AUTO, "en"):
                raise ValueError(
                    f"model {self.model.name} is English-only; cannot force language "
                    f"'{self.language}'"
                )
        return self

    @property
    def is_auto_language(self) -> bool:
        return self.language == AUTO


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        msg = err["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def build_config(**options: Any) -> TranscribeConfig:
    """Build a TranscribeConfig, raising ConfigError on any invalid option.

    Keyword arguments set to None are dropped so that unset CLI flags fall
    back to the defaults.
    """
    values = {k: v for k, v in options.items() if v is not None}
    try:
        return TranscribeConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {_describe_validation_error(e)}") from e


def parse_model(value: str) -> ModelSpec:
    """Parse a model preset name or custom model path."""
    try:
        return ModelSpec.from_string(value)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def load_config_file(path: Path) -> dict[str, Any]:
    """Read raw option values from a YAML config file."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping of options")
    return raw


def merge_config(file_values: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge config file values with explicit overrides. Overrides take precedence."""
    merged = dict(file_values)
    for key, value in overrides.items():
        if key == "audio" and isinstance(value, dict):
            audio = dict(merged.get("audio") or {})
            audio.update({k: v for k, v in value.items() if v is not None})
            merged["audio"] = audio
        elif value is not None:
            merged[key] = value
    return merged


def load_config(
    path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> TranscribeConfig:
    """Load and validate configuration.

    Reads ``path`` if given, otherwise ``voxscribe.yaml`` in the working
    directory when present, then applies overrides on top.
    """
    if path is not None:
        file_values = load_config_file(path)
    else:
        default_file = Path.cwd() / CONFIG_FILENAME
        file_values = load_config_file(default_file) if default_file.exists() else {}

    merged = merge_config(file_values, overrides or {})
    return build_config(**merged)


def resolve_cache_dir(config: TranscribeConfig | None = None) -> Path:
    """Resolve the model cache directory.

    Order: explicit config value, $VOXSCRIBE_CACHE_DIR, $XDG_CACHE_HOME,
    then ~/.cache.
    """
    if config is not None and config.cache_dir is not None:
        return config.cache_dir.expanduser()

    env_dir = os.environ.get(CACHE_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()

    xdg = os.environ.get("XDG_CACHE_HOME")
    root = Path(xdg) if xdg else Path.home() / ".cache"
    return root / "voxscribe" / "models"
