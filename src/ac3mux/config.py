"""Configuration management for ac3mux."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from ac3mux.utils.language import is_undetermined, normalize_language_code


class AudioConfig(BaseModel):
    """Audio stream selection configuration."""

    accepted_languages: List[str] = Field(
        default=["eng", "ger", "spa", "jpn"],
        description="Audio languages to keep, any other language is dropped",
    )
    main_language: str = Field(
        default="ger", description="Language of the default audio track"
    )
    passthrough_codecs: List[str] = Field(
        default=["eac3", "ac3"], description="Audio codecs copied without re-encoding"
    )

    @field_validator("accepted_languages")
    @classmethod
    def validate_languages(cls, v: List[str]) -> List[str]:
        """Normalize language codes and reject undetermined ones."""
        normalized = []
        for code in v:
            if is_undetermined(code):
                raise ValueError(f"Undetermined language code not allowed: '{code}'")
            code = normalize_language_code(code)
            if code not in normalized:
                normalized.append(code)
        if not normalized:
            raise ValueError("At least one accepted language is required")
        return normalized

    @field_validator("main_language")
    @classmethod
    def validate_main_language(cls, v: str) -> str:
        """Normalize the main language code."""
        if is_undetermined(v):
            raise ValueError("Main language must be a real language code")
        return normalize_language_code(v)

    @field_validator("passthrough_codecs")
    @classmethod
    def validate_codecs(cls, v: List[str]) -> List[str]:
        """Lower-case codec names."""
        return [codec.strip().lower() for codec in v]

    @model_validator(mode="after")
    def check_main_language_accepted(self) -> "AudioConfig":
        """The main language has to survive the language filter."""
        if self.main_language not in self.accepted_languages:
            raise ValueError(
                f"Main language '{self.main_language}' must be one of "
                f"accepted_languages {self.accepted_languages}"
            )
        return self


class SubtitleConfig(BaseModel):
    """Subtitle handling configuration."""

    convert: bool = Field(
        default=True,
        description="Convert convert_codecs to target_codec; off copies every subtitle as is",
    )
    convert_codecs: List[str] = Field(
        default=["ass", "ssa"], description="Subtitle codecs converted to target_codec"
    )
    target_codec: str = Field(default="srt", description="Codec for converted subtitles")

    @field_validator("convert_codecs")
    @classmethod
    def validate_codecs(cls, v: List[str]) -> List[str]:
        """Lower-case codec names."""
        return [codec.strip().lower() for codec in v]


class OutputConfig(BaseModel):
    """Output file configuration."""

    suffix: str = Field(
        default="_transcoded", description="Suffix inserted before the output extension"
    )
    extensions: List[str] = Field(
        default=[".mkv", ".mp4"], description="Media file extensions to pick up"
    )

    @field_validator("suffix")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """Reject suffixes that would map the output onto the input."""
        if not v or "/" in v or "\\" in v:
            raise ValueError("Output suffix must be a non-empty file name fragment")
        return v

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """Ensure extensions are lower-case and start with a dot."""
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class ProcessingConfig(BaseModel):
    """Processing configuration."""

    worker_count: int = Field(default=1, ge=1, description="Files processed concurrently")
    timeout_seconds: int = Field(default=7200, gt=0, description="ffmpeg timeout per file")
    probe_timeout_seconds: int = Field(default=30, gt=0, description="ffprobe timeout")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="info", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class ExecutionConfig(BaseModel):
    """Execution configuration."""

    dry_run: bool = Field(default=False, description="Plan only, never run ffmpeg")


@dataclass(frozen=True)
class PlanSettings:
    """Immutable settings consumed by the classifier and plan builder."""

    accepted_languages: frozenset[str]
    main_language: str
    passthrough_codecs: frozenset[str]
    subtitle_conversion: bool = True
    subtitle_convert_codecs: frozenset[str] = frozenset({"ass", "ssa"})
    subtitle_target_codec: str = "srt"


class Config(BaseModel):
    """Main configuration model."""

    audio: AudioConfig = Field(default_factory=AudioConfig, description="Audio selection")
    subtitles: SubtitleConfig = Field(
        default_factory=SubtitleConfig, description="Subtitle handling"
    )
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output files")
    processing: ProcessingConfig = Field(
        default_factory=ProcessingConfig, description="Processing configuration"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")
    execution: ExecutionConfig = Field(
        default_factory=ExecutionConfig, description="Execution configuration"
    )

    def plan_settings(self) -> PlanSettings:
        """Freeze the stream selection part of the configuration.

        Returns:
            PlanSettings value for the classifier and plan builder
        """
        return PlanSettings(
            accepted_languages=frozenset(self.audio.accepted_languages),
            main_language=self.audio.main_language,
            passthrough_codecs=frozenset(self.audio.passthrough_codecs),
            subtitle_conversion=self.subtitles.convert,
            subtitle_convert_codecs=frozenset(self.subtitles.convert_codecs),
            subtitle_target_codec=self.subtitles.target_codec,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively replace ${VAR_NAME} with os.environ['VAR_NAME'].

        Raises:
            ValueError: If a referenced variable is not set
        """
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            pattern = r"\$\{([^}]+)\}"

            def replace_var(match):
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable '{var_name}' not found "
                        f"(referenced in configuration)"
                    )
                return value

            return re.sub(pattern, replace_var, obj)
        else:
            return obj


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config()

    return Config.from_yaml(path)
