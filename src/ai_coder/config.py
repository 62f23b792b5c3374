"""Configuration management for ai-coder."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ai_coder.core.types import GenerationOptions
from ai_coder.errors import ConfigurationError

DEFAULT_MODEL = "qwen2.5-coder"
DEFAULT_HOST = "http://localhost:11434"
DEFAULT_CONFIG_PATH = Path("~/.config/ai-coder/config.toml")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Resolved settings for one invocation."""

    model_config = SettingsConfigDict(
        env_prefix="AI_CODER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Inference host
    model: str = Field(default=DEFAULT_MODEL, description="Ollama model name")
    host: str = Field(
        default=DEFAULT_HOST,
        validation_alias=AliasChoices("AI_CODER_HOST", "OLLAMA_HOST"),
        description="Base URL of the Ollama server",
    )
    timeout_seconds: float = Field(default=300.0, gt=0, description="Connect/read timeout for the model call")

    # Generation options
    temperature: float | None = Field(default=None, description="Sampling temperature, clamped to [0, 2]")
    top_p: float | None = Field(default=None, description="Nucleus sampling, clamped to [0, 1]")
    top_k: int | None = Field(default=None, gt=0, description="Top-k sampling")
    num_ctx: int | None = Field(default=None, gt=0, description="Context window in tokens")
    max_tokens: int | None = Field(default=None, gt=0, description="Upper bound on generated tokens")

    # Agent mode
    agent_mode: bool = Field(default=False, description="Extract and run shell commands from the response")
    auto_approve: bool = Field(default=False, description="Run extracted commands without asking")
    allow_unsafe_exec: bool = Field(default=False, description="Acknowledge unreviewed command execution")
    strict: bool = Field(default=False, description="Exit non-zero when an agent command fails")

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")

    config_path: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("AI_CODER_CONFIG", "AI_CODER_CONFIG_PATH"),
        description="TOML config file",
    )

    @field_validator("host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        host = value.strip().rstrip("/")
        if not host:
            raise ValueError("host cannot be empty")
        if "://" not in host:
            host = f"http://{host}"
        return host

    @field_validator("model")
    @classmethod
    def _require_model(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model cannot be empty")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @model_validator(mode="after")
    def _check_token_budget(self) -> Settings:
        if self.max_tokens is not None and self.num_ctx is not None and self.max_tokens > self.num_ctx:
            raise ValueError("max_tokens cannot exceed num_ctx")
        return self

    @property
    def mode(self) -> str:
        return "AGENT" if self.agent_mode else "CHAT"

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            num_ctx=self.num_ctx,
            num_predict=self.max_tokens,
        )


def read_config_file(path: Path, *, required: bool = False) -> dict[str, Any]:
    """Read settings values from a TOML file.

    A missing file yields no values unless ``required`` is set.
    """
    if not path.is_file():
        if required:
            raise ConfigurationError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as file:
            data = tomllib.load(file)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"cannot read config file {path}: {exc}") from exc

    known = set(Settings.model_fields) - {"config_path"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown keys in {path}: {', '.join(unknown)}")
    return data


def load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Resolve settings: CLI overrides > environment > config file > defaults.

    Args:
        config_path: Explicit config file; must exist when given.
        **overrides: Values given on the command line; ``None`` means unset.

    Returns:
        Settings instance
    """
    try:
        from_env = Settings()
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_error(exc)) from exc

    explicit_path = config_path or from_env.config_path
    path = (explicit_path or DEFAULT_CONFIG_PATH).expanduser()
    values = read_config_file(path, required=explicit_path is not None)
    values.update(from_env.model_dump(include=from_env.model_fields_set - {"config_path"}))
    values.update({key: value for key, value in overrides.items() if value is not None})
    values["config_path"] = path if path.is_file() else None

    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_error(exc)) from exc


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "settings"
        problems.append(f"{location}: {error['msg']}")
    return "invalid settings: " + "; ".join(problems)
