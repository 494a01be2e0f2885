"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ReplyPilotError(RuntimeError):
    """Base class for errors raised by the mail pipeline."""


class ConfigurationError(ReplyPilotError):
    """Raised when environment values or configuration documents are invalid."""


class RuntimeSettings(BaseModel):
    """Deployment values every pipeline stage depends on."""

    secret_name: str | None = Field(
        default=None, description="Identifier of the completion API secret"
    )
    config_location: str | None = Field(
        default=None,
        description="'bundled', 'store://bucket/key' or a filesystem path",
    )
    environment: str | None = Field(
        default=None, description="Deployment environment tag (dev, prod, ...)"
    )
    workflow_id: str | None = Field(
        default=None, description="Workflow started by the trigger stage"
    )


class CompletionSettings(BaseModel):
    """Settings for the chat completion provider."""

    base_url: str = Field(
        default="https://api.openai.com/v1", description="Completion API base URL"
    )
    timeout_seconds: float = Field(
        default=60.0, gt=0, description="Request timeout for completion calls"
    )
    default_model: str = Field(
        default="gpt-4o-mini", description="Model used when a persona sets none"
    )


class SmtpSettings(BaseModel):
    """Settings for the outbound delivery relay."""

    host: str | None = Field(default=None, description="SMTP hostname")
    port: int = Field(default=587, description="SMTP port")
    username: str | None = Field(default=None, description="SMTP username")
    password: str | None = Field(default=None, description="SMTP password")
    use_tls: bool = Field(
        default=True, description="Use STARTTLS; SSL is used when disabled"
    )
    timeout_seconds: float = Field(default=30.0, gt=0)


class StorageSettings(BaseModel):
    """Settings for the local object and secret stores."""

    root: Path = Field(
        default=Path("./var/objects"), description="Object store root directory"
    )
    secrets_dir: Path | None = Field(
        default=None,
        description="Directory of secret files; environment lookup when unset",
    )


class ReplySettings(BaseModel):
    """Formatting preferences for outgoing replies."""

    timezone: str = Field(
        default="Asia/Tokyo", description="Zone used for the attribution line"
    )


class ExecutorSettings(BaseModel):
    """Bounds applied by the local workflow executor."""

    timeout_seconds: float = Field(
        default=24 * 60 * 60, gt=0, description="Overall limit for one run"
    )
    max_finished: int = Field(
        default=1000, gt=0, description="Finished outcomes kept for lookup"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    smtp: SmtpSettings = Field(default_factory=SmtpSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    reply: ReplySettings = Field(default_factory=ReplySettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "REPLY_PILOT_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


_RUNTIME_ENV_NAMES = {
    "secret_name": f"{ENV_PREFIX}RUNTIME__SECRET_NAME",
    "config_location": f"{ENV_PREFIX}RUNTIME__CONFIG_LOCATION",
    "environment": f"{ENV_PREFIX}RUNTIME__ENVIRONMENT",
    "workflow_id": f"{ENV_PREFIX}RUNTIME__WORKFLOW_ID",
}


def require_runtime(
    settings: RuntimeSettings, *, include_workflow: bool = False
) -> RuntimeSettings:
    """Ensure the deployment values needed by a stage are present.

    All missing names are reported in a single :class:`ConfigurationError` so
    an operator can fix the deployment in one pass.
    """
    required = ["secret_name", "config_location", "environment"]
    if include_workflow:
        required.append("workflow_id")
    missing = [
        _RUNTIME_ENV_NAMES[name] for name in required if not getattr(settings, name)
    ]
    if missing:
        raise ConfigurationError(
            "Missing required environment values: " + ", ".join(missing)
        )
    return settings


__all__ = [
    "AppSettings",
    "CompletionSettings",
    "ConfigurationError",
    "ExecutorSettings",
    "LoggingSettings",
    "ReplyPilotError",
    "ReplySettings",
    "RuntimeSettings",
    "SmtpSettings",
    "StorageSettings",
    "load_app_settings",
    "require_runtime",
]
