"""Secret stores and API key extraction."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from reply_pilot.core.config import ConfigurationError
from reply_pilot.core.interfaces import SecretStore

SECRET_ENV_PREFIX = "REPLY_PILOT_SECRET_"
API_KEY_FIELD = "apiKey"


class FileSecretStore:
    """Secrets stored as files under a directory, named by secret identifier."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    def get_secret(self, name: str) -> str | None:
        directory = self._directory.resolve()
        target = (directory / name).resolve()
        if not target.is_relative_to(directory) or not target.is_file():
            return None
        return target.read_text(encoding="utf-8").strip()


class EnvironmentSecretStore:
    """Secrets read from ``REPLY_PILOT_SECRET_<NAME>`` environment variables.

    The identifier is upper-cased and every run of characters outside
    ``[A-Z0-9]`` becomes ``_``, so ``reply-pilot/openai-key`` is read from
    ``REPLY_PILOT_SECRET_REPLY_PILOT_OPENAI_KEY``.
    """

    def get_secret(self, name: str) -> str | None:
        return os.environ.get(secret_env_name(name))


def secret_env_name(name: str) -> str:
    """Return the environment variable consulted for secret ``name``."""
    return SECRET_ENV_PREFIX + re.sub(r"[^A-Z0-9]+", "_", name.upper()).strip("_")


def extract_api_key(secret: str | None) -> str:
    """Return the API key from a raw secret string or a JSON ``apiKey`` object."""
    if secret is None or not secret.strip():
        raise ConfigurationError("Secret value is empty")
    text = secret.strip()
    if not text.startswith("{"):
        return text
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("Secret value is not valid JSON") from exc
    api_key = document.get(API_KEY_FIELD) if isinstance(document, dict) else None
    if not isinstance(api_key, str) or not api_key:
        raise ConfigurationError(f"Secret JSON has no '{API_KEY_FIELD}' field")
    return api_key


class SecretApiKeyProvider:
    """Callable fetching the completion API key from a secret store on each call."""

    def __init__(self, store: SecretStore, secret_name: str | None) -> None:
        self._store = store
        self._secret_name = secret_name

    def __call__(self) -> str:
        if not self._secret_name:
            raise ConfigurationError("Completion API secret name is not configured")
        return extract_api_key(self._store.get_secret(self._secret_name))


__all__ = [
    "EnvironmentSecretStore",
    "FileSecretStore",
    "SecretApiKeyProvider",
    "extract_api_key",
    "secret_env_name",
]
