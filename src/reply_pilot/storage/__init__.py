"""Storage adapters for raw mail, configuration documents and secrets."""

from .object_store import FileSystemObjectStore, ObjectNotFoundError
from .secrets import (
    EnvironmentSecretStore,
    FileSecretStore,
    SecretApiKeyProvider,
    extract_api_key,
    secret_env_name,
)

__all__ = [
    "EnvironmentSecretStore",
    "FileSecretStore",
    "FileSystemObjectStore",
    "ObjectNotFoundError",
    "SecretApiKeyProvider",
    "extract_api_key",
    "secret_env_name",
]
