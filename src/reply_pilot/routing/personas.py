"""Persona configuration documents and recipient-based resolution."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError, model_validator

from reply_pilot.core.config import ConfigurationError
from reply_pilot.core.interfaces import ConfigSource, ObjectStore
from reply_pilot.core.models import WireModel

LOGGER = logging.getLogger(__name__)

BUNDLED_LOCATION = "bundled"
STORE_SCHEME = "store://"


class DelayRange(WireModel):
    """Inclusive bounds, in seconds, for the randomized reply delay."""

    minimum: int = Field(alias="min", ge=0)
    maximum: int = Field(alias="max", ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> DelayRange:
        if self.minimum > self.maximum:
            raise ValueError(
                f"delay min ({self.minimum}) must not exceed max ({self.maximum})"
            )
        return self


class CompletionOverrides(WireModel):
    """Per-persona completion parameters merged over the defaults."""

    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)


class PersonaConfig(WireModel):
    """Prompt and signature used when replying as one recipient."""

    system_prompt: str
    signature: str
    delay: DelayRange | None = None
    model: str | None = None
    completion: CompletionOverrides | None = None


class AppConfig(WireModel):
    """Persona mapping keyed by recipient local-part plus global defaults."""

    personas: dict[str, PersonaConfig] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("personas", "prompts"),
    )
    default: PersonaConfig
    delay: DelayRange
    persona_delay_overrides: bool = True


def local_part(address: str) -> str:
    """Return the text before the first ``@``, or the whole address without one."""
    return address.split("@", 1)[0]


def resolve_persona(config: AppConfig, recipient_address: str) -> PersonaConfig:
    """Pick the persona for ``recipient_address``, falling back to the default."""
    key = local_part(recipient_address)
    persona = config.personas.get(key)
    if persona is None:
        LOGGER.debug("No persona for '%s'; using default", key)
        return config.default
    return persona


def resolve_delay_range(config: AppConfig, persona: PersonaConfig) -> DelayRange:
    """Return the delay bounds that apply to ``persona``."""
    if config.persona_delay_overrides and persona.delay is not None:
        return persona.delay
    return config.delay


class BundledConfigSource:
    """Configuration shipped inside the package."""

    def __init__(self, resource: str = "default_config.json") -> None:
        self._resource = resource

    def read(self) -> bytes | None:
        target = resources.files("reply_pilot.data").joinpath(self._resource)
        if not target.is_file():
            return None
        return target.read_bytes()

    def __repr__(self) -> str:
        return f"BundledConfigSource({self._resource!r})"


class FileConfigSource:
    """Configuration document on the local filesystem."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def read(self) -> bytes | None:
        if not self._path.is_file():
            return None
        return self._path.read_bytes()

    def __repr__(self) -> str:
        return f"FileConfigSource({str(self._path)!r})"


class ObjectStoreConfigSource:
    """Configuration document kept in object storage."""

    def __init__(self, store: ObjectStore, bucket: str, key: str) -> None:
        self._store = store
        self._bucket = bucket
        self._key = key

    def read(self) -> bytes | None:
        try:
            return self._store.get_object(self._bucket, self._key)
        except LookupError:
            return None

    def __repr__(self) -> str:
        return f"ObjectStoreConfigSource({self._bucket!r}, {self._key!r})"


def config_source_from_location(
    location: str, store: ObjectStore | None = None
) -> ConfigSource:
    """Map a configured location string onto a :class:`ConfigSource`."""
    if location == BUNDLED_LOCATION:
        return BundledConfigSource()
    if location.startswith(STORE_SCHEME):
        bucket, _, key = location.removeprefix(STORE_SCHEME).partition("/")
        if not bucket or not key:
            raise ConfigurationError(
                f"Config location '{location}' must look like store://bucket/key"
            )
        if store is None:
            raise ConfigurationError(
                f"Config location '{location}' needs an object store"
            )
        return ObjectStoreConfigSource(store, bucket, key)
    return FileConfigSource(location)


def load_app_config(source: ConfigSource) -> AppConfig:
    """Read and validate the persona configuration document."""
    raw = source.read()
    if raw is None:
        raise ConfigurationError(f"Configuration document not found: {source!r}")
    if not raw.strip():
        raise ConfigurationError(f"Configuration document is empty: {source!r}")
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigurationError(
            f"Configuration document is not valid JSON: {source!r}"
        ) from exc
    try:
        return AppConfig.model_validate(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Configuration document is invalid: {exc}") from exc


__all__ = [
    "AppConfig",
    "BundledConfigSource",
    "CompletionOverrides",
    "DelayRange",
    "FileConfigSource",
    "ObjectStoreConfigSource",
    "PersonaConfig",
    "config_source_from_location",
    "load_app_config",
    "local_part",
    "resolve_delay_range",
    "resolve_persona",
]
