"""Persona configuration loading and recipient routing."""

from .personas import (
    AppConfig,
    BundledConfigSource,
    CompletionOverrides,
    DelayRange,
    FileConfigSource,
    ObjectStoreConfigSource,
    PersonaConfig,
    config_source_from_location,
    load_app_config,
    local_part,
    resolve_delay_range,
    resolve_persona,
)

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
