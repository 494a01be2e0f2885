"""Core utilities for configuration, logging, and dependency wiring."""

from .config import (
    AppSettings,
    ConfigurationError,
    ReplyPilotError,
    RuntimeSettings,
    load_app_settings,
    require_runtime,
)
from .container import ServiceContainer
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "ConfigurationError",
    "ReplyPilotError",
    "RuntimeSettings",
    "ServiceContainer",
    "configure_logging",
    "load_app_settings",
    "require_runtime",
]
