"""Web application entry point for Reply Pilot."""

from .app import create_app

__all__ = ["create_app"]
