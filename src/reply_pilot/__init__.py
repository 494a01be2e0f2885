"""Automated email replies driven by per-recipient personas."""

__version__ = "0.1.0"
