"""Inbound mail parsing."""

from .parser import MailParser, MalformedMailError

__all__ = ["MailParser", "MalformedMailError"]
