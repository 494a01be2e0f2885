"""Transport adapters for outbound delivery."""

from .smtp_client import (
    ConsoleMailTransport,
    DeliveryError,
    SmtpClient,
    SmtpMailTransport,
    build_mime_message,
)

__all__ = [
    "ConsoleMailTransport",
    "DeliveryError",
    "SmtpClient",
    "SmtpMailTransport",
    "build_mime_message",
]
