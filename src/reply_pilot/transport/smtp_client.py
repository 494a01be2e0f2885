"""SMTP delivery of plain-text replies."""

from __future__ import annotations

import logging
import smtplib
from email.header import Header
from email.mime.text import MIMEText
from typing import TYPE_CHECKING

from reply_pilot.core.config import ReplyPilotError
from reply_pilot.core.models import OutgoingMail

if TYPE_CHECKING:
    from reply_pilot.core.config import SmtpSettings

LOGGER = logging.getLogger(__name__)


class DeliveryError(ReplyPilotError):
    """Raised when the delivery relay rejects or cannot accept a reply.

    Failures are surfaced to the caller and never retried here.
    """


class SmtpClient:
    """SMTP client for sending replies.

    Provides context manager interface for automatic connection management.
    Supports both TLS (STARTTLS) and SSL connections.

    Example:
        >>> settings = SmtpSettings(host="smtp.example.com", ...)
        >>> with SmtpClient(settings) as client:
        ...     client.send(OutgoingMail(from_address="bot@example.com", ...))
    """

    def __init__(self, settings: SmtpSettings) -> None:
        """Initialize SMTP client with configuration.

        Args:
            settings: SMTP configuration settings
        """
        self._settings = settings
        self._connection: smtplib.SMTP | None = None

    def __enter__(self) -> SmtpClient:
        """Enter context manager, establishing connection."""
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        """Exit context manager, closing connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish SMTP connection and authenticate.

        Raises:
            DeliveryError: If connection or authentication fails
        """
        if not self._settings.host:
            raise DeliveryError("SMTP host not configured")

        LOGGER.info(
            "Attempting SMTP connection to %s:%d",
            self._settings.host,
            self._settings.port,
        )

        try:
            if self._settings.use_tls:
                self._connection = smtplib.SMTP(
                    self._settings.host,
                    self._settings.port,
                    timeout=self._settings.timeout_seconds,
                )
                self._connection.starttls()
            else:
                self._connection = smtplib.SMTP_SSL(
                    self._settings.host,
                    self._settings.port,
                    timeout=self._settings.timeout_seconds,
                )

            if self._settings.username and self._settings.password:
                LOGGER.debug("Authenticating as %s", self._settings.username)
                self._connection.login(
                    self._settings.username,
                    self._settings.password,
                )
        except smtplib.SMTPAuthenticationError as exc:
            LOGGER.error("SMTP authentication failed: %s", exc)
            self.disconnect()
            raise DeliveryError(f"SMTP authentication failed: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("SMTP error: %s", exc)
            self.disconnect()
            raise DeliveryError(f"SMTP error: {exc}") from exc
        except OSError as exc:
            LOGGER.error("Network error connecting to SMTP server: %s", exc)
            self.disconnect()
            raise DeliveryError(f"Network error: {exc}") from exc

    def disconnect(self) -> None:
        """Close SMTP connection gracefully."""
        if self._connection:
            try:
                self._connection.quit()
            except (smtplib.SMTPException, OSError) as exc:
                LOGGER.warning("Error closing SMTP connection: %s", exc)
            finally:
                self._connection.close()
                self._connection = None

    def send(self, mail: OutgoingMail) -> None:
        """Send a reply over the open connection.

        Raises:
            DeliveryError: If sending fails or not connected
        """
        if not self._connection:
            raise DeliveryError("Not connected to SMTP server")

        mime_message = build_mime_message(mail)
        try:
            refused = self._connection.send_message(mime_message)
        except smtplib.SMTPRecipientsRefused as exc:
            LOGGER.error("All recipients refused: %s", exc)
            raise DeliveryError(f"All recipients refused: {exc}") from exc
        except smtplib.SMTPSenderRefused as exc:
            LOGGER.error("Sender refused: %s", exc)
            raise DeliveryError(f"Sender refused: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("Failed to send email: %s", exc)
            raise DeliveryError(f"Failed to send email: {exc}") from exc
        except OSError as exc:
            raise DeliveryError(f"Network error: {exc}") from exc

        if refused:
            raise DeliveryError(f"Some recipients were refused: {refused}")

        LOGGER.info(
            "Reply sent from %s to %s: %s",
            mail.from_address,
            mail.to_address,
            mail.subject,
        )


class SmtpMailTransport:
    """:class:`MailTransport` opening one SMTP session per delivery."""

    def __init__(self, settings: SmtpSettings) -> None:
        self._settings = settings

    def deliver(self, mail: OutgoingMail) -> None:
        with SmtpClient(self._settings) as client:
            client.send(mail)


class ConsoleMailTransport:
    """:class:`MailTransport` that only logs replies, for dry runs."""

    def __init__(self) -> None:
        self.delivered: list[OutgoingMail] = []

    def deliver(self, mail: OutgoingMail) -> None:
        self.delivered.append(mail)
        LOGGER.info(
            "Dry run, not sending reply from %s to %s: %s\n%s",
            mail.from_address,
            mail.to_address,
            mail.subject,
            mail.body,
        )


def build_mime_message(mail: OutgoingMail) -> MIMEText:
    """Build the single-part plain-text MIME message for ``mail``."""
    mime_msg = MIMEText(mail.body, "plain", mail.charset)
    mime_msg["From"] = mail.from_address
    mime_msg["To"] = mail.to_address
    mime_msg["Subject"] = Header(mail.subject, mail.charset)
    return mime_msg


__all__ = [
    "ConsoleMailTransport",
    "DeliveryError",
    "SmtpClient",
    "SmtpMailTransport",
    "build_mime_message",
]
