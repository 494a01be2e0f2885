"""Reply formatting and dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from reply_pilot.core.datetime_utils import format_attribution_timestamp, utc_now
from reply_pilot.core.interfaces import MailTransport
from reply_pilot.core.models import OutgoingMail, PipelineState
from reply_pilot.routing.personas import AppConfig, resolve_persona
from reply_pilot.transport.smtp_client import DeliveryError

LOGGER = logging.getLogger(__name__)

REPLY_PREFIX = "Re:"
SIGNATURE_SEPARATOR = "-- "
QUOTE_PREFIX = "> "


def add_reply_prefix(subject: str) -> str:
    """Return ``subject`` prefixed with ``Re: `` unless it already starts with ``Re:``."""
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX} {subject}"


def quote_body(text: str) -> str:
    """Prefix every line of ``text`` with ``> ``; the line count is preserved."""
    return "\n".join(f"{QUOTE_PREFIX}{line}" for line in text.split("\n"))


def build_reply_body(
    response: str,
    signature: str,
    original_from: str,
    original_text: str,
    *,
    sent_at: datetime,
    zone: ZoneInfo,
) -> str:
    """Assemble the reply text: response, signature block, attribution, quote."""
    timestamp = format_attribution_timestamp(sent_at, zone)
    return (
        f"{response}\n"
        "\n"
        f"{SIGNATURE_SEPARATOR}\n"
        f"{signature}\n"
        "\n"
        f"{timestamp} {original_from}:\n"
        "\n"
        f"{quote_body(original_text)}"
    )


class MailSender:
    """Format the reply for a composed pipeline state and hand it to a transport."""

    def __init__(
        self,
        transport: MailTransport,
        config_loader: Callable[[], AppConfig],
        *,
        zone: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._transport = transport
        self._config_loader = config_loader
        self._zone = zone
        self._clock = clock

    def build_reply(self, state: PipelineState) -> OutgoingMail:
        """Return the outgoing reply for ``state`` without sending it."""
        if state.open_ai_response is None:
            raise ValueError("Pipeline state has no composed response to send")
        mail = state.parsed_mail
        persona = resolve_persona(self._config_loader(), mail.primary_recipient)
        body = build_reply_body(
            state.open_ai_response,
            persona.signature,
            mail.sender,
            mail.text,
            sent_at=self._clock(),
            zone=self._zone,
        )
        return OutgoingMail(
            from_address=mail.primary_recipient,
            to_address=mail.sender,
            subject=add_reply_prefix(mail.subject),
            body=body,
        )

    def send(self, state: PipelineState) -> OutgoingMail:
        """Send the reply for ``state`` and return what was delivered."""
        outgoing = self.build_reply(state)
        try:
            self._transport.deliver(outgoing)
        except DeliveryError:
            raise
        except OSError as exc:
            raise DeliveryError(f"Delivery failed: {exc}") from exc
        LOGGER.info(
            "Delivered reply to %s for message %s",
            outgoing.to_address,
            state.parsed_mail.message_id,
        )
        return outgoing


__all__ = [
    "MailSender",
    "QUOTE_PREFIX",
    "REPLY_PREFIX",
    "SIGNATURE_SEPARATOR",
    "add_reply_prefix",
    "build_reply_body",
    "quote_body",
]
