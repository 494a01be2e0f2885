"""Utilities for parsing raw RFC822 messages into structured models."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from email import policy
from email.errors import MessageError
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, make_msgid, parsedate_to_datetime

from ..core.config import ReplyPilotError
from ..core.datetime_utils import ensure_utc, utc_now
from ..core.models import Attachment, ParsedMail


class MalformedMailError(ReplyPilotError):
    """Raised when a byte stream cannot be interpreted as a usable message."""


class MailParser:
    """Convert raw email payloads into :class:`ParsedMail` snapshots."""

    def __init__(self) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)

    def parse(self, payload: bytes) -> ParsedMail:
        """Parse raw RFC822 bytes, failing with :class:`MalformedMailError`."""
        if not payload or not payload.strip():
            raise MalformedMailError("Mail payload is empty")
        try:
            message = self._parser.parsebytes(payload)
            return self._build(message)
        except (MessageError, UnicodeError, ValueError) as exc:
            raise MalformedMailError(f"Mail payload could not be parsed: {exc}") from exc

    def _build(self, message: EmailMessage) -> ParsedMail:
        if not message.keys():
            raise MalformedMailError("Mail payload has no headers")

        sender = _take_first_address(message.get_all("From", []))
        if sender is None:
            raise MalformedMailError("Mail has no sender address")
        to_recipients = tuple(_extract_addresses(message.get_all("To", [])))
        if not to_recipients:
            raise MalformedMailError("Mail has no recipient address")
        cc_recipients = tuple(_extract_addresses(message.get_all("Cc", [])))

        body_text, body_html, attachments = _split_parts(message)

        return ParsedMail(
            sender=sender,
            to=to_recipients,
            cc=cc_recipients or None,
            subject=str(message.get("Subject") or ""),
            text=body_text or "",
            html=body_html,
            attachments=attachments or None,
            message_id=str(message.get("Message-ID") or "").strip() or make_msgid(),
            date=_try_parse_datetime(message) or utc_now(),
        )


def _extract_addresses(headers: Iterable[object]) -> Iterable[str]:
    for _, email_address in getaddresses([str(header) for header in headers]):
        if email_address:
            yield email_address


def _take_first_address(headers: Iterable[object]) -> str | None:
    addresses = list(_extract_addresses(headers))
    return addresses[0] if addresses else None


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _leaf_parts(part: EmailMessage) -> Iterator[EmailMessage]:
    """Yield every non-container part; attached messages count as leaves."""
    if part.get_content_maintype() == "message":
        yield part
        return
    if part.is_multipart():
        for child in part.iter_parts():
            yield from _leaf_parts(child)
        return
    yield part


def _is_body_part(part: EmailMessage) -> bool:
    if part.get_content_type() not in ("text/plain", "text/html"):
        return False
    return part.get_content_disposition() != "attachment" and not part.get_filename()


def _decode_text(part: EmailMessage) -> str:
    try:
        content = part.get_content()
    except LookupError:
        # unknown charset; fall back to a lossy decode
        raw = part.get_payload(decode=True) or b""
        content = raw.decode("utf-8", errors="replace")
    return str(content).rstrip("\n")


def _split_parts(
    message: EmailMessage,
) -> tuple[str | None, str | None, tuple[Attachment, ...]]:
    """Separate the text and html bodies from everything else in ``message``."""
    plain_chunks: list[str] = []
    html_chunks: list[str] = []
    attachments: list[Attachment] = []

    for part in _leaf_parts(message):
        if not _is_body_part(part):
            attachments.append(_to_attachment(part))
        elif part.get_content_type() == "text/plain":
            plain_chunks.append(_decode_text(part))
        else:
            html_chunks.append(_decode_text(part))

    text = _collapse_chunks(plain_chunks, "\n\n")
    html = _collapse_chunks(html_chunks, "\n")
    return text, html, tuple(attachments)


def _to_attachment(part: EmailMessage) -> Attachment:
    if part.get_content_maintype() == "message":
        payload = _message_bytes(part)
    else:
        payload = part.get_payload(decode=True) or b""
    return Attachment.from_bytes(
        payload,
        filename=part.get_filename(),
        content_type=part.get_content_type(),
    )


def _message_bytes(part: EmailMessage) -> bytes:
    inner = part.get_payload()
    if isinstance(inner, list) and len(inner) == 1:
        return inner[0].as_bytes()
    return part.as_bytes()


def _try_parse_datetime(message: EmailMessage) -> datetime | None:
    try:
        header_value = message.get("Date")
        if header_value is None:
            return None
        return ensure_utc(parsedate_to_datetime(str(header_value)))
    except (TypeError, ValueError, IndexError):
        return None


__all__ = ["MailParser", "MalformedMailError"]
