"""Core domain models used across the pipeline.

Records that travel between pipeline stages are frozen pydantic models whose
JSON form uses camelCase keys (``parsedMail``, ``openAiResponse``, ...), the
shape an external workflow executor stores between stages.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_ATTACHMENT_NAME = "unnamed"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class WireModel(BaseModel):
    """Base for immutable records exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-compatible wire representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Attachment(WireModel):
    """A fully materialised attachment; ``content`` holds base64 text."""

    filename: str = DEFAULT_ATTACHMENT_NAME
    content_type: str = DEFAULT_CONTENT_TYPE
    content: str = ""

    @classmethod
    def from_bytes(
        cls, payload: bytes, *, filename: str | None, content_type: str | None
    ) -> Attachment:
        """Build an attachment from raw bytes, applying placeholder defaults."""
        return cls(
            filename=filename or DEFAULT_ATTACHMENT_NAME,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            content=base64.b64encode(payload).decode("ascii"),
        )

    def raw_content(self) -> bytes:
        """Decode the stored base64 content."""
        return base64.b64decode(self.content)


# pylint: disable=too-many-instance-attributes
class ParsedMail(WireModel):
    """Immutable snapshot of one inbound message."""

    sender: str = Field(alias="from")
    to: tuple[str, ...]
    cc: tuple[str, ...] | None = None
    subject: str = ""
    text: str = ""
    html: str | None = None
    attachments: tuple[Attachment, ...] | None = None
    message_id: str
    date: datetime

    @field_validator("to")
    @classmethod
    def _require_recipient(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one recipient is required")
        return value

    @property
    def primary_recipient(self) -> str:
        """Address that received the mail; routes the persona and sends the reply."""
        return self.to[0]


class ErrorDescriptor(WireModel):
    """Failure detail attached to a pipeline record."""

    message: str
    trace: str | None = None


class PipelineState(WireModel):
    """Record threaded through every pipeline stage."""

    parsed_mail: ParsedMail
    open_ai_response: str | None = None
    wait_seconds: int = Field(ge=0)
    error: ErrorDescriptor | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PipelineState:
        """Rebuild a state from its wire representation."""
        return cls.model_validate(payload)


@dataclass(frozen=True, slots=True)
class CompletionRequest:
    """Chat completion call issued for one reply."""

    model: str
    system_message: str
    user_message: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True, slots=True)
class OutgoingMail:
    """Plain-text reply handed to the delivery transport.

    Attributes:
        from_address: Identity the reply is sent from (the original recipient)
        to_address: Original sender receiving the reply
        subject: Reply subject line
        body: Plain-text body
        charset: Body and subject charset
    """

    from_address: str
    to_address: str
    subject: str
    body: str
    charset: str = "utf-8"


__all__ = [
    "Attachment",
    "CompletionRequest",
    "DEFAULT_ATTACHMENT_NAME",
    "DEFAULT_CONTENT_TYPE",
    "ErrorDescriptor",
    "OutgoingMail",
    "ParsedMail",
    "PipelineState",
    "WireModel",
]
