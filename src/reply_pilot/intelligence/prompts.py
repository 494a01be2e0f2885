"""Prompt templates for reply generation."""

from __future__ import annotations

from reply_pilot.core.models import ParsedMail

_REPLY_TEMPLATE = """\
Please write a reply to the following email.

From: {sender}
Subject: {subject}

{body}

Guidelines for the reply:
1. Match the language and the tone of the original message.
2. Answer the sender's questions and requests specifically.
3. Ask a follow-up question when something needed is missing.
4. Close the reply politely.

Write only the body of the reply. The subject line is set automatically."""


def build_reply_prompt(mail: ParsedMail) -> str:
    """Compose the user message asking the model for a reply body."""
    return _REPLY_TEMPLATE.format(
        sender=mail.sender,
        subject=mail.subject,
        body=mail.text,
    )


__all__ = ["build_reply_prompt"]
