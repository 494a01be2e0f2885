"""Shared fixtures for the pipeline tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from email.message import EmailMessage
from zoneinfo import ZoneInfo

import pytest

from reply_pilot.core.interfaces import CompletionClient, MailTransport, RandomSource
from reply_pilot.core.models import ParsedMail
from reply_pilot.ingestion import MailParser
from reply_pilot.intelligence import ReplyComposer
from reply_pilot.outbound import MailSender
from reply_pilot.pipeline import PipelineStages
from reply_pilot.routing import AppConfig
from stubs import FixedRandom, RecordingTransport, StubCompletionClient


@pytest.fixture
def raw_mail_factory() -> Callable[..., bytes]:
    """Return a builder producing RFC822 bytes."""

    def build(
        *,
        sender: str | None = "u@ex.com",
        to: str | None = "bot@y",
        subject: str | None = "Q",
        body: str = "Help",
        **headers: str,
    ) -> bytes:
        message = EmailMessage()
        if sender is not None:
            message["From"] = sender
        if to is not None:
            message["To"] = to
        if subject is not None:
            message["Subject"] = subject
        for name, value in headers.items():
            message[name.replace("_", "-")] = value
        message.set_content(body)
        return bytes(message)

    return build


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with one named persona and a fixed one-second delay."""
    return AppConfig.model_validate(
        {
            "personas": {
                "sales": {
                    "systemPrompt": "Sell",
                    "signature": "Sales Team",
                    "delay": {"min": 7, "max": 7},
                    "model": "gpt-4o",
                    "completion": {"temperature": 0.2},
                }
            },
            "default": {"systemPrompt": "S", "signature": "Sig"},
            "delay": {"min": 1, "max": 1},
        }
    )


@pytest.fixture
def parsed_mail() -> ParsedMail:
    return ParsedMail(
        sender="u@ex.com",
        to=("bot@y",),
        subject="Q",
        text="Help",
        message_id="<q-1@ex.com>",
        date=datetime(2024, 10, 1, 1, 0, tzinfo=UTC),
    )


@pytest.fixture
def stages_factory(app_config: AppConfig) -> Callable[..., PipelineStages]:
    """Return a builder wiring :class:`PipelineStages` around test doubles."""

    def build(
        *,
        client: CompletionClient | None = None,
        transport: MailTransport | None = None,
        random_source: RandomSource | None = None,
        config: AppConfig | None = None,
    ) -> PipelineStages:
        loaded = config or app_config

        def loader() -> AppConfig:
            return loaded

        return PipelineStages(
            config_loader=loader,
            parser=MailParser(),
            composer=ReplyComposer(client or StubCompletionClient()),
            sender=MailSender(
                transport or RecordingTransport(),
                loader,
                zone=ZoneInfo("Asia/Tokyo"),
                clock=lambda: datetime(2024, 1, 5, 0, 3, 7, tzinfo=UTC),
            ),
            random_source=random_source or FixedRandom(),
        )

    return build
