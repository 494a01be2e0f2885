"""Tests for reply composition."""

from __future__ import annotations

import pytest

from reply_pilot.core.config import ConfigurationError
from reply_pilot.core.models import ParsedMail
from reply_pilot.intelligence import (
    CompletionError,
    CompletionParameters,
    ReplyComposer,
    build_reply_prompt,
)
from reply_pilot.routing import AppConfig
from stubs import FailingCompletionClient, StubCompletionClient


def test_compose_uses_persona_prompt_and_defaults(
    parsed_mail: ParsedMail, app_config: AppConfig
) -> None:
    client = StubCompletionClient("Thanks for reaching out.")
    composer = ReplyComposer(client)

    reply = composer.compose(parsed_mail, app_config.default)

    assert reply == "Thanks for reaching out."
    (request,) = client.requests
    assert request.system_message == "S"
    assert request.model == "gpt-4o-mini"
    assert request.temperature == 0.7
    assert request.max_tokens == 1000
    assert "From: u@ex.com" in request.user_message
    assert "Subject: Q" in request.user_message
    assert "Help" in request.user_message


def test_persona_overrides_merge_field_by_field(
    parsed_mail: ParsedMail, app_config: AppConfig
) -> None:
    composer = ReplyComposer(
        StubCompletionClient(),
        defaults=CompletionParameters(model="base-model", max_tokens=256),
    )

    request = composer.build_request(parsed_mail, app_config.personas["sales"])

    assert request.model == "gpt-4o"
    assert request.temperature == 0.2
    assert request.max_tokens == 256


def test_prompt_is_deterministic(parsed_mail: ParsedMail) -> None:
    assert build_reply_prompt(parsed_mail) == build_reply_prompt(parsed_mail)
    assert build_reply_prompt(parsed_mail).endswith("The subject line is set automatically.")


@pytest.mark.parametrize("response", [None, "", "   \n"])
def test_empty_completion_is_an_error(
    parsed_mail: ParsedMail, app_config: AppConfig, response: str | None
) -> None:
    composer = ReplyComposer(StubCompletionClient(response))

    with pytest.raises(CompletionError):
        composer.compose(parsed_mail, app_config.default)


def test_client_failures_are_wrapped_once(
    parsed_mail: ParsedMail, app_config: AppConfig
) -> None:
    client = FailingCompletionClient(OSError("connection reset"))
    composer = ReplyComposer(client)

    with pytest.raises(CompletionError, match="connection reset"):
        composer.compose(parsed_mail, app_config.default)
    assert client.calls == 1


def test_pipeline_errors_pass_through(
    parsed_mail: ParsedMail, app_config: AppConfig
) -> None:
    composer = ReplyComposer(FailingCompletionClient(ConfigurationError("no key")))

    with pytest.raises(ConfigurationError, match="no key"):
        composer.compose(parsed_mail, app_config.default)
