"""Tests for the individual pipeline stages and the phase rules."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from reply_pilot.core.models import ErrorDescriptor, ParsedMail, PipelineState
from reply_pilot.ingestion import MalformedMailError
from reply_pilot.pipeline import (
    Failed,
    InvalidTransitionError,
    PipelinePhase,
    PipelineStages,
    Succeeded,
    Transition,
    phase_of,
)
from reply_pilot.pipeline.state_machine import describe_error, next_phase
from stubs import FixedRandom, RecordingTransport, StubCompletionClient

StagesFactory = Callable[..., PipelineStages]


def _parsed(mail: ParsedMail) -> PipelineState:
    return PipelineState(parsed_mail=mail, wait_seconds=1)


def test_parse_fixes_delay_from_persona(
    stages_factory: StagesFactory, raw_mail_factory: Callable[..., bytes]
) -> None:
    source = FixedRandom()
    stages = stages_factory(random_source=source)

    state = stages.parse(raw_mail_factory(to="sales@shop.test"))

    assert state.wait_seconds == 7
    assert source.calls == [(7, 7)]
    assert state.open_ai_response is None
    assert phase_of(state) is PipelinePhase.PARSED


def test_parse_uses_global_delay_for_default_persona(
    stages_factory: StagesFactory, raw_mail_factory: Callable[..., bytes]
) -> None:
    state = stages_factory().parse(raw_mail_factory())

    assert state.wait_seconds == 1
    assert state.parsed_mail.sender == "u@ex.com"


def test_parse_raises_on_malformed_mail(stages_factory: StagesFactory) -> None:
    with pytest.raises(MalformedMailError):
        stages_factory().parse(b"")


def test_compose_adds_response(stages_factory: StagesFactory, parsed_mail: ParsedMail) -> None:
    outcome = stages_factory().compose(_parsed(parsed_mail))

    assert isinstance(outcome, Succeeded)
    assert outcome.phase is PipelinePhase.COMPOSED
    assert outcome.state.open_ai_response == "Answer"
    assert outcome.state.parsed_mail == parsed_mail
    assert outcome.state.wait_seconds == 1


def test_compose_failure_keeps_original_fields(
    stages_factory: StagesFactory, parsed_mail: ParsedMail
) -> None:
    state = _parsed(parsed_mail)

    outcome = stages_factory(client=StubCompletionClient("")).compose(state)

    assert isinstance(outcome, Failed)
    assert outcome.phase is PipelinePhase.FAILED
    assert outcome.state.error is not None
    assert "empty" in outcome.state.error.message
    assert outcome.state.model_copy(update={"error": None}) == state


def test_delay_is_identity(stages_factory: StagesFactory, parsed_mail: ParsedMail) -> None:
    composed = _parsed(parsed_mail).model_copy(update={"open_ai_response": "Answer"})

    outcome = stages_factory().delay(composed)

    assert isinstance(outcome, Succeeded)
    assert outcome.state == composed


def test_send_delivers_and_returns_input(
    stages_factory: StagesFactory, parsed_mail: ParsedMail
) -> None:
    transport = RecordingTransport()
    composed = _parsed(parsed_mail).model_copy(update={"open_ai_response": "Answer"})

    outcome = stages_factory(transport=transport).send(composed)

    assert isinstance(outcome, Succeeded)
    assert outcome.phase is PipelinePhase.SENT
    assert outcome.state == composed
    (delivered,) = transport.delivered
    assert delivered.subject == "Re: Q"


def test_send_before_compose_is_rejected(
    stages_factory: StagesFactory, parsed_mail: ParsedMail
) -> None:
    transport = RecordingTransport()

    outcome = stages_factory(transport=transport).send(_parsed(parsed_mail))

    assert isinstance(outcome, Failed)
    assert outcome.state.error is not None
    assert "phase 'parsed'" in outcome.state.error.message
    assert not transport.delivered


def test_delivery_failure_is_captured(
    stages_factory: StagesFactory, parsed_mail: ParsedMail
) -> None:
    composed = _parsed(parsed_mail).model_copy(update={"open_ai_response": "Answer"})
    stages = stages_factory(transport=RecordingTransport(error=OSError("relay down")))

    outcome = stages.send(composed)

    assert isinstance(outcome, Failed)
    assert outcome.state.open_ai_response == "Answer"
    assert outcome.state.error is not None
    assert "relay down" in outcome.state.error.message


def test_failed_records_are_absorbing(
    stages_factory: StagesFactory, parsed_mail: ParsedMail
) -> None:
    client = StubCompletionClient()
    failed = _parsed(parsed_mail).model_copy(
        update={"error": ErrorDescriptor(message="earlier failure")}
    )
    stages = stages_factory(client=client)

    for transition in Transition:
        outcome = stages.run(transition, failed)
        assert isinstance(outcome, Failed)
        assert outcome.state.error == ErrorDescriptor(message="earlier failure")
    assert client.requests == []


def test_transition_table() -> None:
    assert next_phase(PipelinePhase.PARSED, Transition.COMPOSE) is PipelinePhase.COMPOSED
    assert next_phase(PipelinePhase.COMPOSED, Transition.DELAY) is PipelinePhase.COMPOSED
    assert next_phase(PipelinePhase.COMPOSED, Transition.SEND) is PipelinePhase.SENT
    with pytest.raises(InvalidTransitionError):
        next_phase(PipelinePhase.SENT, Transition.SEND)
    with pytest.raises(InvalidTransitionError):
        next_phase(PipelinePhase.COMPOSED, Transition.COMPOSE)


def test_describe_error_uses_type_name_for_blank_messages() -> None:
    try:
        raise KeyError()
    except KeyError as exc:
        descriptor = describe_error(exc)

    assert descriptor.message == "KeyError"
    assert descriptor.trace is not None
    assert "KeyError" in descriptor.trace
