"""Stage functions that advance a pipeline record."""

from __future__ import annotations

import logging
from collections.abc import Callable

from reply_pilot.core.interfaces import RandomSource
from reply_pilot.core.models import PipelineState
from reply_pilot.ingestion.parser import MailParser
from reply_pilot.intelligence.composer import ReplyComposer
from reply_pilot.outbound.sender import MailSender
from reply_pilot.routing.personas import AppConfig, resolve_delay_range, resolve_persona
from reply_pilot.scheduling.delay import compute_delay

from .state_machine import (
    Failed,
    PipelinePhase,
    StageOutcome,
    Succeeded,
    Transition,
    fail,
    next_phase,
    phase_of,
)

LOGGER = logging.getLogger(__name__)


class PipelineStages:
    """Parse, compose, delay and send stages sharing one set of collaborators.

    ``parse`` creates the record and raises on failure, since there is no
    record yet to attach an error to. The other stages never raise: they
    return :class:`Succeeded` or a :class:`Failed` outcome whose state carries
    the error descriptor.
    """

    def __init__(
        self,
        *,
        config_loader: Callable[[], AppConfig],
        parser: MailParser,
        composer: ReplyComposer,
        sender: MailSender,
        random_source: RandomSource | None = None,
    ) -> None:
        self._config_loader = config_loader
        self._parser = parser
        self._composer = composer
        self._sender = sender
        self._random_source = random_source

    def parse(self, payload: bytes) -> PipelineState:
        """Parse raw mail and fix the reply delay for the whole run."""
        mail = self._parser.parse(payload)
        config = self._config_loader()
        persona = resolve_persona(config, mail.primary_recipient)
        bounds = resolve_delay_range(config, persona)
        wait_seconds = compute_delay(bounds.minimum, bounds.maximum, self._random_source)
        LOGGER.info(
            "Parsed message %s from %s to %s; replying in %ds",
            mail.message_id,
            mail.sender,
            mail.primary_recipient,
            wait_seconds,
        )
        return PipelineState(parsed_mail=mail, wait_seconds=wait_seconds)

    def compose(self, state: PipelineState) -> StageOutcome:
        """Generate the reply text."""
        return self.run(Transition.COMPOSE, state)

    def delay(self, state: PipelineState) -> StageOutcome:
        """Check the record may wait; the executor performs the wait itself."""
        return self.run(Transition.DELAY, state)

    def send(self, state: PipelineState) -> StageOutcome:
        """Deliver the composed reply."""
        return self.run(Transition.SEND, state)

    def run(self, transition: Transition, state: PipelineState) -> StageOutcome:
        """Apply ``transition`` to ``state`` and capture any failure."""
        phase = phase_of(state)
        if phase is PipelinePhase.FAILED:
            LOGGER.warning(
                "Not running %s for message %s: record already failed",
                transition.value,
                state.parsed_mail.message_id,
            )
            return Failed(state=state)
        try:
            target = next_phase(phase, transition)
            result = self._apply(transition, state)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error(
                "Stage %s failed for message %s: %s",
                transition.value,
                state.parsed_mail.message_id,
                exc,
                exc_info=True,
            )
            return fail(state, exc)
        LOGGER.info(
            "Stage %s finished for message %s (%s)",
            transition.value,
            state.parsed_mail.message_id,
            target.value,
        )
        return Succeeded(state=result, phase=target)

    def _apply(self, transition: Transition, state: PipelineState) -> PipelineState:
        if transition is Transition.COMPOSE:
            mail = state.parsed_mail
            persona = resolve_persona(self._config_loader(), mail.primary_recipient)
            response = self._composer.compose(mail, persona)
            return state.model_copy(update={"open_ai_response": response})
        if transition is Transition.SEND:
            self._sender.send(state)
        return state


__all__ = ["PipelineStages"]
