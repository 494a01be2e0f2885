"""Phases, transitions and outcomes of the mail-processing pipeline.

A run moves ``parsed -> composed -> sent``. Any stage failure moves it to the
absorbing ``failed`` phase, where the record keeps every field it had and
gains an ``error`` descriptor.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import StrEnum

from reply_pilot.core.config import ReplyPilotError
from reply_pilot.core.models import ErrorDescriptor, PipelineState


class PipelinePhase(StrEnum):
    """Lifecycle position of a pipeline record."""

    PARSED = "parsed"
    COMPOSED = "composed"
    SENT = "sent"
    FAILED = "failed"


class Transition(StrEnum):
    """Stage-driven moves between phases."""

    COMPOSE = "compose"
    DELAY = "delay"
    SEND = "send"


TRANSITIONS: dict[tuple[PipelinePhase, Transition], PipelinePhase] = {
    (PipelinePhase.PARSED, Transition.COMPOSE): PipelinePhase.COMPOSED,
    (PipelinePhase.COMPOSED, Transition.DELAY): PipelinePhase.COMPOSED,
    (PipelinePhase.COMPOSED, Transition.SEND): PipelinePhase.SENT,
}

WORKFLOW: tuple[Transition, ...] = (
    Transition.COMPOSE,
    Transition.DELAY,
    Transition.SEND,
)


class InvalidTransitionError(ReplyPilotError):
    """Raised when a stage runs against a record in the wrong phase."""


def phase_of(state: PipelineState) -> PipelinePhase:
    """Derive the phase a stored record is in."""
    if state.error is not None:
        return PipelinePhase.FAILED
    if state.open_ai_response is None:
        return PipelinePhase.PARSED
    return PipelinePhase.COMPOSED


def next_phase(phase: PipelinePhase, transition: Transition) -> PipelinePhase:
    """Return the phase reached by ``transition`` or raise if it is not allowed."""
    target = TRANSITIONS.get((phase, transition))
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {transition.value} a record in phase '{phase.value}'"
        )
    return target


@dataclass(frozen=True, slots=True)
class Succeeded:
    """A stage finished; ``state`` is the record for the next stage."""

    state: PipelineState
    phase: PipelinePhase

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failed:
    """A stage failed; ``state`` carries the original fields plus ``error``."""

    state: PipelineState

    @property
    def phase(self) -> PipelinePhase:
        return PipelinePhase.FAILED

    @property
    def ok(self) -> bool:
        return False


StageOutcome = Succeeded | Failed


def describe_error(exc: BaseException) -> ErrorDescriptor:
    """Build the ``{message, trace}`` descriptor for ``exc``."""
    message = str(exc) or type(exc).__name__
    trace = "".join(traceback.format_exception(exc)) or None
    return ErrorDescriptor(message=message, trace=trace)


def fail(state: PipelineState, exc: BaseException) -> Failed:
    """Attach ``exc`` to ``state`` without touching its other fields."""
    return Failed(state=state.model_copy(update={"error": describe_error(exc)}))


__all__ = [
    "Failed",
    "InvalidTransitionError",
    "PipelinePhase",
    "StageOutcome",
    "Succeeded",
    "TRANSITIONS",
    "Transition",
    "WORKFLOW",
    "describe_error",
    "fail",
    "next_phase",
    "phase_of",
]
