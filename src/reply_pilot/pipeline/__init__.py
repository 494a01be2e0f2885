"""Mail-processing pipeline: state machine, stages, executor and trigger."""

from .executor import (
    LocalWorkflowExecutor,
    WorkflowCancelledError,
    WorkflowTimeoutError,
)
from .stages import PipelineStages
from .state_machine import (
    Failed,
    InvalidTransitionError,
    PipelinePhase,
    StageOutcome,
    Succeeded,
    Transition,
    phase_of,
)
from .trigger import InvalidEventError, TriggerHandler, TriggerResponse

__all__ = [
    "Failed",
    "InvalidEventError",
    "InvalidTransitionError",
    "LocalWorkflowExecutor",
    "PipelinePhase",
    "PipelineStages",
    "StageOutcome",
    "Succeeded",
    "Transition",
    "TriggerHandler",
    "TriggerResponse",
    "WorkflowCancelledError",
    "WorkflowTimeoutError",
    "phase_of",
]
