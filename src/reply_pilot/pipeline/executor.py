"""In-process workflow executor driving compose, delay and send."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from concurrent.futures import Future

from reply_pilot.core.models import PipelineState

from .stages import PipelineStages
from .state_machine import (
    WORKFLOW,
    Failed,
    PipelinePhase,
    StageOutcome,
    Succeeded,
    Transition,
    fail,
    phase_of,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 24 * 60 * 60
DEFAULT_MAX_FINISHED = 1000

Sleeper = Callable[[float], Awaitable[None]]


class WorkflowTimeoutError(TimeoutError):
    """Raised into the record when a run exceeds its overall time limit."""


class WorkflowCancelledError(RuntimeError):
    """Recorded when a run is cancelled before it finishes, e.g. at shutdown."""


class LocalWorkflowExecutor:
    """Run pipeline records to completion inside this process.

    Blocking stages run in worker threads and the delay is an ``asyncio``
    sleep, so one event loop can hold many runs waiting at the same time.
    A run stops at the first failed stage; nothing is retried.

    Only the newest ``max_finished`` finished outcomes are kept; older ids
    become unknown. Pending runs are never evicted.
    """

    def __init__(
        self,
        stages: PipelineStages,
        *,
        sleep: Sleeper = asyncio.sleep,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_finished: int = DEFAULT_MAX_FINISHED,
    ) -> None:
        self._stages = stages
        self._sleep = sleep
        self._timeout_seconds = timeout_seconds
        self._max_finished = max_finished
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = threading.Lock()
        self._executions: OrderedDict[str, StageOutcome | None] = OrderedDict()
        self._pending: dict[str, Future[None]] = {}

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Schedule future runs onto ``loop`` instead of running them inline."""
        self._loop = loop

    def get_execution(self, execution_id: str) -> StageOutcome | None:
        """Return the final outcome of a run, or ``None`` while it is pending."""
        with self._lock:
            if execution_id not in self._executions:
                raise KeyError(execution_id)
            return self._executions[execution_id]

    def start(self, workflow_id: str, state: PipelineState) -> str:
        """Start a run for ``state`` and return its execution id."""
        execution_id = f"{workflow_id}:{uuid.uuid4().hex}"
        with self._lock:
            self._executions[execution_id] = None
        LOGGER.info(
            "Starting execution %s for message %s",
            execution_id,
            state.parsed_mail.message_id,
        )
        if self._loop is not None and self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(
                self._track(execution_id, state), self._loop
            )
            with self._lock:
                self._pending[execution_id] = future
            future.add_done_callback(
                lambda done: self._on_done(execution_id, state, done)
            )
        else:
            asyncio.run(self._track(execution_id, state))
        return execution_id

    def cancel_pending(self) -> int:
        """Cancel every run still scheduled on the bound loop."""
        with self._lock:
            futures = list(self._pending.values())
        for future in futures:
            future.cancel()
        return len(futures)

    async def _track(self, execution_id: str, state: PipelineState) -> None:
        outcome = await self.execute(state)
        self._record(execution_id, outcome)
        LOGGER.info(
            "Execution %s finished in phase %s", execution_id, outcome.phase.value
        )

    def _on_done(
        self, execution_id: str, state: PipelineState, future: Future[None]
    ) -> None:
        with self._lock:
            self._pending.pop(execution_id, None)
        if future.cancelled():
            LOGGER.warning("Execution %s was cancelled", execution_id)
            self._record(
                execution_id,
                fail(state, WorkflowCancelledError("Workflow was cancelled")),
            )
            return
        error = future.exception()
        if error is not None:
            LOGGER.error(
                "Execution %s crashed: %s", execution_id, error, exc_info=error
            )
            self._record(execution_id, fail(state, error))

    def _record(self, execution_id: str, outcome: StageOutcome) -> None:
        with self._lock:
            self._executions[execution_id] = outcome
            self._executions.move_to_end(execution_id)
            finished = [
                key for key, value in self._executions.items() if value is not None
            ]
            for key in finished[: max(0, len(finished) - self._max_finished)]:
                del self._executions[key]

    async def execute(self, state: PipelineState) -> StageOutcome:
        """Drive ``state`` through the workflow, bounded by the overall timeout."""
        progress = [state]
        try:
            return await asyncio.wait_for(
                self._drive(progress), timeout=self._timeout_seconds
            )
        except TimeoutError:
            latest = progress[-1]
            LOGGER.error(
                "Run for message %s exceeded %.0f seconds",
                latest.parsed_mail.message_id,
                self._timeout_seconds,
            )
            return fail(
                latest,
                WorkflowTimeoutError(
                    f"Workflow exceeded its {self._timeout_seconds:.0f}s time limit"
                ),
            )

    async def _drive(self, progress: list[PipelineState]) -> StageOutcome:
        start = progress[-1]
        phase = phase_of(start)
        if phase is PipelinePhase.FAILED:
            return Failed(state=start)
        outcome: StageOutcome = Succeeded(state=start, phase=phase)
        # a composed record resumes at the delay
        steps = WORKFLOW if phase is PipelinePhase.PARSED else WORKFLOW[1:]
        for transition in steps:
            current = progress[-1]
            if transition is Transition.DELAY:
                outcome = self._stages.delay(current)
                if isinstance(outcome, Succeeded):
                    await self._sleep(current.wait_seconds)
            else:
                outcome = await asyncio.to_thread(self._stages.run, transition, current)
            progress.append(outcome.state)
            if isinstance(outcome, Failed):
                break
        return outcome


__all__ = [
    "DEFAULT_MAX_FINISHED",
    "DEFAULT_TIMEOUT_SECONDS",
    "LocalWorkflowExecutor",
    "WorkflowCancelledError",
    "WorkflowTimeoutError",
]
