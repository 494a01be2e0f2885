"""FastAPI application exposing the trigger and the pipeline stages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import Body, FastAPI, HTTPException, status as http_status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from reply_pilot.core import (
    AppSettings,
    ServiceContainer,
    load_app_settings,
    require_runtime,
)
from reply_pilot.core.models import PipelineState
from reply_pilot.pipeline import (
    LocalWorkflowExecutor,
    PipelineStages,
    StageOutcome,
    TriggerHandler,
    Transition,
)
from reply_pilot.services import EXECUTOR, STAGES, TRIGGER, build_container

LOGGER = logging.getLogger(__name__)


def _outcome_payload(outcome: StageOutcome) -> dict[str, Any]:
    return {"phase": outcome.phase.value, "state": outcome.state.to_payload()}


def _outcome_response(outcome: StageOutcome) -> JSONResponse:
    status_code = (
        http_status.HTTP_200_OK
        if outcome.ok
        else http_status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(status_code=status_code, content=_outcome_payload(outcome))


def create_app(
    settings: AppSettings | None = None,
    *,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Missing deployment values raise :class:`ConfigurationError` here, before
    any request reaches a stage.
    """
    app_settings = settings or load_app_settings()
    require_runtime(app_settings.runtime)
    services = container or build_container(app_settings)

    stages = services.resolve_as(STAGES, PipelineStages)
    executor = services.resolve_as(EXECUTOR, LocalWorkflowExecutor)
    trigger = services.resolve_as(TRIGGER, TriggerHandler)

    app = FastAPI(title="Reply Pilot")

    @app.on_event("startup")
    async def bind_executor() -> None:
        """Run workflows started by the trigger on the server's event loop."""
        executor.bind_loop(asyncio.get_running_loop())

    @app.on_event("shutdown")
    async def unbind_executor() -> None:
        executor.bind_loop(None)
        cancelled = executor.cancel_pending()
        if cancelled:
            LOGGER.warning("Cancelled %d unfinished workflow runs", cancelled)
        LOGGER.info("Workflow executor detached")

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "environment": app_settings.runtime.environment}

    @app.post("/events/object-created")
    async def object_created(event: dict[str, Any] = Body(...)) -> JSONResponse:  # noqa: B008
        response = await asyncio.to_thread(trigger.handle, event)
        return JSONResponse(status_code=response.status_code, content=response.payload)

    @app.post("/stages/{transition}")
    async def run_stage(
        transition: Transition,
        payload: dict[str, Any] = Body(...),  # noqa: B008
    ) -> JSONResponse:
        try:
            state = PipelineState.from_payload(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=422,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        if transition is Transition.DELAY:
            # the caller performs the wait; this only validates the move
            outcome = stages.delay(state)
        else:
            outcome = await asyncio.to_thread(stages.run, transition, state)
        return _outcome_response(outcome)

    @app.get("/executions/{execution_id}")
    async def execution_status(execution_id: str) -> JSONResponse:
        try:
            outcome = executor.get_execution(execution_id)
        except KeyError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND,
                detail="Unknown execution",
            ) from exc
        if outcome is None:
            return JSONResponse(content={"phase": "running"})
        return JSONResponse(content=_outcome_payload(outcome))

    return app


__all__ = ["create_app"]
