"""Integration tests for the FastAPI web application."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from reply_pilot.core.config import (
    AppSettings,
    ConfigurationError,
    RuntimeSettings,
    StorageSettings,
)
from reply_pilot.core.models import ParsedMail, PipelineState
from reply_pilot.services import (
    COMPLETION_CLIENT,
    MAIL_TRANSPORT,
    OBJECT_STORE,
    build_container,
)
from reply_pilot.web import create_app
from stubs import RecordingTransport, StubCompletionClient


def _event(bucket: str, key: str) -> dict[str, Any]:
    return {"Records": [{"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}]}


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    config_path = tmp_path / "personas.json"
    config_path.write_text(
        json.dumps(
            {
                "default": {"systemPrompt": "S", "signature": "Sig"},
                "delay": {"min": 0, "max": 0},
            }
        ),
        encoding="utf-8",
    )
    return AppSettings(
        runtime=RuntimeSettings(
            secret_name="openai-test",
            config_location=str(config_path),
            environment="test",
            workflow_id="reply-workflow",
        ),
        storage=StorageSettings(root=tmp_path / "objects"),
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def app_factory(settings: AppSettings, transport: RecordingTransport) -> Callable[[], Any]:
    container = build_container(settings)
    container.provide(COMPLETION_CLIENT, StubCompletionClient("Answer"))
    container.provide(MAIL_TRANSPORT, transport)

    def build() -> Any:
        return create_app(settings, container=container), container

    return build


def test_health_reports_environment(app_factory: Callable[[], Any]) -> None:
    app, _ = app_factory()
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environment": "test"}


def test_compose_stage_returns_composed_state(
    app_factory: Callable[[], Any], parsed_mail: ParsedMail
) -> None:
    app, _ = app_factory()
    client = TestClient(app)
    state = PipelineState(parsed_mail=parsed_mail, wait_seconds=4)

    response = client.post("/stages/compose", json=state.to_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["phase"] == "composed"
    assert body["state"]["openAiResponse"] == "Answer"
    assert body["state"]["waitSeconds"] == 4


def test_send_stage_failure_is_reported(
    app_factory: Callable[[], Any],
    parsed_mail: ParsedMail,
    transport: RecordingTransport,
) -> None:
    app, _ = app_factory()
    client = TestClient(app)
    state = PipelineState(parsed_mail=parsed_mail, wait_seconds=0)

    response = client.post("/stages/send", json=state.to_payload())

    assert response.status_code == 500
    body = response.json()
    assert body["phase"] == "failed"
    assert "parsed" in body["state"]["error"]["message"]
    assert body["state"]["parsedMail"]["from"] == "u@ex.com"
    assert transport.delivered == []


def test_invalid_stage_requests_are_rejected(
    app_factory: Callable[[], Any], parsed_mail: ParsedMail
) -> None:
    app, _ = app_factory()
    client = TestClient(app)

    assert client.post("/stages/compose", json={"waitSeconds": 1}).status_code == 422
    payload = PipelineState(parsed_mail=parsed_mail, wait_seconds=0).to_payload()
    assert client.post("/stages/archive", json=payload).status_code == 422


def test_trigger_runs_workflow_inline(
    app_factory: Callable[[], Any],
    transport: RecordingTransport,
    raw_mail_factory: Callable[..., bytes],
) -> None:
    app, container = app_factory()
    container.resolve(OBJECT_STORE).put_object(
        "inbox", "new mail.eml", raw_mail_factory(Message_ID="<w-1@ex.com>")
    )
    client = TestClient(app)

    response = client.post("/events/object-created", json=_event("inbox", "new+mail.eml"))

    assert response.status_code == 200
    body = response.json()
    assert body["messageId"] == "<w-1@ex.com>"
    assert body["executionId"].startswith("reply-workflow:")

    status = client.get(f"/executions/{body['executionId']}").json()
    assert status["phase"] == "sent"
    (sent,) = transport.delivered
    assert sent.subject == "Re: Q"


def test_trigger_runs_workflow_on_server_loop(
    app_factory: Callable[[], Any],
    transport: RecordingTransport,
    raw_mail_factory: Callable[..., bytes],
) -> None:
    app, container = app_factory()
    container.resolve(OBJECT_STORE).put_object("inbox", "loop.eml", raw_mail_factory())

    with TestClient(app) as client:
        response = client.post("/events/object-created", json=_event("inbox", "loop.eml"))
        assert response.status_code == 200
        execution_id = response.json()["executionId"]

        deadline = time.monotonic() + 5
        status = client.get(f"/executions/{execution_id}").json()
        while status["phase"] == "running" and time.monotonic() < deadline:
            time.sleep(0.02)
            status = client.get(f"/executions/{execution_id}").json()

    assert status["phase"] == "sent"
    assert len(transport.delivered) == 1


def test_trigger_failure_returns_error(app_factory: Callable[[], Any]) -> None:
    app, _ = app_factory()
    client = TestClient(app)

    response = client.post("/events/object-created", json=_event("inbox", "missing.eml"))

    assert response.status_code == 500
    assert "missing.eml" in response.json()["error"]["message"]


def test_unknown_execution_is_not_found(app_factory: Callable[[], Any]) -> None:
    app, _ = app_factory()

    assert TestClient(app).get("/executions/nope").status_code == 404


def test_missing_runtime_values_fail_at_startup(tmp_path: Path) -> None:
    settings = AppSettings(storage=StorageSettings(root=tmp_path))

    with pytest.raises(ConfigurationError, match="REPLY_PILOT_RUNTIME__SECRET_NAME"):
        create_app(settings)
