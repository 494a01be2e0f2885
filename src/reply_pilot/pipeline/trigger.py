"""Object-created trigger that parses mail and starts a workflow run."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote_plus

from reply_pilot.core.config import RuntimeSettings, require_runtime
from reply_pilot.core.interfaces import ObjectStore, WorkflowStarter

from .stages import PipelineStages
from .state_machine import describe_error

LOGGER = logging.getLogger(__name__)


class InvalidEventError(ValueError):
    """Raised when a notification carries no usable object-created record."""


@dataclass(frozen=True, slots=True)
class TriggerResponse:
    """Structured result of one trigger invocation."""

    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def body(self) -> str:
        """JSON text of ``payload``."""
        return json.dumps(self.payload, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the ``{statusCode, body}`` envelope."""
        return {"statusCode": self.status_code, "body": self.body}


def extract_object_location(event: Mapping[str, Any]) -> tuple[str, str]:
    """Return ``(bucket, key)`` from the first record, with the key URL-decoded."""
    try:
        record = event["Records"][0]
        bucket = record["s3"]["bucket"]["name"]
        key = record["s3"]["object"]["key"]
    except (KeyError, IndexError, TypeError) as exc:
        raise InvalidEventError("Event has no object-created record") from exc
    if not isinstance(bucket, str) or not isinstance(key, str) or not bucket or not key:
        raise InvalidEventError("Event record has no bucket name or object key")
    return bucket, unquote_plus(key)


class TriggerHandler:
    """Turn an object-created notification into a started workflow run."""

    def __init__(
        self,
        runtime: RuntimeSettings,
        store: ObjectStore,
        stages: PipelineStages,
        starter: WorkflowStarter,
    ) -> None:
        self._runtime = runtime
        self._store = store
        self._stages = stages
        self._starter = starter

    def handle(self, event: Mapping[str, Any]) -> TriggerResponse:
        """Process ``event``; failures become a 500 response instead of raising."""
        try:
            runtime = require_runtime(self._runtime, include_workflow=True)
            bucket, key = extract_object_location(event)
            LOGGER.info("Received object %s/%s", bucket, key)
            state = self._stages.parse(self._store.get_object(bucket, key))
            execution_id = self._starter.start(str(runtime.workflow_id), state)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.error("Trigger failed: %s", exc, exc_info=True)
            return TriggerResponse(
                status_code=500,
                payload={"error": describe_error(exc).to_payload()},
            )

        return TriggerResponse(
            status_code=200,
            payload={
                "message": "Successfully started mail processing",
                "messageId": state.parsed_mail.message_id,
                "executionId": execution_id,
            },
        )


__all__ = [
    "InvalidEventError",
    "TriggerHandler",
    "TriggerResponse",
    "extract_object_location",
]
