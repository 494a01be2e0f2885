"""Chat completion client used to answer inbound mail."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx

from reply_pilot.core.config import CompletionSettings, ReplyPilotError
from reply_pilot.core.models import CompletionRequest

LOGGER = logging.getLogger(__name__)


class CompletionError(ReplyPilotError):
    """Raised when the completion service fails or returns no text."""


@dataclass(slots=True)
class OpenAIChatClient:
    """Thin synchronous client for OpenAI-compatible chat completion APIs.

    ``api_key`` is called on every request so that the credential is read
    from the secret store per attempt rather than cached in the process.
    Exactly one HTTP request is made per call; retries belong to whatever
    drives the pipeline stage.
    """

    settings: CompletionSettings
    api_key: Callable[[], str]
    transport: httpx.BaseTransport | None = None

    def complete(self, request: CompletionRequest) -> str | None:
        """Send ``request`` and return the first choice's message content."""
        endpoint = _resolve_endpoint(self.settings.base_url)
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_message},
                {"role": "user", "content": request.user_message},
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key()}"}

        LOGGER.debug("Requesting completion from model %s", request.model)
        try:
            with httpx.Client(
                timeout=self.settings.timeout_seconds, transport=self.transport
            ) as client:
                response = client.post(endpoint, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise CompletionError(
                f"Completion request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CompletionError(f"Completion request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CompletionError("Completion service returned invalid JSON") from exc

        return _first_choice_content(data)


def _first_choice_content(data: object) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _resolve_endpoint(base_url: str) -> str:
    trimmed = base_url.rstrip("/") + "/"
    return urljoin(trimmed, "chat/completions")


__all__ = ["CompletionError", "OpenAIChatClient"]
