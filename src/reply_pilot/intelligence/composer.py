"""Reply composer turning a parsed mail and a persona into response text."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from reply_pilot.core.config import ReplyPilotError
from reply_pilot.core.interfaces import CompletionClient
from reply_pilot.core.models import CompletionRequest, ParsedMail
from reply_pilot.routing.personas import PersonaConfig

from .llm import CompletionError
from .prompts import build_reply_prompt

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


@dataclass(frozen=True, slots=True)
class CompletionParameters:
    """Model selection and sampling bounds for one completion."""

    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def merged_with(self, persona: PersonaConfig) -> CompletionParameters:
        """Apply persona overrides field by field; unset fields keep defaults."""
        merged = self
        if persona.model:
            merged = replace(merged, model=persona.model)
        overrides = persona.completion
        if overrides is not None:
            if overrides.temperature is not None:
                merged = replace(merged, temperature=overrides.temperature)
            if overrides.max_tokens is not None:
                merged = replace(merged, max_tokens=overrides.max_tokens)
        return merged


class ReplyComposer:
    """Generate reply text through a single completion call."""

    def __init__(
        self,
        client: CompletionClient,
        *,
        defaults: CompletionParameters | None = None,
    ) -> None:
        """Initialise the composer with a completion client and defaults."""
        self._client = client
        self._defaults = defaults or CompletionParameters()

    def build_request(self, mail: ParsedMail, persona: PersonaConfig) -> CompletionRequest:
        """Return the deterministic completion request for ``mail``."""
        parameters = self._defaults.merged_with(persona)
        return CompletionRequest(
            model=parameters.model,
            system_message=persona.system_prompt,
            user_message=build_reply_prompt(mail),
            temperature=parameters.temperature,
            max_tokens=parameters.max_tokens,
        )

    def compose(self, mail: ParsedMail, persona: PersonaConfig) -> str:
        """Return the model's reply body for ``mail``."""
        request = self.build_request(mail, persona)
        try:
            reply = self._client.complete(request)
        except ReplyPilotError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            raise CompletionError(f"Completion service failed: {exc}") from exc

        if reply is None or not reply.strip():
            raise CompletionError("Completion service returned an empty response")

        LOGGER.info(
            "Composed reply for %s with model %s (%d chars)",
            mail.message_id,
            request.model,
            len(reply),
        )
        return reply


__all__ = [
    "CompletionParameters",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "ReplyComposer",
]
