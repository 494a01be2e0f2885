"""Protocol interfaces for the collaborators around the pipeline core."""

from __future__ import annotations

from typing import Protocol

from .models import CompletionRequest, OutgoingMail, PipelineState


class ObjectStore(Protocol):
    """Abstraction over bucket/key object storage."""

    def get_object(self, bucket: str, key: str) -> bytes:
        """Return the object body stored under ``bucket``/``key``."""
        raise NotImplementedError


class SecretStore(Protocol):
    """Abstraction over a named secret store."""

    def get_secret(self, name: str) -> str | None:
        """Return the secret string for ``name`` or ``None`` when unset."""
        raise NotImplementedError


class ConfigSource(Protocol):
    """Provides the raw persona configuration document."""

    def read(self) -> bytes | None:
        """Return the document bytes, or ``None`` if it does not exist."""
        raise NotImplementedError


class CompletionClient(Protocol):
    """Minimal chat completion behaviour needed by the reply composer."""

    def complete(self, request: CompletionRequest) -> str | None:
        """Return the first choice's message text, if any."""
        raise NotImplementedError


class MailTransport(Protocol):
    """Delivers a finished reply."""

    def deliver(self, mail: OutgoingMail) -> None:
        """Send ``mail``; raise on transport failure."""
        raise NotImplementedError


class RandomSource(Protocol):
    """Uniform integer source; :class:`random.Random` satisfies it."""

    def randint(self, a: int, b: int) -> int:
        """Return an integer uniformly drawn from ``[a, b]``."""
        raise NotImplementedError


class WorkflowStarter(Protocol):
    """Starts a workflow run for a freshly parsed pipeline state."""

    def start(self, workflow_id: str, state: PipelineState) -> str:
        """Begin a run and return its execution identifier."""
        raise NotImplementedError


__all__ = [
    "CompletionClient",
    "ConfigSource",
    "MailTransport",
    "ObjectStore",
    "RandomSource",
    "SecretStore",
    "WorkflowStarter",
]
