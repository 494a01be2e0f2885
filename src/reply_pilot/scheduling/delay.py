"""Randomized reply delay computation."""

from __future__ import annotations

import random

from reply_pilot.core.config import ReplyPilotError
from reply_pilot.core.interfaces import RandomSource


class InvalidRangeError(ReplyPilotError):
    """Raised when delay bounds are negative or inverted."""


class SystemRandomSource(random.Random):
    """Default random source backed by the standard library generator."""


def compute_delay(
    minimum: int, maximum: int, random_source: RandomSource | None = None
) -> int:
    """Return a wait in seconds drawn uniformly from ``[minimum, maximum]``."""
    if minimum < 0 or maximum < 0:
        raise InvalidRangeError(
            f"Delay bounds must be non-negative, got [{minimum}, {maximum}]"
        )
    if minimum > maximum:
        raise InvalidRangeError(
            f"Delay minimum {minimum} exceeds maximum {maximum}"
        )
    source = random_source if random_source is not None else _DEFAULT_SOURCE
    return source.randint(minimum, maximum)


_DEFAULT_SOURCE = SystemRandomSource()


__all__ = ["InvalidRangeError", "SystemRandomSource", "compute_delay"]
