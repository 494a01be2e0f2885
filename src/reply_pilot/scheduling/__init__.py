"""Reply delay scheduling."""

from .delay import InvalidRangeError, SystemRandomSource, compute_delay

__all__ = ["InvalidRangeError", "SystemRandomSource", "compute_delay"]
