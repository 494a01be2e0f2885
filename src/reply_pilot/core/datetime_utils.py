"""Datetime helpers shared across the application."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import ConfigurationError

__all__ = [
    "ensure_utc",
    "format_attribution_timestamp",
    "resolve_timezone",
    "utc_now",
]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def resolve_timezone(name: str) -> ZoneInfo:
    """Look up an IANA zone, raising :class:`ConfigurationError` if unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown timezone '{name}'") from exc


def format_attribution_timestamp(value: datetime, zone: ZoneInfo) -> str:
    """Render ``value`` as ``YYYY/M/D H:MM:SS`` in ``zone``.

    Month, day and hour are not zero padded, matching the short Japanese
    locale rendering used in reply attribution lines.
    """
    local = (ensure_utc(value) or value).astimezone(zone)
    return (
        f"{local.year}/{local.month}/{local.day} "
        f"{local.hour}:{local.minute:02d}:{local.second:02d}"
    )
