"""Miscellaneous helpers for the pipeline."""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from zoneinfo import ZoneInfo

TimeZoneLike = str | tzinfo

_STATE: dict[str, tzinfo] = {"tz": UTC}


def _coerce_timezone(tz: TimeZoneLike) -> tzinfo:
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def set_default_timezone(tz: TimeZoneLike) -> None:
    """Set the default timezone used by tz_now."""
    _STATE["tz"] = _coerce_timezone(tz)


def tz_now() -> datetime:
    """Return the current time in the default timezone."""
    return datetime.now(_STATE["tz"])


def timestamp_ms() -> int:
    """Milliseconds since the epoch, used to build upload identifiers."""
    return int(tz_now().timestamp() * 1000)


def pluralize(count: int, word: str) -> str:
    """Return ``word`` with an ``s`` suffix unless ``count`` is exactly one."""
    return word if count == 1 else f"{word}s"
