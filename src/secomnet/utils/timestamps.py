"""
Timestamp utilities used across secomnet:
- UTC datetime helpers
- second-precision signature times
- ISO-8601 wire format with Z suffix
"""

from __future__ import annotations
import datetime as _dt
from typing import Optional

from dateutil.parser import isoparse


def utc_now() -> _dt.datetime:
    """Return a timezone-aware UTC datetime."""
    return _dt.datetime.now(tz=_dt.timezone.utc)


def signature_time() -> _dt.datetime:
    """Current UTC time truncated to whole seconds."""
    return utc_now().replace(microsecond=0)


def to_iso(value: Optional[_dt.datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=_dt.timezone.utc)
    return value.astimezone(_dt.timezone.utc).isoformat().replace("+00:00", "Z")


def from_iso(value: Optional[str]) -> Optional[_dt.datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=_dt.timezone.utc)
    return parsed.astimezone(_dt.timezone.utc)
