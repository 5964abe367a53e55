"""
Core Utility Functions.

Small helpers shared by the content, interest and scoring packages.
"""

import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Set, Union


Timestamp = Union[datetime, float, int]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_epoch_seconds(value: Optional[Timestamp]) -> Optional[float]:
    """
    Convert a datetime or numeric timestamp to epoch seconds.

    Naive datetimes are treated as UTC. Numbers are returned unchanged
    (already epoch seconds). ``None`` passes through.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


def to_datetime(value: Optional[Timestamp]) -> Optional[datetime]:
    """Inverse of :func:`to_epoch_seconds`; always returns an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def normalize_string_set(items: Optional[Iterable[str]]) -> Set[str]:
    """
    Normalize strings to a set of lowercase, stripped, non-empty values.

    Tags, categories, allergies and seasons all go through this so set
    comparisons are case-insensitive.
    """
    if not items:
        return set()
    return {s.lower().strip() for s in items if isinstance(s, str) and s.strip()}


class Deadline:
    """
    Monotonic deadline for one request.

    ``Deadline(None)`` never expires.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        self._expires_at = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at
