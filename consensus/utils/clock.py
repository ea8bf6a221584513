"""
Clock Capability

Current time is injected wherever deadlines are compared so that
finalization is deterministic under test.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current, timezone-aware time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, current: datetime | None = None) -> None:
        current = current or datetime.now(UTC)
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self._current = current

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by a timedelta expressed as keyword arguments."""
        self._current = self._current + timedelta(**kwargs)
        return self._current
