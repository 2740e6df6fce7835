"""
Injectable time source.

Count events and import reports are stamped from a ``Clock`` handed to the
service, never from ``datetime.now()``, so tests can assert exact
timestamps and ordering of re-counts.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

AUDIT_EPOCH = datetime(2024, 1, 1, 6, 0, 0, tzinfo=timezone.utc)


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        """Timezone-aware current time."""
        ...


class SystemClock:
    """Wall-clock UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock:
    """Test clock.

    Returns ``start`` until moved.  With ``step`` set, every ``now()`` call
    moves the clock forward by that much after reading, so successive
    count events get strictly increasing timestamps.
    """

    def __init__(self, start: datetime | None = None, step: timedelta | None = None):
        start = start or AUDIT_EPOCH
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start")
        self._current = start
        self._step = step

    def now(self) -> datetime:
        value = self._current
        if self._step:
            self._current += self._step
        return value

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
