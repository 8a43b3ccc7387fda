"""Substitutable time source.

All timestamps in the system are naive UTC datetimes (stored that way in the
database). Deadline and scheduling comparisons go through an injected Clock so
tests can pin "now".
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC instant as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(ABC):
    """Source of the current UTC instant."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return utcnow()


class FixedClock(Clock):
    """Clock pinned to a given instant; advance it explicitly."""

    def __init__(self, at: Optional[datetime] = None):
        self._now = at or utcnow()

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = at

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta expressed as keyword args (minutes=5, hours=1, ...)."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
