"""Inclusive UTC time windows used for interaction search and retrieval."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from xdbflow.domain.errors import ValidationFailedError


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` converted to UTC, rejecting naive datetimes."""

    if value.tzinfo is None:
        raise ValidationFailedError("Timestamps must include timezone information")
    return value.astimezone(UTC)


@dataclass(frozen=True)
class TimeWindow:
    """Describe temporal bounds; both ends are inclusive once resolved."""

    start: datetime | None = None
    end: datetime | None = None
    lookback: timedelta | None = None

    @classmethod
    def spanning(cls, start: datetime, days: int) -> TimeWindow:
        return cls(start=start, end=start + timedelta(days=days))

    def resolve(self, *, clock: Clock = utcnow) -> tuple[datetime | None, datetime | None]:
        """Resolve the window into concrete UTC timestamps."""

        resolved_end = ensure_utc(self.end) if self.end is not None else None
        resolved_start = ensure_utc(self.start) if self.start is not None else None

        if self.lookback is not None:
            if self.lookback < timedelta(0):
                raise ValidationFailedError("Lookback duration must be non-negative")
            anchor = resolved_end or ensure_utc(clock())
            start_from_lookback = anchor - self.lookback
            if resolved_start is None:
                resolved_start = start_from_lookback
            else:
                resolved_start = max(resolved_start, start_from_lookback)
            if resolved_end is None:
                resolved_end = anchor

        if resolved_start and resolved_end and resolved_start > resolved_end:
            raise ValidationFailedError("Time window start must be before end")

        return resolved_start, resolved_end

    def contains(self, moment: datetime, *, clock: Clock = utcnow) -> bool:
        """Whether ``moment`` falls inside the window, boundaries included."""

        start, end = self.resolve(clock=clock)
        value = ensure_utc(moment)
        if start is not None and value < start:
            return False
        return not (end is not None and value > end)


__all__ = ["Clock", "TimeWindow", "ensure_utc", "utcnow"]
