"""Tuning values for batching, index polling and search windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Final

from .env import env_date, env_float, env_int

DEFAULT_MAX_BATCH_SIZE: Final[int] = 100
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 3.0
DEFAULT_MAX_POLL_ATTEMPTS: Final[int] = 20
DEFAULT_EXPAND_FAN_OUT: Final[int] = 8
DEFAULT_SEARCH_START: Final[date] = date(2017, 1, 1)
DEFAULT_SEARCH_DAYS: Final[int] = 30


@dataclass(frozen=True, slots=True)
class OrchestrationConfig:
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS
    expand_fan_out: int = DEFAULT_EXPAND_FAN_OUT
    search_start: datetime = datetime(2017, 1, 1, tzinfo=UTC)
    search_days: int = DEFAULT_SEARCH_DAYS

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if self.poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds must be non-negative")
        if self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        if self.expand_fan_out < 1:
            raise ValueError("expand_fan_out must be at least 1")

    @property
    def search_end(self) -> datetime:
        return self.search_start + timedelta(days=self.search_days)


def get_orchestration_config() -> OrchestrationConfig:
    return OrchestrationConfig(
        max_batch_size=env_int("XDB_MAX_BATCH_SIZE", DEFAULT_MAX_BATCH_SIZE, minimum=1),
        poll_interval_seconds=env_float(
            "XDB_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS, minimum=0.0
        ),
        max_poll_attempts=env_int("XDB_MAX_POLL_ATTEMPTS", DEFAULT_MAX_POLL_ATTEMPTS, minimum=1),
        expand_fan_out=env_int("XDB_EXPAND_FAN_OUT", DEFAULT_EXPAND_FAN_OUT, minimum=1),
        search_start=env_date("XDB_SEARCH_START", DEFAULT_SEARCH_START),
        search_days=env_int("XDB_SEARCH_DAYS", DEFAULT_SEARCH_DAYS, minimum=0),
    )
