"""Connection settings for the xDB store."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

XDB_TIMEOUT_SECONDS = 30.0
XDB_RATE_LIMIT_PER_SECOND = 10


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Holds the store endpoint, credentials and HTTP behaviour."""

    base_url: str
    api_key: str
    resilience: ResilienceConfig


def get_store_config(*, resilience: ResilienceConfig | None = None) -> StoreConfig:
    values = require_env_vars(("XDB_BASE_URL", "XDB_API_KEY"))
    base_url = values["XDB_BASE_URL"].rstrip("/")
    api_key = values["XDB_API_KEY"]
    return StoreConfig(
        base_url=base_url,
        api_key=api_key,
        resilience=resilience
        or ResilienceConfig(
            name="xdb",
            base_url=base_url,
            timeout_seconds=env_float("XDB_TIMEOUT_SECONDS", XDB_TIMEOUT_SECONDS, minimum=0.1),
            ratelimit=RateLimit(
                max_calls=env_int(
                    "XDB_RATE_LIMIT_PER_SECOND", XDB_RATE_LIMIT_PER_SECOND, minimum=1
                ),
                per_seconds=1.0,
            ),
            default_headers={"X-Api-Key": api_key, "Accept": "application/json"},
        ),
    )
