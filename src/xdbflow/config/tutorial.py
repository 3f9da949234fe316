"""Identifiers used by the walkthrough commands."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from .env import env_str
from .errors import ConfigurationError

# Placeholders; point these at the channel and goal of the target installation
DEFAULT_CHANNEL_ID = "110cbf07-6b1a-4743-a398-6749acfcd7aa"
DEFAULT_EVENT_ID = "8fff6d2b-a1c9-4a1b-8c6b-d53d0b3e2d1c"


@dataclass(frozen=True, slots=True)
class TutorialConfig:
    key_source: str = "twitter"
    key_prefix: str = "xdbflow-"
    channel_id: UUID = UUID(DEFAULT_CHANNEL_ID)
    event_id: UUID = UUID(DEFAULT_EVENT_ID)
    event_type_name: str = "Sitecore.XConnect.Goal"
    event_display_name: str = "Instant Demo Goal"


def get_tutorial_config() -> TutorialConfig:
    try:
        channel_id = UUID(env_str("XDB_CHANNEL_ID", DEFAULT_CHANNEL_ID))
        event_id = UUID(env_str("XDB_EVENT_ID", DEFAULT_EVENT_ID))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid channel or event id: {exc}") from exc
    return TutorialConfig(
        key_source=env_str("XDB_KEY_SOURCE", "twitter"),
        key_prefix=env_str("XDB_KEY_PREFIX", "xdbflow-"),
        channel_id=channel_id,
        event_id=event_id,
        event_type_name=env_str("XDB_EVENT_TYPE_NAME", "Sitecore.XConnect.Goal"),
        event_display_name=env_str("XDB_EVENT_DISPLAY_NAME", "Instant Demo Goal"),
    )
