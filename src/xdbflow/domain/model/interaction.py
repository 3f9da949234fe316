"""Interactions: immutable, timestamped events attached to one entity."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from xdbflow.domain.model.enums import FacetName
from xdbflow.domain.time_windows import ensure_utc

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from xdbflow.domain.model.entity import Entity, Facet

DEFAULT_USER_AGENT = "xdbflow"


@dataclass(frozen=True, slots=True, kw_only=True)
class Interaction:
    timestamp: datetime
    channel_id: UUID
    event_id: UUID
    context: Mapping[str, Facet] = field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    id: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    def stored_as(self, interaction_id: UUID) -> Interaction:
        return replace(self, id=interaction_id)


def ip_info_facet(address: str, *, business_name: str | None = None) -> dict[str, Facet]:
    """Context facet recording where an interaction originated."""

    info: dict[str, object] = {"ip_address": address}
    if business_name is not None:
        info["business_name"] = business_name
    return {FacetName.IP_INFO: info}


@dataclass(frozen=True, slots=True)
class ExpandedInteraction:
    """Authoritative entity and interaction resolved from an index hit."""

    entity: Entity
    interaction: Interaction
