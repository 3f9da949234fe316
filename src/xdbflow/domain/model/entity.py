"""Entities held in the primary store and the specs used to create them.

The store assigns the identifier; callers correlate entities with outside
systems through external keys (``source:value``), each unique per source.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from xdbflow.domain.model.interaction import Interaction


type Facet = Mapping[str, object]


@dataclass(frozen=True, slots=True)
class ExternalKey:
    source: str
    value: str

    def __str__(self) -> str:
        return f"{self.source}:{self.value}"

    @property
    def is_blank(self) -> bool:
        return not self.source.strip() or not self.value.strip()

    @classmethod
    def parse(cls, text: str) -> ExternalKey:
        source, sep, value = text.partition(":")
        if not sep:
            raise ValueError(f"External key must look like 'source:value', got {text!r}")
        return cls(source=source, value=value)


@dataclass(frozen=True, slots=True, kw_only=True)
class EntitySpec:
    """Everything needed to create a new entity."""

    keys: tuple[ExternalKey, ...]
    facets: Mapping[str, Facet] = field(default_factory=dict)

    @classmethod
    def identified_by(cls, key: ExternalKey, **facets: Facet) -> EntitySpec:
        return cls(keys=(key,), facets=facets)


@dataclass(slots=True, kw_only=True)
class Entity:
    """Authoritative snapshot of an entity as read from the store."""

    id: UUID
    keys: tuple[ExternalKey, ...] = ()
    facets: dict[str, Facet] = field(default_factory=dict)
    interactions: tuple[Interaction, ...] = ()

    def key_for(self, source: str) -> ExternalKey | None:
        return next((key for key in self.keys if key.source == source), None)

    def has_key(self, key: ExternalKey) -> bool:
        return key in self.keys

    def with_interactions(self, interactions: tuple[Interaction, ...]) -> Entity:
        return replace(self, interactions=interactions)
