"""Port describing the store operations the orchestration layer consumes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from xdbflow.domain.errors import StoreError
    from xdbflow.domain.model import (
        Entity,
        EntitySpec,
        ExpandedInteraction,
        ExternalKey,
        Facet,
        IndexHit,
        IndexQuery,
        Interaction,
        ReferenceDefinition,
    )


type CreateResult = UUID | StoreError
"""Per-item result of a batch create: the new id or the reason it was rejected."""

type DeleteResult = StoreError | None
"""Per-id result of a batch delete: ``None`` when the entity was removed."""


@runtime_checkable
class StoreGateway(Protocol):
    """Async contract for the primary store and its search index.

    Whole-call transport failures raise :class:`TransientFailureError`.
    """

    async def get_by_id(self, entity_id: UUID) -> Entity | None: ...

    async def get_by_external_key(
        self, key: ExternalKey, *, with_interactions: bool = False
    ) -> Entity | None: ...

    async def get_many(self, entity_ids: Sequence[UUID]) -> list[Entity]: ...

    async def create_batch(self, specs: Sequence[EntitySpec]) -> list[CreateResult]:
        """Return one result per spec, aligned with the input order."""
        ...

    async def update_facets(self, entity_id: UUID, patch: Mapping[str, Facet]) -> Entity: ...

    async def register_interaction(
        self, entity_id: UUID, interaction: Interaction
    ) -> Interaction: ...

    async def delete_batch(self, entity_ids: Sequence[UUID]) -> dict[UUID, DeleteResult]: ...

    async def search_index(self, query: IndexQuery) -> list[IndexHit]:
        """Read-only and idempotent; safe to repeat."""
        ...

    async def expand_hit(self, entity_id: UUID, interaction_id: UUID) -> ExpandedInteraction: ...

    async def find_reference_definition(
        self, type_name: str, key: str
    ) -> ReferenceDefinition | None: ...

    async def get_or_create_reference_definition(
        self, type_name: str, key: str, display_name: str
    ) -> ReferenceDefinition:
        """Atomic on the store side: concurrent calls yield the same definition."""
        ...
