"""Best-effort deletion of a set of entities.

Deletion is driven by a separately computed working set (typically entities
found stale through the index), so partial progress is kept: one failed
delete never stops the others and nothing is rolled back.
"""

from __future__ import annotations

import asyncio
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING

from xdbflow.domain.errors import StoreError, TransientFailureError
from xdbflow.domain.model import Entity, ItemOutcome, OutcomeSet

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from xdbflow.config.orchestration import OrchestrationConfig
    from xdbflow.domain.ports import DeleteResult, StoreGateway

log = getLogger(__name__)


class BatchDeleteCoordinator:
    def __init__(self, gateway: StoreGateway, config: OrchestrationConfig) -> None:
        self._gateway = gateway
        self._config = config

    async def delete_batch(self, entities: Iterable[Entity | UUID]) -> OutcomeSet[UUID]:
        """Attempt every delete and return one outcome per distinct entity id."""

        entity_ids = list(dict.fromkeys(_entity_id(entity) for entity in entities))
        if not entity_ids:
            return OutcomeSet([])

        chunks = list(batched(entity_ids, self._config.max_batch_size))
        chunk_results = await asyncio.gather(*(self._delete_chunk(chunk) for chunk in chunks))

        merged: dict[UUID, DeleteResult] = {}
        for results in chunk_results:
            merged.update(results)

        outcomes: list[ItemOutcome[UUID]] = []
        for entity_id in entity_ids:
            error = merged[entity_id] if entity_id in merged else _missing_result(entity_id)
            if error is None:
                outcomes.append(ItemOutcome.success(entity_id, entity_id))
            else:
                log.warning("Delete of entity %s failed: %s", entity_id, error)
                outcomes.append(ItemOutcome.failure(entity_id, error, entity_id=entity_id))

        outcome_set = OutcomeSet(outcomes)
        log.info("Deleted %s of %s entities", len(outcome_set.succeeded), len(outcome_set))
        return outcome_set

    async def _delete_chunk(self, chunk: Sequence[UUID]) -> dict[UUID, DeleteResult]:
        try:
            return await self._gateway.delete_batch(chunk)
        except StoreError as exc:
            log.warning("Delete request for %s entities failed: %s", len(chunk), exc)
            return dict.fromkeys(chunk, exc)


def _entity_id(entity: Entity | UUID) -> UUID:
    if isinstance(entity, Entity):
        return entity.id
    return entity


def _missing_result(entity_id: UUID) -> StoreError:
    return TransientFailureError(f"Store did not report a delete result for {entity_id}")


__all__ = ["BatchDeleteCoordinator"]
