"""Batched entity creation with per-item outcomes."""

from __future__ import annotations

from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from xdbflow.domain.errors import (
    ConflictError,
    StoreError,
    TransientFailureError,
    ValidationFailedError,
)
from xdbflow.domain.model import ItemOutcome, OutcomeSet

if TYPE_CHECKING:
    from collections.abc import Sequence

    from xdbflow.config.orchestration import OrchestrationConfig
    from xdbflow.domain.model import EntitySpec, ExternalKey
    from xdbflow.domain.ports import CreateResult, StoreGateway

log = getLogger(__name__)


class BatchWriteCoordinator:
    def __init__(self, gateway: StoreGateway, config: OrchestrationConfig) -> None:
        self._gateway = gateway
        self._config = config

    async def create_batch(self, specs: Sequence[EntitySpec]) -> OutcomeSet[EntitySpec]:
        """Create every spec, reporting exactly one outcome per input item.

        Items rejected locally (no usable key, key repeated within the batch)
        are never sent. A request the store fails or rejects as a whole marks each
        of its items with that error; other requests are unaffected.
        """

        if not specs:
            raise ValidationFailedError("create_batch requires at least one entity")

        outcomes: dict[int, ItemOutcome[EntitySpec]] = {}
        pending: list[tuple[int, EntitySpec]] = []
        claimed: dict[ExternalKey, int] = {}

        for index, spec in enumerate(specs):
            rejection = _local_rejection(spec, claimed)
            if rejection is not None:
                outcomes[index] = ItemOutcome.failure(spec, rejection)
                continue
            for key in spec.keys:
                claimed[key] = index
            pending.append((index, spec))

        for chunk in batched(pending, self._config.max_batch_size):
            indices = [index for index, _ in chunk]
            chunk_specs = [spec for _, spec in chunk]
            try:
                results = await self._gateway.create_batch(chunk_specs)
                if len(results) != len(chunk_specs):
                    raise TransientFailureError(  # noqa: TRY301
                        f"Store returned {len(results)} results for {len(chunk_specs)} entities"
                    )
            except StoreError as exc:
                log.warning("Batch create of %s entities failed: %s", len(chunk_specs), exc)
                for index, spec in chunk:
                    outcomes[index] = ItemOutcome.failure(spec, exc)
                continue
            for index, spec, result in zip(indices, chunk_specs, results, strict=True):
                outcomes[index] = _outcome_for(spec, result)

        outcome_set = OutcomeSet([outcomes[index] for index in range(len(specs))])
        log.info(
            "Created %s of %s entities (%s failed)",
            len(outcome_set.succeeded),
            len(outcome_set),
            len(outcome_set.failed),
        )
        return outcome_set


def _local_rejection(spec: EntitySpec, claimed: dict[ExternalKey, int]) -> StoreError | None:
    if not spec.keys:
        return ValidationFailedError("Entity spec carries no external key")
    blank = next((key for key in spec.keys if key.is_blank), None)
    if blank is not None:
        return ValidationFailedError(f"External key {blank} is blank")
    sources = [key.source for key in spec.keys]
    if len(set(sources)) != len(sources):
        return ValidationFailedError("Entity spec repeats an external key source")
    for key in spec.keys:
        if key in claimed:
            return ConflictError(f"External key {key} already used by item {claimed[key]}")
    return None


def _outcome_for(spec: EntitySpec, result: CreateResult) -> ItemOutcome[EntitySpec]:
    if isinstance(result, UUID):
        return ItemOutcome.success(spec, result)
    return ItemOutcome.failure(spec, result)


__all__ = ["BatchWriteCoordinator"]
