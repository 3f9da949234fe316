"""Expansion of lightweight index hits into authoritative records."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    TransientFailureError,
    ValidationFailedError,
)
from xdbflow.domain.model import ExpandedInteraction, IndexHit, SkipReason

if TYPE_CHECKING:
    from collections.abc import Sequence

    from xdbflow.config.orchestration import OrchestrationConfig
    from xdbflow.domain.ports import StoreGateway

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SkippedHit:
    hit: IndexHit
    reason: SkipReason
    error: StoreError | None = None


@dataclass(slots=True)
class CorrelationResult:
    expanded: list[ExpandedInteraction] = field(default_factory=list)
    skipped: list[SkippedHit] = field(default_factory=list)


def parse_identifier(raw: str | None) -> UUID | None:
    """Return the identifier as a UUID, or ``None`` when missing or malformed."""

    if raw is None or not raw.strip():
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


class ResultCorrelator:
    def __init__(self, gateway: StoreGateway, config: OrchestrationConfig) -> None:
        self._gateway = gateway
        self._config = config

    async def expand(self, hits: Sequence[IndexHit]) -> CorrelationResult:
        """Resolve every usable hit; never raise for a single bad or stale hit.

        Lookups run concurrently, ``expand_fan_out`` at a time, so the order of
        ``expanded`` does not follow the input order.
        """

        result = CorrelationResult()
        resolvable: list[tuple[IndexHit, UUID, UUID]] = []
        for hit in hits:
            entity_id = parse_identifier(hit.entity_id)
            interaction_id = parse_identifier(hit.interaction_id)
            if entity_id is None or interaction_id is None:
                result.skipped.append(SkippedHit(hit, SkipReason.MALFORMED))
                continue
            resolvable.append((hit, entity_id, interaction_id))

        for wave in batched(resolvable, self._config.expand_fan_out):
            outcomes = await asyncio.gather(
                *(self._expand_one(hit, eid, iid) for hit, eid, iid in wave)
            )
            for outcome in outcomes:
                if isinstance(outcome, SkippedHit):
                    result.skipped.append(outcome)
                else:
                    result.expanded.append(outcome)

        if result.skipped:
            log.warning(
                "Skipped %s of %s index hits (%s)",
                len(result.skipped),
                len(hits),
                ", ".join(sorted({skipped.reason.value for skipped in result.skipped})),
            )
        log.info("Expanded %s index hits", len(result.expanded))
        return result

    async def _expand_one(
        self, hit: IndexHit, entity_id: UUID, interaction_id: UUID
    ) -> ExpandedInteraction | SkippedHit:
        try:
            return await self._gateway.expand_hit(entity_id, interaction_id)
        except NotFoundError as exc:
            log.debug("Hit %s/%s no longer resolves: %s", entity_id, interaction_id, exc)
            return SkippedHit(hit, SkipReason.NOT_FOUND, exc)
        except TransientFailureError as exc:
            return SkippedHit(hit, SkipReason.TRANSIENT, exc)
        except StoreError as exc:
            log.debug("Store rejected expansion of %s/%s: %s", entity_id, interaction_id, exc)
            return SkippedHit(hit, _skip_reason_for(exc), exc)


def _skip_reason_for(error: StoreError) -> SkipReason:
    if isinstance(error, ValidationFailedError):
        return SkipReason.VALIDATION
    if isinstance(error, ConflictError):
        return SkipReason.CONFLICT
    return SkipReason.TRANSIENT


__all__ = ["CorrelationResult", "ResultCorrelator", "SkippedHit", "parse_identifier"]
