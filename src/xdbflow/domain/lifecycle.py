"""Single-entity lifecycle and the composed walkthrough flows.

The manager is the only component that strings the store primitives, the
batch coordinators, the poller and the correlator together. Each stage hands
its result to the next explicitly; errors from a stage are never hidden.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from xdbflow.domain.batch_delete import BatchDeleteCoordinator
from xdbflow.domain.batch_write import BatchWriteCoordinator
from xdbflow.domain.consistency import ConsistencyPoller, at_least, distinct_entities_at_least
from xdbflow.domain.correlation import ResultCorrelator, parse_identifier
from xdbflow.domain.errors import NotFoundError, StoreError
from xdbflow.domain.model import (
    Entity,
    EntitySpec,
    ExternalKey,
    InactiveEntitySearch,
    Interaction,
    InteractionSearch,
    ItemOutcome,
    LifecycleStage,
    OutcomeSet,
)
from xdbflow.domain.time_windows import TimeWindow, utcnow

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from xdbflow.config.orchestration import OrchestrationConfig
    from xdbflow.domain.consistency import HitPredicate
    from xdbflow.domain.correlation import CorrelationResult
    from xdbflow.domain.model import Facet, IndexHit, ReferenceDefinition
    from xdbflow.domain.ports import StoreGateway
    from xdbflow.domain.time_windows import Clock

log = getLogger(__name__)

type EntityRef = Entity | ExternalKey | UUID


@dataclass(frozen=True, slots=True, kw_only=True)
class OnboardingRequest:
    key: ExternalKey
    facets: Mapping[str, Facet]
    facet_patch: Mapping[str, Facet]
    channel_id: UUID
    event_id: UUID
    event_type_name: str
    event_display_name: str
    context: Mapping[str, Facet] = field(default_factory=dict)
    timestamp: datetime | None = None


@dataclass(slots=True, kw_only=True)
class OnboardingResult:
    entity_id: UUID
    created: Entity
    updated: Entity
    definition: ReferenceDefinition
    interaction: Interaction
    with_interactions: Entity
    stages: list[LifecycleStage] = field(default_factory=list)


@dataclass(slots=True, kw_only=True)
class PurgeResult:
    cutoff: datetime
    hits: list[IndexHit]
    entities: list[Entity]
    outcomes: OutcomeSet[UUID]

    @property
    def deleted(self) -> tuple[UUID, ...]:
        return self.outcomes.entity_ids


class EntityLifecycleManager:
    def __init__(  # noqa: PLR0913
        self,
        gateway: StoreGateway,
        config: OrchestrationConfig,
        *,
        writer: BatchWriteCoordinator | None = None,
        deleter: BatchDeleteCoordinator | None = None,
        poller: ConsistencyPoller | None = None,
        correlator: ResultCorrelator | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._gateway = gateway
        self._config = config
        self._writer = writer or BatchWriteCoordinator(gateway, config)
        self._deleter = deleter or BatchDeleteCoordinator(gateway, config)
        self._poller = poller or ConsistencyPoller(gateway, config)
        self._correlator = correlator or ResultCorrelator(gateway, config)
        self._clock = clock

    # Single entity -----------------------------------------------------------

    async def create(self, key: ExternalKey, facets: Mapping[str, Facet] | None = None) -> UUID:
        """Create an entity identified by ``key``; ``ConflictError`` if taken."""

        spec = EntitySpec.identified_by(key, **(facets or {}))
        outcomes = await self._writer.create_batch([spec])
        outcome = outcomes[0]
        if outcome.error is not None:
            raise outcome.error
        if outcome.entity_id is None:
            raise StoreError(f"Store accepted {key} without returning an identifier")
        log.info("Created entity %s for %s", outcome.entity_id, key)
        return outcome.entity_id

    async def retrieve(self, key: ExternalKey) -> Entity:
        entity = await self._gateway.get_by_external_key(key)
        if entity is None:
            raise NotFoundError(f"No entity with key {key}")
        return entity

    async def update(self, key: ExternalKey, facet_patch: Mapping[str, Facet]) -> Entity:
        """Merge ``facet_patch`` into the entity; each named facet is replaced whole."""

        entity = await self.retrieve(key)
        updated = await self._gateway.update_facets(entity.id, facet_patch)
        log.info("Updated facets %s on entity %s", ", ".join(sorted(facet_patch)), entity.id)
        return updated

    async def register_interaction(  # noqa: PLR0913
        self,
        entity_ref: EntityRef,
        channel_id: UUID,
        event_id: UUID,
        context: Mapping[str, Facet] | None = None,
        *,
        timestamp: datetime | None = None,
    ) -> Interaction:
        entity_id = await self._resolve_id(entity_ref)
        interaction = Interaction(
            timestamp=timestamp or self._clock(),
            channel_id=channel_id,
            event_id=event_id,
            context=context or {},
        )
        stored = await self._gateway.register_interaction(entity_id, interaction)
        log.info("Registered event %s on entity %s at %s", event_id, entity_id, stored.timestamp)
        return stored

    async def retrieve_with_interactions(
        self,
        key: ExternalKey,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Entity:
        """Return the entity with only the interactions in ``[start, end]``.

        Both ends are inclusive and either may be omitted. Filtering happens
        here so the boundary convention does not depend on the backend.
        """

        window = TimeWindow(start=start, end=end)
        window.resolve(clock=self._clock)
        entity = await self._gateway.get_by_external_key(key, with_interactions=True)
        if entity is None:
            raise NotFoundError(f"No entity with key {key}")
        kept = tuple(
            interaction
            for interaction in entity.interactions
            if window.contains(interaction.timestamp, clock=self._clock)
        )
        return entity.with_interactions(kept)

    async def delete(self, key: ExternalKey) -> UUID:
        entity = await self.retrieve(key)
        outcomes = await self._deleter.delete_batch([entity])
        outcome = outcomes[0]
        if outcome.error is not None:
            raise outcome.error
        log.info("Deleted entity %s (%s)", entity.id, key)
        return entity.id

    # Reference data ----------------------------------------------------------

    async def find_reference_definition(
        self, type_name: str, key: str
    ) -> ReferenceDefinition | None:
        return await self._gateway.find_reference_definition(type_name, key)

    async def create_reference_definition_if_absent(
        self, type_name: str, key: str, display_name: str
    ) -> ReferenceDefinition:
        # one atomic store call; a lookup followed by a create would race
        return await self._gateway.get_or_create_reference_definition(
            type_name, key, display_name
        )

    # Index-backed discovery --------------------------------------------------

    async def discover_interactions(
        self,
        window: TimeWindow | None = None,
        predicate: HitPredicate | None = None,
        *,
        max_attempts: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> CorrelationResult:
        """Wait until the interaction index shows what ``predicate`` expects, then expand."""

        effective = window or TimeWindow(
            start=self._config.search_start, end=self._config.search_end
        )
        start, end = effective.resolve(clock=self._clock)
        if start is None or end is None:
            raise ValueError("Interaction search needs both a start and an end")
        hits = await self._poller.wait_for_convergence(
            InteractionSearch(start=start, end=end),
            predicate or at_least(1),
            max_attempts=max_attempts,
            cancel=cancel,
        )
        return await self._correlator.expand(hits)

    # Composed flows ----------------------------------------------------------

    async def onboard(self, request: OnboardingRequest) -> OnboardingResult:
        """Create, read back, update and track a single entity."""

        stages = [LifecycleStage.NON_EXISTENT]
        entity_id = await self.create(request.key, request.facets)
        stages.append(LifecycleStage.CREATED)

        created = await self.retrieve(request.key)
        stages.append(LifecycleStage.RETRIEVABLE)

        updated = await self.update(request.key, request.facet_patch)
        stages.append(LifecycleStage.FACETS_UPDATED)

        definition = await self.create_reference_definition_if_absent(
            request.event_type_name, str(request.event_id), request.event_display_name
        )
        interaction = await self.register_interaction(
            updated,
            request.channel_id,
            request.event_id,
            request.context,
            timestamp=request.timestamp,
        )
        stages.append(LifecycleStage.INTERACTION_REGISTERED)

        with_interactions = await self.retrieve_with_interactions(request.key)
        return OnboardingResult(
            entity_id=entity_id,
            created=created,
            updated=updated,
            definition=definition,
            interaction=interaction,
            with_interactions=with_interactions,
            stages=stages,
        )

    async def seed_inactive(  # noqa: PLR0913
        self,
        count: int,
        *,
        source: str,
        prefix: str,
        channel_id: UUID,
        event_id: UUID,
        last_seen: datetime,
    ) -> OutcomeSet[EntitySpec]:
        """Create ``count`` entities whose only interaction happened at ``last_seen``.

        An entity whose interaction could not be registered is reported as a
        failure carrying its identifier, so callers do not expect it to show up
        in the index.
        """

        specs = [
            EntitySpec.identified_by(ExternalKey(source, f"{prefix}{uuid4().hex}"))
            for _ in range(count)
        ]
        created = await self._writer.create_batch(specs)
        registrations = await asyncio.gather(
            *(
                self.register_interaction(entity_id, channel_id, event_id, timestamp=last_seen)
                for entity_id in created.entity_ids
            ),
            return_exceptions=True,
        )
        failures: dict[UUID, StoreError] = {}
        for entity_id, registration in zip(created.entity_ids, registrations, strict=True):
            if isinstance(registration, StoreError):
                log.warning("Could not register activity on entity %s: %s", entity_id, registration)
                failures[entity_id] = registration
            elif isinstance(registration, BaseException):
                raise registration
        if not failures:
            return created

        outcomes: list[ItemOutcome[EntitySpec]] = []
        for outcome in created:
            error = failures.get(outcome.entity_id) if outcome.entity_id is not None else None
            if error is None:
                outcomes.append(outcome)
            else:
                outcomes.append(
                    ItemOutcome.failure(outcome.item, error, entity_id=outcome.entity_id)
                )
        return OutcomeSet(outcomes)

    async def purge_inactive(
        self,
        cutoff: datetime,
        expected: int,
        *,
        max_attempts: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PurgeResult:
        """Delete entities with no interaction after ``cutoff``.

        Waits (boundedly) until the index reports at least ``expected``
        inactive entities, reloads them from the store and deletes them
        best-effort.
        """

        hits = await self._poller.wait_for_convergence(
            InactiveEntitySearch(cutoff=cutoff),
            distinct_entities_at_least(expected),
            max_attempts=max_attempts,
            cancel=cancel,
        )
        entity_ids = list(
            dict.fromkeys(
                entity_id
                for entity_id in (parse_identifier(hit.entity_id) for hit in hits)
                if entity_id is not None
            )
        )
        entities = await self._gateway.get_many(entity_ids) if entity_ids else []
        if len(entities) < len(entity_ids):
            log.info(
                "%s indexed entities no longer exist in the store",
                len(entity_ids) - len(entities),
            )
        outcomes = await self._deleter.delete_batch(entities)
        return PurgeResult(cutoff=cutoff, hits=hits, entities=entities, outcomes=outcomes)

    async def _resolve_id(self, entity_ref: EntityRef) -> UUID:
        if isinstance(entity_ref, Entity):
            return entity_ref.id
        if isinstance(entity_ref, ExternalKey):
            return (await self.retrieve(entity_ref)).id
        return entity_ref


__all__ = [
    "EntityLifecycleManager",
    "EntityRef",
    "OnboardingRequest",
    "OnboardingResult",
    "PurgeResult",
]
