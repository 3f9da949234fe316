"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from xdbflow.adapters.xdb import XdbHttpGateway
from xdbflow.config import get_orchestration_config, get_tutorial_config
from xdbflow.domain.consistency import includes_entity
from xdbflow.domain.errors import ConvergenceTimeoutError, XdbFlowError
from xdbflow.domain.lifecycle import EntityLifecycleManager, OnboardingRequest
from xdbflow.domain.model import ExternalKey, FacetName, LifecycleStage, ip_info_facet
from xdbflow.domain.ports import StoreGateway
from xdbflow.domain.time_windows import TimeWindow, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from xdbflow.config import OrchestrationConfig, TutorialConfig
    from xdbflow.domain.correlation import CorrelationResult
    from xdbflow.domain.lifecycle import OnboardingResult, PurgeResult
    from xdbflow.domain.time_windows import Clock

GatewayFactory = Callable[[], AbstractAsyncContextManager[StoreGateway]]

log = getLogger(__name__)


@dataclass(slots=True)
class WalkthroughResult:
    onboarding: OnboardingResult
    discovered: CorrelationResult | None
    deleted: UUID
    stages: list[LifecycleStage] = field(default_factory=list)


def _default_gateway_factory() -> AbstractAsyncContextManager[StoreGateway]:
    return XdbHttpGateway()


def run_single_entity_walkthrough(  # noqa: PLR0913
    key_value: str | None = None,
    *,
    key: ExternalKey | None = None,
    gateway_factory: GatewayFactory | None = None,
    orchestration: OrchestrationConfig | None = None,
    tutorial: TutorialConfig | None = None,
    clock: Clock = utcnow,
) -> WalkthroughResult:
    """Create, update, track, search for and finally delete one entity.

    ``key`` names the entity outright; otherwise ``key_value`` (or a generated
    value) is used under the configured key source.
    """

    effective_orchestration = orchestration or get_orchestration_config()
    effective_tutorial = tutorial or get_tutorial_config()
    key = key or ExternalKey(
        effective_tutorial.key_source,
        key_value or f"{effective_tutorial.key_prefix}{uuid4().hex}",
    )
    request = OnboardingRequest(
        key=key,
        facets={FacetName.PERSONAL: {"first_name": "Myrtle", "last_name": "McSitecore"}},
        facet_patch={
            FacetName.PERSONAL: {
                "first_name": "Myrtle",
                "last_name": "McSitecore",
                "job_title": "Senior Programmer Writer",
            }
        },
        channel_id=effective_tutorial.channel_id,
        event_id=effective_tutorial.event_id,
        event_type_name=effective_tutorial.event_type_name,
        event_display_name=effective_tutorial.event_display_name,
        context=ip_info_facet("127.0.0.1", business_name="Home"),
    )
    log.info("Starting single-entity walkthrough for %s", key)
    return asyncio.run(
        _walkthrough(
            request,
            gateway_factory or _default_gateway_factory,
            effective_orchestration,
            clock,
        )
    )


async def _walkthrough(
    request: OnboardingRequest,
    gateway_factory: GatewayFactory,
    orchestration: OrchestrationConfig,
    clock: Clock,
) -> WalkthroughResult:
    async with gateway_factory() as gateway:
        manager = EntityLifecycleManager(gateway, orchestration, clock=clock)
        onboarding = await manager.onboard(request)
        log.info(
            "Entity %s holds %s interaction(s)",
            onboarding.entity_id,
            len(onboarding.with_interactions.interactions),
        )

        stages = list(onboarding.stages)
        window = _search_window(orchestration, onboarding.interaction.timestamp)
        discovered: CorrelationResult | None
        try:
            discovered = await manager.discover_interactions(
                window, includes_entity(onboarding.entity_id)
            )
        except ConvergenceTimeoutError as exc:
            log.warning("Entity %s not indexed yet: %s", onboarding.entity_id, exc)
            discovered = None
        else:
            stages.append(LifecycleStage.INDEXED)

        deleted = await manager.delete(request.key)
        stages.append(LifecycleStage.DELETED)
    return WalkthroughResult(
        onboarding=onboarding, discovered=discovered, deleted=deleted, stages=stages
    )


def _search_window(orchestration: OrchestrationConfig, moment: datetime) -> TimeWindow:
    """The configured window, or one as long ending at ``moment`` if it falls outside."""

    configured = TimeWindow(start=orchestration.search_start, end=orchestration.search_end)
    if configured.contains(moment):
        return configured
    return TimeWindow(end=moment, lookback=timedelta(days=orchestration.search_days))


def run_inactive_purge(
    count: int = 5,
    *,
    gateway_factory: GatewayFactory | None = None,
    orchestration: OrchestrationConfig | None = None,
    tutorial: TutorialConfig | None = None,
    max_attempts: int | None = None,
) -> PurgeResult:
    """Seed ``count`` entities with old activity, wait for the index, delete them."""

    if count < 1:
        raise ValueError("count must be at least 1")
    effective_orchestration = orchestration or get_orchestration_config()
    effective_tutorial = tutorial or get_tutorial_config()
    log.info(
        "Starting inactive purge: count=%s, cutoff=%s, max_attempts=%s",
        count,
        effective_orchestration.search_end,
        max_attempts or effective_orchestration.max_poll_attempts,
    )
    result = asyncio.run(
        _purge(
            count,
            gateway_factory or _default_gateway_factory,
            effective_orchestration,
            effective_tutorial,
            max_attempts,
        )
    )
    log.info(
        f"Finished inactive purge: found={len(result.entities)}, deleted={len(result.deleted)}, "
        f"failed={len(result.outcomes.failed)}"
    )
    return result


async def _purge(
    count: int,
    gateway_factory: GatewayFactory,
    orchestration: OrchestrationConfig,
    tutorial: TutorialConfig,
    max_attempts: int | None,
) -> PurgeResult:
    async with gateway_factory() as gateway:
        manager = EntityLifecycleManager(gateway, orchestration)
        seeded = await manager.seed_inactive(
            count,
            source=tutorial.key_source,
            prefix=tutorial.key_prefix,
            channel_id=tutorial.channel_id,
            event_id=tutorial.event_id,
            last_seen=orchestration.search_start,
        )
        if not seeded.succeeded:
            raise XdbFlowError(f"None of the {count} seed entities were created: {seeded!r}")
        return await manager.purge_inactive(
            orchestration.search_end,
            expected=len(seeded.succeeded),
            max_attempts=max_attempts,
        )
