"""Bounded waiting for the search index to catch up with the primary store.

Writes are durable immediately but only show up in the index after a lag, so a
search issued right after a write can legitimately return nothing. The poller
re-issues a read-only query until a predicate over the hits holds, a finite
attempt budget runs out, or the caller cancels.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from logging import getLogger
from typing import TYPE_CHECKING

from xdbflow.domain.errors import ConvergenceTimeoutError, PollCancelledError

if TYPE_CHECKING:
    from uuid import UUID

    from xdbflow.config.orchestration import OrchestrationConfig
    from xdbflow.domain.model import IndexHit, IndexQuery
    from xdbflow.domain.ports import StoreGateway

log = getLogger(__name__)

type HitPredicate = Callable[[Sequence[IndexHit]], bool]
type Sleeper = Callable[[float], Awaitable[None]]


def at_least(count: int) -> HitPredicate:
    """Converged once the index returns ``count`` or more hits."""

    def predicate(hits: Sequence[IndexHit]) -> bool:
        return len(hits) >= count

    return predicate


def distinct_entities_at_least(count: int) -> HitPredicate:
    """Converged once ``count`` different entity ids are visible."""

    def predicate(hits: Sequence[IndexHit]) -> bool:
        return len({hit.entity_id for hit in hits if hit.entity_id}) >= count

    return predicate


def includes_entity(entity_id: UUID) -> HitPredicate:
    """Converged once any hit points at ``entity_id``."""

    wanted = str(entity_id)

    def predicate(hits: Sequence[IndexHit]) -> bool:
        return any(hit.entity_id and hit.entity_id.strip().lower() == wanted for hit in hits)

    return predicate


class ConsistencyPoller:
    def __init__(
        self,
        gateway: StoreGateway,
        config: OrchestrationConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._config = config
        self._sleep = sleep

    async def wait_for_convergence(
        self,
        query: IndexQuery,
        predicate: HitPredicate,
        *,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
        cancel: asyncio.Event | None = None,
    ) -> list[IndexHit]:
        """Return the first hit list that satisfies ``predicate``.

        Raises :class:`ConvergenceTimeoutError` once ``max_attempts`` queries
        have not converged and :class:`PollCancelledError` when ``cancel`` is
        set. Cancellation is observed before each query and before each sleep,
        never in the middle of a store call.
        """

        interval = self._config.poll_interval_seconds if poll_interval is None else poll_interval
        attempts_allowed = self._config.max_poll_attempts if max_attempts is None else max_attempts
        if interval < 0:
            raise ValueError("poll_interval must be non-negative")
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")

        hits: list[IndexHit] = []
        for attempt in range(1, attempts_allowed + 1):
            _raise_if_cancelled(cancel, attempt - 1)
            hits = await self._gateway.search_index(query)
            if predicate(hits):
                log.debug("Index converged after %s attempt(s) with %s hits", attempt, len(hits))
                return hits
            if attempt == attempts_allowed:
                break
            _raise_if_cancelled(cancel, attempt)
            log.debug(
                "Index not converged (%s hits, attempt %s/%s); waiting %ss",
                len(hits),
                attempt,
                attempts_allowed,
                interval,
            )
            await self._sleep(interval)

        log.warning(
            "Index did not converge after %s attempts; last query returned %s hits",
            attempts_allowed,
            len(hits),
        )
        raise ConvergenceTimeoutError(attempts_allowed, hits)


def _raise_if_cancelled(cancel: asyncio.Event | None, attempts: int) -> None:
    if cancel is not None and cancel.is_set():
        log.info("Convergence wait cancelled after %s attempt(s)", attempts)
        raise PollCancelledError(attempts)


__all__ = [
    "ConsistencyPoller",
    "HitPredicate",
    "Sleeper",
    "at_least",
    "distinct_entities_at_least",
    "includes_entity",
]
