"""Per-item outcomes of batch operations."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from xdbflow.domain.model.enums import OutcomeStatus

if TYPE_CHECKING:
    from uuid import UUID


def status_for_error(error: StoreError) -> OutcomeStatus:
    """Map a store error onto the outcome status that reports it."""

    if isinstance(error, ConflictError):
        return OutcomeStatus.CONFLICT
    if isinstance(error, ValidationFailedError):
        return OutcomeStatus.VALIDATION_FAILED
    if isinstance(error, NotFoundError):
        return OutcomeStatus.NOT_FOUND
    return OutcomeStatus.TRANSIENT_FAILURE


@dataclass(frozen=True, slots=True)
class ItemOutcome[T]:
    item: T
    status: OutcomeStatus
    entity_id: UUID | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @classmethod
    def success(cls, item: T, entity_id: UUID) -> ItemOutcome[T]:
        return cls(item=item, status=OutcomeStatus.SUCCEEDED, entity_id=entity_id)

    @classmethod
    def failure(
        cls, item: T, error: StoreError, *, entity_id: UUID | None = None
    ) -> ItemOutcome[T]:
        return cls(item=item, status=status_for_error(error), entity_id=entity_id, error=error)


class OutcomeSet[T](Sequence[ItemOutcome[T]]):
    """Ordered outcomes, exactly one per input item."""

    def __init__(self, outcomes: Sequence[ItemOutcome[T]]) -> None:
        self._outcomes: tuple[ItemOutcome[T], ...] = tuple(outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[ItemOutcome[T]]:
        return iter(self._outcomes)

    def __getitem__(self, index: int) -> ItemOutcome[T]:  # type: ignore[override]
        return self._outcomes[index]

    def __repr__(self) -> str:
        counts = ", ".join(f"{status}={len(items)}" for status, items in self.by_status().items())
        return f"OutcomeSet({counts})"

    @property
    def succeeded(self) -> tuple[ItemOutcome[T], ...]:
        return tuple(outcome for outcome in self._outcomes if outcome.ok)

    @property
    def failed(self) -> tuple[ItemOutcome[T], ...]:
        return tuple(outcome for outcome in self._outcomes if not outcome.ok)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def entity_ids(self) -> tuple[UUID, ...]:
        """Identifiers of the items that succeeded, in input order."""
        return tuple(o.entity_id for o in self.succeeded if o.entity_id is not None)

    def by_status(self) -> dict[OutcomeStatus, list[ItemOutcome[T]]]:
        grouped: dict[OutcomeStatus, list[ItemOutcome[T]]] = {}
        for outcome in self._outcomes:
            grouped.setdefault(outcome.status, []).append(outcome)
        return grouped

    def statuses(self) -> list[OutcomeStatus]:
        return [outcome.status for outcome in self._outcomes]
