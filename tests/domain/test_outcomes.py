from __future__ import annotations

from uuid import uuid4

import pytest

from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    TransientFailureError,
    ValidationFailedError,
)
from xdbflow.domain.model import (
    Entity,
    ExternalKey,
    ItemOutcome,
    OutcomeSet,
    OutcomeStatus,
    status_for_error,
)


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (ConflictError("taken"), OutcomeStatus.CONFLICT),
        (ValidationFailedError("bad"), OutcomeStatus.VALIDATION_FAILED),
        (NotFoundError("gone"), OutcomeStatus.NOT_FOUND),
        (TransientFailureError("timeout", status_code=503), OutcomeStatus.TRANSIENT_FAILURE),
        (StoreError("unknown"), OutcomeStatus.TRANSIENT_FAILURE),
    ],
)
def test_status_for_error(error: StoreError, status: OutcomeStatus) -> None:
    assert status_for_error(error) is status


def test_outcome_set_partitions_and_preserves_order() -> None:
    first, second = uuid4(), uuid4()
    outcomes = OutcomeSet(
        [
            ItemOutcome.success("a", first),
            ItemOutcome.failure("b", ConflictError("taken")),
            ItemOutcome.success("c", second),
        ]
    )

    assert len(outcomes) == 3
    assert [outcome.item for outcome in outcomes] == ["a", "b", "c"]
    assert outcomes.entity_ids == (first, second)
    assert [outcome.item for outcome in outcomes.failed] == ["b"]
    assert not outcomes.all_succeeded
    assert outcomes.by_status()[OutcomeStatus.CONFLICT][0].item == "b"
    assert repr(outcomes) == "OutcomeSet(succeeded=2, conflict=1)"


def test_empty_outcome_set_counts_as_success() -> None:
    outcomes: OutcomeSet[str] = OutcomeSet([])

    assert outcomes.all_succeeded
    assert outcomes.entity_ids == ()


def test_external_key_rendering_and_parsing() -> None:
    key = ExternalKey.parse("twitter:myrtle:mc")

    assert key == ExternalKey("twitter", "myrtle:mc")
    assert str(key) == "twitter:myrtle:mc"
    with pytest.raises(ValueError, match="source:value"):
        ExternalKey.parse("no-separator")


def test_entity_key_lookup_by_source() -> None:
    entity = Entity(
        id=uuid4(),
        keys=(ExternalKey("twitter", "myrtle"), ExternalKey("email", "myrtle@example.com")),
    )

    assert entity.key_for("email") == ExternalKey("email", "myrtle@example.com")
    assert entity.key_for("phone") is None
    assert entity.has_key(ExternalKey("twitter", "myrtle"))
    assert not entity.has_key(ExternalKey("twitter", "other"))
