"""Search index projections and the queries that produce them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from xdbflow.domain.time_windows import ensure_utc

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class IndexHit:
    """Lightweight, possibly stale index row.

    Identifiers are kept exactly as the index returned them; they may be
    missing or malformed and are only trusted after expansion.
    """

    entity_id: str | None
    interaction_id: str | None
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class InteractionSearch:
    """Interactions whose timestamp falls in ``[start, end]``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))


@dataclass(frozen=True, slots=True)
class InactiveEntitySearch:
    """Entities with no interaction after ``cutoff``."""

    cutoff: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "cutoff", ensure_utc(self.cutoff))


type IndexQuery = InteractionSearch | InactiveEntitySearch
