"""Error taxonomy shared by the gateway port and the orchestration layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from xdbflow.domain.model import IndexHit


class XdbFlowError(RuntimeError):
    """Base class for all xdbflow errors."""


class StoreError(XdbFlowError):
    """Raised for failures reported by (or while talking to) the store."""


class ConflictError(StoreError):
    """An external key is already taken. Never retried."""


class NotFoundError(StoreError):
    """A referenced entity, interaction or definition does not exist."""


class ValidationFailedError(StoreError, ValueError):
    """Input was malformed and was rejected before or by the store."""


class TransientFailureError(StoreError):
    """Transport or backend failure; the caller may retry the whole call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConvergenceTimeoutError(XdbFlowError):
    """The index did not converge within the allowed number of attempts.

    Distinct from :class:`TransientFailureError`: the backend answered every
    query, it just has not caught up yet.
    """

    def __init__(self, attempts: int, last_hits: Sequence[IndexHit]) -> None:
        super().__init__(
            f"Index did not converge after {attempts} attempts ({len(last_hits)} hits last seen)"
        )
        self.attempts = attempts
        self.last_hits = tuple(last_hits)


class PollCancelledError(XdbFlowError):
    """The caller cancelled a convergence wait."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Convergence wait cancelled after {attempts} attempts")
        self.attempts = attempts
