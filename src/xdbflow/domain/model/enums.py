"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class OutcomeStatus(StrEnum):
    SUCCEEDED = "succeeded"
    CONFLICT = "conflict"
    VALIDATION_FAILED = "validation_failed"
    TRANSIENT_FAILURE = "transient_failure"
    NOT_FOUND = "not_found"


class SkipReason(StrEnum):
    """Why the correlator could not expand an index hit."""

    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    VALIDATION = "validation"
    CONFLICT = "conflict"


class LifecycleStage(StrEnum):
    NON_EXISTENT = "non_existent"
    CREATED = "created"
    RETRIEVABLE = "retrievable"
    FACETS_UPDATED = "facets_updated"
    INTERACTION_REGISTERED = "interaction_registered"
    INDEXED = "indexed"
    DELETED = "deleted"


class FacetName(StrEnum):
    PERSONAL = "personal"
    EMAILS = "emails"
    IP_INFO = "ip_info"
