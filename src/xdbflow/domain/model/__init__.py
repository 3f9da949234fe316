"""Public domain model surface."""

from __future__ import annotations

from xdbflow.domain.model.entity import Entity, EntitySpec, ExternalKey, Facet
from xdbflow.domain.model.enums import FacetName, LifecycleStage, OutcomeStatus, SkipReason
from xdbflow.domain.model.index import IndexHit, IndexQuery, InactiveEntitySearch, InteractionSearch
from xdbflow.domain.model.interaction import ExpandedInteraction, Interaction, ip_info_facet
from xdbflow.domain.model.outcomes import ItemOutcome, OutcomeSet, status_for_error
from xdbflow.domain.model.reference import ReferenceDefinition

__all__ = [
    "Entity",
    "EntitySpec",
    "ExpandedInteraction",
    "ExternalKey",
    "Facet",
    "FacetName",
    "InactiveEntitySearch",
    "IndexHit",
    "IndexQuery",
    "Interaction",
    "InteractionSearch",
    "ItemOutcome",
    "LifecycleStage",
    "OutcomeSet",
    "OutcomeStatus",
    "ReferenceDefinition",
    "SkipReason",
    "ip_info_facet",
    "status_for_error",
]
