"""Translate between xDB payloads and domain objects."""

from __future__ import annotations

from typing import TYPE_CHECKING

from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    TransientFailureError,
    ValidationFailedError,
)
from xdbflow.domain.model import (
    Entity,
    ExpandedInteraction,
    ExternalKey,
    IndexHit,
    InactiveEntitySearch,
    Interaction,
    InteractionSearch,
    ReferenceDefinition,
)

from .schema import (
    DefinitionPayload,
    EntityPayload,
    ErrorPayload,
    ExpandedInteractionResponse,
    IndexHitPayload,
    InteractionPayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from xdbflow.domain.model import EntitySpec, Facet, IndexQuery

_ERRORS_BY_CODE: dict[str, type[StoreError]] = {
    "conflict": ConflictError,
    "validation": ValidationFailedError,
    "not_found": NotFoundError,
    "transient": TransientFailureError,
}


def error_from_payload(payload: ErrorPayload) -> StoreError:
    error_cls = _ERRORS_BY_CODE.get(payload.code, TransientFailureError)
    return error_cls(payload.message or payload.code)


def parse_interaction(payload: InteractionPayload) -> Interaction:
    return Interaction(
        id=payload.id,
        timestamp=payload.timestamp,
        channel_id=payload.channel_id,
        event_id=payload.event_id,
        user_agent=payload.user_agent,
        context=payload.facets,
    )


def parse_entity(payload: EntityPayload) -> Entity:
    return Entity(
        id=payload.id,
        keys=tuple(ExternalKey(key.source, key.identifier) for key in payload.identifiers),
        facets=dict(payload.facets),
        interactions=tuple(
            sorted(
                (parse_interaction(item) for item in payload.interactions),
                key=lambda interaction: interaction.timestamp,
            )
        ),
    )


def parse_expanded(payload: ExpandedInteractionResponse) -> ExpandedInteraction:
    return ExpandedInteraction(
        entity=parse_entity(payload.entity),
        interaction=parse_interaction(payload.interaction),
    )


def parse_hit(payload: IndexHitPayload) -> IndexHit:
    return IndexHit(
        entity_id=payload.entity_id,
        interaction_id=payload.interaction_id,
        timestamp=payload.timestamp,
    )


def parse_definition(payload: DefinitionPayload) -> ReferenceDefinition:
    return ReferenceDefinition(
        id=payload.id,
        type_name=payload.type_name,
        key=payload.key,
        display_name=payload.display_name,
        culture=payload.culture,
    )


def serialize_facets(facets: Mapping[str, Facet]) -> dict[str, dict[str, object]]:
    return {str(name): dict(facet) for name, facet in facets.items()}


def serialize_spec(spec: EntitySpec) -> dict[str, object]:
    return {
        "identifiers": [{"source": key.source, "identifier": key.value} for key in spec.keys],
        "facets": serialize_facets(spec.facets),
    }


def serialize_interaction(interaction: Interaction) -> dict[str, object]:
    return {
        "startDateTime": interaction.timestamp.isoformat(),
        "channelId": str(interaction.channel_id),
        "eventId": str(interaction.event_id),
        "userAgent": interaction.user_agent,
        "facets": serialize_facets(interaction.context),
    }


def search_path_and_body(query: IndexQuery) -> tuple[str, dict[str, object]]:
    match query:
        case InteractionSearch(start=start, end=end):
            return "/search/interactions", {
                "start": start.isoformat(),
                "end": end.isoformat(),
                "inclusive": True,
            }
        case InactiveEntitySearch(cutoff=cutoff):
            return "/search/entities", {"lastInteractionBefore": cutoff.isoformat()}
        case _:
            raise TypeError(f"Unsupported index query: {query!r}")
