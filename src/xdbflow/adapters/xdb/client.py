"""HTTP implementation of the store gateway port."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from xdbflow.adapters.http_resilience import ResilienceConfig, ResilientClient
from xdbflow.config.store import StoreConfig, get_store_config
from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    TransientFailureError,
    ValidationFailedError,
)

from .schema import (
    BatchResponse,
    DefinitionPayload,
    EntityListResponse,
    EntityPayload,
    ErrorResponse,
    ExpandedInteractionResponse,
    InteractionPayload,
    SearchResponse,
)
from .translator import (
    error_from_payload,
    parse_definition,
    parse_entity,
    parse_expanded,
    parse_hit,
    parse_interaction,
    search_path_and_body,
    serialize_facets,
    serialize_interaction,
    serialize_spec,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType
    from uuid import UUID

    from pydantic import BaseModel

    from xdbflow.domain.model import (
        Entity,
        EntitySpec,
        ExpandedInteraction,
        ExternalKey,
        Facet,
        IndexHit,
        IndexQuery,
        Interaction,
        ReferenceDefinition,
    )
    from xdbflow.domain.ports import CreateResult, DeleteResult

log = getLogger(__name__)

_STATUS_ERRORS: dict[int, type[StoreError]] = {
    400: ValidationFailedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationFailedError,
}


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _segment(value: str) -> str:
    return quote(value, safe="")


class XdbHttpGateway:
    """Talks to the xDB REST facade; one pooled client per gateway instance."""

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config or get_store_config()
        self._client = client_factory(self.config.resilience)

    async def __aenter__(self) -> XdbHttpGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # Entities ----------------------------------------------------------------

    async def get_by_id(self, entity_id: UUID) -> Entity | None:
        try:
            payload = await self._request(
                "GET", f"/entities/{entity_id}", model=EntityPayload
            )
        except NotFoundError:
            return None
        return parse_entity(payload)

    async def get_by_external_key(
        self, key: ExternalKey, *, with_interactions: bool = False
    ) -> Entity | None:
        params: dict[str, str] = {"source": key.source, "identifier": key.value}
        if with_interactions:
            params["expand"] = "interactions"
        response = await self._request(
            "GET", "/entities", model=EntityListResponse, params=params
        )
        if not response.items:
            return None
        return parse_entity(response.items[0])

    async def get_many(self, entity_ids: Sequence[UUID]) -> list[Entity]:
        response = await self._request(
            "POST",
            "/entities/lookup",
            model=EntityListResponse,
            json={"ids": [str(entity_id) for entity_id in entity_ids]},
        )
        return [parse_entity(item) for item in response.items]

    async def create_batch(self, specs: Sequence[EntitySpec]) -> list[CreateResult]:
        response = await self._request(
            "POST",
            "/entities/batch",
            model=BatchResponse,
            json={"items": [serialize_spec(spec) for spec in specs]},
        )
        results: list[CreateResult] = []
        for item in response.results:
            if item.error is not None:
                results.append(error_from_payload(item.error))
            elif item.id is not None:
                results.append(item.id)
            else:
                results.append(TransientFailureError("Store returned neither id nor error"))
        return results

    async def update_facets(self, entity_id: UUID, patch: Mapping[str, Facet]) -> Entity:
        payload = await self._request(
            "PATCH",
            f"/entities/{entity_id}/facets",
            model=EntityPayload,
            json={"facets": serialize_facets(patch)},
        )
        return parse_entity(payload)

    async def register_interaction(self, entity_id: UUID, interaction: Interaction) -> Interaction:
        payload = await self._request(
            "POST",
            f"/entities/{entity_id}/interactions",
            model=InteractionPayload,
            json=serialize_interaction(interaction),
        )
        return parse_interaction(payload)

    async def delete_batch(self, entity_ids: Sequence[UUID]) -> dict[UUID, DeleteResult]:
        response = await self._request(
            "POST",
            "/entities/delete",
            model=BatchResponse,
            json={"ids": [str(entity_id) for entity_id in entity_ids]},
        )
        results: dict[UUID, DeleteResult] = {}
        for item in response.results:
            if item.id is None:
                log.warning("Ignoring delete result without an id: %s", item)
                continue
            results[item.id] = error_from_payload(item.error) if item.error else None
        return results

    # Index -------------------------------------------------------------------

    async def search_index(self, query: IndexQuery) -> list[IndexHit]:
        path, body = search_path_and_body(query)
        response = await self._request("POST", path, model=SearchResponse, json=body)
        return [parse_hit(hit) for hit in response.hits]

    async def expand_hit(self, entity_id: UUID, interaction_id: UUID) -> ExpandedInteraction:
        payload = await self._request(
            "GET",
            f"/entities/{entity_id}/interactions/{interaction_id}",
            model=ExpandedInteractionResponse,
        )
        return parse_expanded(payload)

    # Reference data ----------------------------------------------------------

    async def find_reference_definition(
        self, type_name: str, key: str
    ) -> ReferenceDefinition | None:
        try:
            payload = await self._request(
                "GET",
                f"/reference/{_segment(type_name)}/{_segment(key)}",
                model=DefinitionPayload,
            )
        except NotFoundError:
            return None
        return parse_definition(payload)

    async def get_or_create_reference_definition(
        self, type_name: str, key: str, display_name: str
    ) -> ReferenceDefinition:
        payload = await self._request(
            "PUT",
            f"/reference/{_segment(type_name)}/{_segment(key)}",
            model=DefinitionPayload,
            json={"displayName": display_name},
        )
        return parse_definition(payload)

    # Plumbing ----------------------------------------------------------------

    async def _request[TModel: BaseModel](
        self,
        method: str,
        path: str,
        *,
        model: type[TModel],
        params: Mapping[str, str] | None = None,
        json: object = None,
    ) -> TModel:
        try:
            if json is None:
                response = await self._client.request(method, path, params=params)
            else:
                response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            log.warning("xDB %s %s failed: %s", method, path, exc)
            raise TransientFailureError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise _error_for_response(method, path, response)

        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            log.error(f"Unexpected xDB payload for {method} {path}: {exc}")  # noqa: G004
            raise TransientFailureError(
                f"Unexpected payload for {method} {path}", status_code=response.status_code
            ) from exc


def _error_for_response(method: str, path: str, response: httpx.Response) -> StoreError:
    message = f"{method} {path} returned {response.status_code}"
    try:
        detail = ErrorResponse.model_validate(response.json()).error.message
    except (ValueError, ValidationError):
        detail = ""
    if detail:
        message = f"{message}: {detail}"

    error_cls = _STATUS_ERRORS.get(response.status_code)
    if error_cls is None:
        log.error(f"xDB error {response.status_code} for {method} {path}")  # noqa: G004
        return TransientFailureError(message, status_code=response.status_code)
    return error_cls(message)


if TYPE_CHECKING:
    from xdbflow.domain.ports import StoreGateway

    _gateway_check: StoreGateway = XdbHttpGateway()
