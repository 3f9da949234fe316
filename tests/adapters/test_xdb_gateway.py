from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from datetime import UTC, datetime
from uuid import UUID, uuid4

import httpx
import pytest

from xdbflow.adapters.http_resilience import ResilienceConfig, ResilientClient
from xdbflow.adapters.xdb import IndexHitPayload, XdbHttpGateway, parse_hit
from xdbflow.config import RetryPolicy, StoreConfig
from xdbflow.domain.errors import (
    ConflictError,
    NotFoundError,
    TransientFailureError,
    ValidationFailedError,
)
from xdbflow.domain.model import (
    EntitySpec,
    ExternalKey,
    InactiveEntitySearch,
    Interaction,
    InteractionSearch,
)

BASE_URL = "https://xdb.test/api"
CHANNEL_ID = "11111111-1111-4111-8111-111111111111"
EVENT_ID = "22222222-2222-4222-8222-222222222222"

Handler = Callable[[httpx.Request], httpx.Response]


def _make_client_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=BASE_URL, transport=httpx.MockTransport(async_handler)
        )
        return client

    return factory


def _gateway(handler: Handler) -> XdbHttpGateway:
    config = StoreConfig(
        base_url=BASE_URL,
        api_key="secret",
        resilience=ResilienceConfig(name="xdb-test", base_url=BASE_URL),
    )
    return XdbHttpGateway(config, client_factory=_make_client_factory(handler))


def _entity_payload(entity_id: UUID, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": str(entity_id),
        "identifiers": [{"source": "twitter", "identifier": "myrtle"}],
        "facets": {"personal": {"first_name": "Myrtle"}},
    }
    payload.update(extra)
    return payload


def _interaction_payload(timestamp: str, interaction_id: UUID | None = None) -> dict[str, object]:
    return {
        "id": str(interaction_id or uuid4()),
        "startDateTime": timestamp,
        "channelId": CHANNEL_ID,
        "eventId": EVENT_ID,
        "userAgent": "xdbflow",
        "facets": {},
    }


def _body(request: httpx.Request) -> dict[str, object]:
    return json.loads(request.content)


def test_get_by_id_parses_entity_and_maps_missing_to_none() -> None:
    known = uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == f"/api/entities/{known}":
            return httpx.Response(200, json=_entity_payload(known))
        return httpx.Response(404, json={"error": {"code": "not_found", "message": "nope"}})

    gateway = _gateway(handler)

    entity = asyncio.run(gateway.get_by_id(known))
    missing = asyncio.run(gateway.get_by_id(uuid4()))

    assert entity is not None
    assert entity.id == known
    assert entity.keys == (ExternalKey("twitter", "myrtle"),)
    assert entity.facets == {"personal": {"first_name": "Myrtle"}}
    assert missing is None


def test_get_by_external_key_requests_expansion_and_sorts_interactions() -> None:
    entity_id = uuid4()
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        interactions = [
            _interaction_payload("2017-01-03T00:00:00Z"),
            _interaction_payload("2017-01-02T00:00:00"),
        ]
        return httpx.Response(
            200, json={"items": [_entity_payload(entity_id, interactions=interactions)]}
        )

    entity = asyncio.run(
        _gateway(handler).get_by_external_key(
            ExternalKey("twitter", "myrtle"), with_interactions=True
        )
    )

    assert seen[0].method == "GET"
    assert seen[0].url.params["source"] == "twitter"
    assert seen[0].url.params["identifier"] == "myrtle"
    assert seen[0].url.params["expand"] == "interactions"
    assert entity is not None
    assert [item.timestamp for item in entity.interactions] == [
        datetime(2017, 1, 2, tzinfo=UTC),
        datetime(2017, 1, 3, tzinfo=UTC),
    ]


def test_get_by_external_key_returns_none_for_empty_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "expand" not in request.url.params
        return httpx.Response(200, json={"items": []})

    assert asyncio.run(_gateway(handler).get_by_external_key(ExternalKey("a", "b"))) is None


def test_create_batch_maps_each_item_result() -> None:
    created = uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/entities/batch"
        items = _body(request)["items"]
        assert items == [
            {"identifiers": [{"source": "twitter", "identifier": "new"}], "facets": {}},
            {"identifiers": [{"source": "twitter", "identifier": "taken"}], "facets": {}},
            {"identifiers": [{"source": "twitter", "identifier": "odd"}], "facets": {}},
        ]
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": str(created)},
                    {"error": {"code": "conflict", "message": "key taken"}},
                    {"error": {"code": "mystery"}},
                ]
            },
        )

    specs = [
        EntitySpec.identified_by(ExternalKey("twitter", value)) for value in ("new", "taken", "odd")
    ]
    results = asyncio.run(_gateway(handler).create_batch(specs))

    assert results[0] == created
    assert isinstance(results[1], ConflictError)
    assert isinstance(results[2], TransientFailureError)


def test_register_interaction_serializes_payload() -> None:
    entity_id = uuid4()
    stored_id = uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        body = _body(request)
        assert request.url.path == f"/api/entities/{entity_id}/interactions"
        assert body["startDateTime"] == "2017-01-02T10:00:00+00:00"
        assert body["channelId"] == CHANNEL_ID
        assert body["facets"] == {"ip_info": {"ip_address": "127.0.0.1"}}
        return httpx.Response(
            201, json=_interaction_payload("2017-01-02T10:00:00Z", interaction_id=stored_id)
        )

    interaction = Interaction(
        timestamp=datetime(2017, 1, 2, 10, tzinfo=UTC),
        channel_id=UUID(CHANNEL_ID),
        event_id=UUID(EVENT_ID),
        context={"ip_info": {"ip_address": "127.0.0.1"}},
    )
    stored = asyncio.run(_gateway(handler).register_interaction(entity_id, interaction))

    assert stored.id == stored_id
    assert stored.timestamp == interaction.timestamp


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [
        (400, ValidationFailedError),
        (404, NotFoundError),
        (409, ConflictError),
        (422, ValidationFailedError),
        (500, TransientFailureError),
        (503, TransientFailureError),
    ],
)
def test_error_statuses_map_to_store_errors(status_code: int, error_type: type[Exception]) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": {"code": "x", "message": "detail"}})

    with pytest.raises(error_type, match="detail"):
        asyncio.run(_gateway(handler).update_facets(uuid4(), {"personal": {}}))


def test_transport_errors_become_transient_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientFailureError):
        asyncio.run(_gateway(handler).get_many([uuid4()]))


def test_unexpected_payload_becomes_transient_failure() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(TransientFailureError) as excinfo:
        asyncio.run(
            _gateway(handler).search_index(InactiveEntitySearch(datetime(2017, 1, 31, tzinfo=UTC)))
        )

    assert excinfo.value.status_code == 200


def test_search_index_sends_inclusive_window_and_keeps_raw_ids() -> None:
    entity_id = uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/search/interactions"
        assert _body(request) == {
            "start": "2017-01-01T00:00:00+00:00",
            "end": "2017-01-31T00:00:00+00:00",
            "inclusive": True,
        }
        return httpx.Response(
            200,
            json={
                "hits": [
                    {"entityId": str(entity_id), "interactionId": "abc"},
                    {"entityId": "  ", "interactionId": 42},
                ]
            },
        )

    query = InteractionSearch(
        start=datetime(2017, 1, 1, tzinfo=UTC), end=datetime(2017, 1, 31, tzinfo=UTC)
    )
    hits = asyncio.run(_gateway(handler).search_index(query))

    assert hits[0].entity_id == str(entity_id)
    assert hits[0].interaction_id == "abc"
    assert hits[1].entity_id is None
    assert hits[1].interaction_id == "42"


def test_delete_batch_keys_results_by_id() -> None:
    gone, stuck = uuid4(), uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert _body(request) == {"ids": [str(gone), str(stuck)]}
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": str(gone)},
                    {"id": str(stuck), "error": {"code": "transient", "message": "locked"}},
                    {"error": {"code": "not_found"}},
                ]
            },
        )

    results = asyncio.run(_gateway(handler).delete_batch([gone, stuck]))

    assert results[gone] is None
    assert isinstance(results[stuck], TransientFailureError)
    assert len(results) == 2


def test_expand_hit_returns_entity_and_interaction() -> None:
    entity_id, interaction_id = uuid4(), uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/entities/{entity_id}/interactions/{interaction_id}"
        return httpx.Response(
            200,
            json={
                "entity": _entity_payload(entity_id),
                "interaction": _interaction_payload("2017-01-02T00:00:00Z", interaction_id),
            },
        )

    expanded = asyncio.run(_gateway(handler).expand_hit(entity_id, interaction_id))

    assert expanded.entity.id == entity_id
    assert expanded.interaction.id == interaction_id


def test_reference_definitions_use_quoted_path_segments() -> None:
    definition_id = uuid4()
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(404, json={"error": {"code": "not_found"}})
        assert _body(request) == {"displayName": "Instant Demo Goal"}
        return httpx.Response(
            200,
            json={
                "id": str(definition_id),
                "typeName": "Goals/Custom",
                "key": "demo",
                "displayName": "Instant Demo Goal",
            },
        )

    async def run() -> None:
        async with _gateway(handler) as gateway:
            assert await gateway.find_reference_definition("Goals/Custom", "demo") is None
            definition = await gateway.get_or_create_reference_definition(
                "Goals/Custom", "demo", "Instant Demo Goal"
            )
            assert definition.id == definition_id
            assert definition.culture == "en"

    asyncio.run(run())

    assert [request.method for request in requests] == ["GET", "PUT"]
    assert requests[1].url.raw_path == b"/api/reference/Goals%2FCustom/demo"


def test_index_hit_payload_normalises_naive_timestamp() -> None:
    payload = IndexHitPayload.model_validate(
        {"entityId": "x", "timestamp": "2017-01-02T03:04:05"}
    )

    hit = parse_hit(payload)

    assert hit.timestamp == datetime(2017, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert hit.interaction_id is None


def test_retry_policy_leaves_non_idempotent_methods_alone() -> None:
    policy = RetryPolicy()

    assert "POST" not in policy.allowed_methods
    assert "PATCH" not in policy.allowed_methods
    assert "PUT" in policy.allowed_methods
