"""Tests for the hub client and its entity directory."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import web

from voice_bridge.errors import (
    HubTimeoutError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from voice_bridge.hub_client import HubClient

from .conftest import DEFAULT_STATES, FakeHubTransport, make_state


# ============================================================================
# DIRECTORY
# ============================================================================


async def test_refresh_indexes_by_id_and_domain(hub):
    await hub.refresh()

    snapshot = hub.snapshot
    assert len(snapshot.by_id) == len(DEFAULT_STATES)
    assert [e.entity_id for e in snapshot.by_domain["switch"]] == [
        "switch.pool_pump",
        "switch.pool_light",
    ]
    assert snapshot.by_id["switch.pool_pump"].name == "Pool Pump"
    assert snapshot.by_id["switch.pool_pump"].tokens == ["pool", "pump"]


async def test_missing_friendly_name_falls_back_to_id(config, clock):
    transport = FakeHubTransport([make_state("switch.garage", "off")])
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = transport

    await client.refresh()
    assert client.snapshot.by_id["switch.garage"].name == "switch.garage"


async def test_concurrent_refreshes_share_one_fetch(hub, transport):
    gate = asyncio.Event()

    async def gated(method, path, payload=None):
        await gate.wait()
        return await transport(method, path, payload)

    hub._request = gated
    waiters = [asyncio.ensure_future(hub.refresh(force=True)) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(*waiters)

    assert transport.count("GET", "/api/states") == 1
    assert len(hub.snapshot.by_id) == len(DEFAULT_STATES)


async def test_failed_refresh_keeps_previous_snapshot(hub, transport):
    await hub.refresh()
    before = hub.snapshot

    transport.fail_with = RemoteError(500, "boom")
    with pytest.raises(RemoteError):
        await hub.refresh(force=True)

    assert hub.snapshot is before

    # The failed fetch does not block later refreshes
    transport.fail_with = None
    await hub.refresh(force=True)
    assert transport.count("GET", "/api/states") == 3


async def test_non_list_listing_is_rejected(hub):
    hub._request = AsyncMock(return_value={"message": "nope"})
    with pytest.raises(RemoteError):
        await hub.refresh()


async def test_snapshot_reused_within_ttl(hub, transport, clock):
    await hub.ensure_fresh()

    clock.advance(4.9)
    await hub.ensure_fresh()
    assert transport.count("GET", "/api/states") == 1

    clock.advance(0.2)
    await hub.ensure_fresh()
    assert transport.count("GET", "/api/states") == 2


# ============================================================================
# WARMUP
# ============================================================================


async def test_warmup_retries_then_succeeds(hub, transport):
    attempts = []

    async def flaky(method, path, payload=None):
        attempts.append(path)
        if len(attempts) < 3:
            raise RemoteError(0, "connection refused")
        return await transport(method, path, payload)

    hub._request = flaky
    with patch("voice_bridge.hub_client.asyncio.sleep", new=AsyncMock()) as sleep:
        await hub.warmup()

    assert len(attempts) == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.25, 0.5]
    assert len(hub.snapshot.by_id) == len(DEFAULT_STATES)


async def test_warmup_never_raises(hub, transport):
    transport.fail_with = RemoteError(0, "connection refused")
    with patch("voice_bridge.hub_client.asyncio.sleep", new=AsyncMock()):
        await hub.warmup()

    assert transport.count("GET", "/api/states") == 3
    assert hub.snapshot.refreshed_at is None


async def test_warmup_disabled(config, transport, clock):
    client = HubClient({**config, "warmup_on_start": False}, session=MagicMock(), clock=clock)
    client._request = transport

    await client.warmup()
    assert transport.requests == []


# ============================================================================
# OPERATIONS
# ============================================================================


async def test_get_state_from_directory(hub, transport):
    state = await hub.get_state("sensor.pool_temperature")

    assert state == {
        "entity_id": "sensor.pool_temperature",
        "state": "82.1",
        "attributes": {"friendly_name": "Pool Temperature", "unit_of_measurement": "°F"},
    }
    assert transport.count("GET", "/api/states/sensor.pool_temperature") == 0


async def test_get_state_falls_back_to_point_lookup(hub, transport):
    transport.point_states["sensor.hidden"] = make_state("sensor.hidden", "12")

    state = await hub.get_state("sensor.hidden")

    assert state["state"] == "12"
    # Stale check, forced refresh, then point lookup
    assert transport.count("GET", "/api/states") == 2
    assert transport.count("GET", "/api/states/sensor.hidden") == 1


async def test_get_state_unknown_entity(hub):
    with pytest.raises(NotFoundError, match="sensor.nope"):
        await hub.get_state("sensor.nope")


async def test_get_state_requires_id(hub):
    with pytest.raises(ValidationError):
        await hub.get_state("")


async def test_call_service_posts_merged_payload(hub, transport):
    result = await hub.call_service(
        "light", "turn_on", target={"entity_id": "light.bedroom"}, data={"brightness": 50}
    )

    assert result == {"success": True, "message": "Called light.turn_on"}
    assert transport.service_calls == [
        ("/api/services/light/turn_on", {"brightness": 50, "entity_id": "light.bedroom"})
    ]


async def test_call_service_area_target_skips_entity_guard(hub, transport):
    await hub.call_service("light", "turn_off", target={"area_id": "kitchen"})

    assert transport.service_calls == [("/api/services/light/turn_off", {"area_id": "kitchen"})]


async def test_call_service_unknown_entity_never_posts(hub, transport):
    with pytest.raises(NotFoundError, match="switch.garage"):
        await hub.call_service("switch", "turn_on", target={"entity_id": "switch.garage"})

    assert transport.service_calls == []
    # One refresh for the stale directory, one forced after the miss
    assert transport.count("GET", "/api/states") == 2


async def test_call_service_propagates_remote_error(hub, transport):
    await hub.refresh()
    transport.fail_with = RemoteError(500, "Internal Server Error")

    with pytest.raises(RemoteError) as err:
        await hub.call_service("switch", "turn_on", target={"entity_id": "switch.pool_pump"})

    assert err.value.status == 500
    assert "500" in str(err.value)


@pytest.mark.parametrize("domain,service", [("", "turn_on"), ("light", "")])
async def test_call_service_validates_input(hub, domain, service):
    with pytest.raises(ValidationError):
        await hub.call_service(domain, service)


async def test_find_entities_lists_domain(hub):
    entities = await hub.find_entities("switch")

    assert entities == [
        {"entity_id": "switch.pool_pump", "name": "Pool Pump", "state": "off"},
        {"entity_id": "switch.pool_light", "name": "Pool Light", "state": "on"},
    ]


async def test_find_entities_ranks_by_search(hub):
    entities = await hub.find_entities("switch", "pool pump")
    assert [e["entity_id"] for e in entities] == ["switch.pool_pump", "switch.pool_light"]

    entities = await hub.find_entities("sensor", "pool")
    assert [e["entity_id"] for e in entities] == ["sensor.pool_temperature"]

    assert await hub.find_entities("climate") == []


async def test_find_entities_does_not_demote_unavailable(config, clock):
    transport = FakeHubTransport([make_state("switch.heater", "unavailable", "Heater")])
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = transport

    entities = await client.find_entities("switch", "heater")
    assert [e["entity_id"] for e in entities] == ["switch.heater"]


async def test_find_entities_limit(config, clock):
    states = [make_state(f"light.lamp_{i}", "off", f"Lamp {i}") for i in range(60)]
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = FakeHubTransport(states)

    assert len(await client.find_entities("light")) == 50
    assert len(await client.find_entities("light", "lamp")) == 50


async def test_get_summary_uses_cache_only(hub, transport):
    assert hub.get_summary("light.bedroom") is None

    await hub.refresh()
    requests_before = len(transport.requests)

    assert hub.get_summary("light.bedroom") == {
        "entity_id": "light.bedroom",
        "name": "Bedroom Light",
        "domain": "light",
        "attributes": {"friendly_name": "Bedroom Light"},
    }
    assert hub.get_summary("light.nope") is None
    assert len(transport.requests) == requests_before


async def test_resolve_entity_id_scores(hub):
    assert await hub.resolve_entity_id(["switch"], "pool pump") == "switch.pool_pump"
    assert await hub.resolve_entity_id(["light", "switch"], "bedroom light") == "light.bedroom"
    assert await hub.resolve_entity_id(["switch"], "garage") is None
    assert await hub.resolve_entity_id([], "pool pump") is None
    assert await hub.resolve_entity_id(["switch"], "") is None


async def test_resolve_entity_id_min_score_and_ties(hub):
    # "pool" scores 3 + 1 + 2 = 6 for both pool switches
    assert await hub.resolve_entity_id(["switch"], "pool", min_score=7) is None
    assert await hub.resolve_entity_id(["switch"], "pool", min_score=6) == "switch.pool_pump"


async def test_resolve_entity_id_penalizes_unavailable(config, clock):
    states = [
        make_state("switch.pool_pump_old", "unavailable", "Pool Pump"),
        make_state("switch.pool_pump", "off", "Pool Pump"),
    ]
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = FakeHubTransport(states)

    assert await client.resolve_entity_id(["switch"], "pool pump") == "switch.pool_pump"


def test_requires_url_and_token():
    with pytest.raises(ValidationError):
        HubClient({"hub_token": "t"})
    with pytest.raises(ValidationError):
        HubClient({"hub_url": "http://hub.local:8123"})


# ============================================================================
# TRANSPORT (real aiohttp against a local server)
# ============================================================================


@pytest.fixture
async def hub_server(aiohttp_server):
    seen = {}

    async def states(request):
        seen["authorization"] = request.headers.get("Authorization")
        return web.json_response(DEFAULT_STATES)

    async def service(request):
        if request.match_info["domain"] == "broken":
            return web.Response(status=500, text="Internal Server Error")
        seen["payload"] = await request.json()
        return web.json_response([])

    async def plain(request):
        return web.Response(text="<html>login</html>", content_type="text/html")

    async def slow(request):
        await asyncio.sleep(1)
        return web.json_response({})

    app = web.Application()
    app.router.add_get("/api/states", states)
    app.router.add_get("/api/states/sensor.slow", slow)
    app.router.add_get("/api/states/sensor.html", plain)
    app.router.add_post("/api/services/{domain}/{service}", service)
    server = await aiohttp_server(app)
    server.seen = seen
    return server


@pytest.fixture
async def live_hub(hub_server):
    client = HubClient(
        {
            "hub_url": f"http://{hub_server.host}:{hub_server.port}/",
            "hub_token": "secret-token",
            "request_timeout_ms": 100,
        }
    )
    yield client
    await client.close()


async def test_transport_sends_bearer_token(live_hub, hub_server):
    await live_hub.refresh()

    assert hub_server.seen["authorization"] == "Bearer secret-token"
    assert "switch.pool_pump" in live_hub.snapshot.by_id


async def test_transport_posts_service_payload(live_hub, hub_server):
    await live_hub.call_service("switch", "turn_on", target={"entity_id": "switch.pool_pump"})
    assert hub_server.seen["payload"] == {"entity_id": "switch.pool_pump"}


async def test_transport_maps_status_codes(live_hub):
    with pytest.raises(RemoteError) as err:
        await live_hub.call_service("broken", "run")
    assert err.value.status == 500
    assert err.value.body == "Internal Server Error"

    with pytest.raises(NotFoundError):
        await live_hub.get_state("sensor.nope")


async def test_transport_timeout(live_hub):
    await live_hub.refresh()
    with pytest.raises(HubTimeoutError) as err:
        await live_hub._request("GET", "/api/states/sensor.slow")
    assert err.value.timeout == pytest.approx(0.1)


async def test_transport_rejects_non_json_body(live_hub):
    with pytest.raises(RemoteError) as err:
        await live_hub._request("GET", "/api/states/sensor.html")
    assert err.value.status == 200
    assert err.value.body == "<html>login</html>"
