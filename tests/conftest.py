"""Shared fixtures: a scripted hub transport and a manual clock."""

import copy
from unittest.mock import MagicMock

import pytest

from voice_bridge import CONFIG_SCHEMA
from voice_bridge.errors import NotFoundError
from voice_bridge.hub_client import HubClient
from voice_bridge.utils.tool_use_types import ModelTurn, ToolCall


def make_state(entity_id, state, name=None, **attributes):
    if name is not None:
        attributes["friendly_name"] = name
    return {"entity_id": entity_id, "state": state, "attributes": attributes}


DEFAULT_STATES = [
    make_state("switch.pool_pump", "off", "Pool Pump"),
    make_state("switch.pool_light", "on", "Pool Light"),
    make_state("light.bedroom", "on", "Bedroom Light"),
    make_state("light.kitchen", "off", "Kitchen Light"),
    make_state(
        "sensor.pool_temperature",
        "82.1",
        "Pool Temperature",
        unit_of_measurement="°F",
    ),
    make_state("sensor.outdoor_humidity", "40", "Outdoor Humidity", unit_of_measurement="%"),
    make_state("lock.front_door", "locked", "Front Door"),
]


API_KEY = "s3cret"
AUTH_HEADERS = {"Authorization": f"Bearer {API_KEY}"}


class ManualClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHubTransport:
    """Stands in for HubClient._request; records every call."""

    def __init__(self, states):
        self.states = [copy.deepcopy(s) for s in states]
        self.point_states = {}
        self.requests = []
        self.service_calls = []
        self.fail_with = None

    def count(self, method, path):
        return sum(1 for m, p, _ in self.requests if m == method and p == path)

    async def __call__(self, method, path, payload=None):
        self.requests.append((method, path, payload))
        if self.fail_with is not None:
            raise self.fail_with

        if method == "GET" and path == "/api/states":
            return copy.deepcopy(self.states)
        if method == "GET" and path.startswith("/api/states/"):
            entity_id = path[len("/api/states/"):]
            if entity_id in self.point_states:
                return copy.deepcopy(self.point_states[entity_id])
            raise NotFoundError(f"Hub returned 404 for '{path}'")
        if method == "POST" and path.startswith("/api/services/"):
            self.service_calls.append((path, payload))
            return []
        raise AssertionError(f"Unexpected request {method} {path}")


class ScriptedModel:
    """Returns pre-baked model turns and records what it was sent."""

    def __init__(self, turns):
        self.turns = list(turns)
        self.requests = []

    async def generate(self, system_prompt, tools, messages):
        self.requests.append({"system": system_prompt, "tools": tools, "messages": messages})
        if not self.turns:
            raise AssertionError("Model called more often than scripted")
        return self.turns.pop(0)


def tool_calls_turn(*calls):
    return ModelTurn(
        tool_calls=[
            ToolCall(id=f"call_{i}", name=name, input=args) for i, (name, args) in enumerate(calls)
        ]
    )


POOL_PUMP_TURNS = [
    tool_calls_turn(("find_entities", {"domain": "switch", "search": "pool"})),
    tool_calls_turn(
        (
            "call_service",
            {"domain": "switch", "service": "turn_on", "target": {"entity_id": "switch.pool_pump"}},
        )
    ),
    ModelTurn(text="The pool pump is on."),
]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config():
    return CONFIG_SCHEMA(
        {
            "hub_url": "http://hub.local:8123",
            "hub_token": "secret-token",
            "api_key": API_KEY,
            "google_api_key": None,
        }
    )


@pytest.fixture
def transport():
    return FakeHubTransport(DEFAULT_STATES)


@pytest.fixture
def hub(config, transport, clock):
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = transport
    return client
