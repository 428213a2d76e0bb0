"""Tests for the deterministic fast path rules."""

from unittest.mock import MagicMock

import pytest

from voice_bridge.capabilities.fast_path import FastPathCapability
from voice_bridge.conversation_utils import ConversationInput
from voice_bridge.hub_client import HubClient
from voice_bridge.utils.plan_types import Action, Plan
from voice_bridge.utils.text_utils import normalize_utterance

from .conftest import FakeHubTransport, make_state


@pytest.fixture
def fast_path(hub, config):
    return FastPathCapability(hub, config)


async def _match(fast_path, text):
    return await fast_path.match(normalize_utterance(text))


@pytest.mark.parametrize(
    "text",
    [
        "What's the pool temperature?",
        "pool temp",
        "whats the temp of the pool",
        "Temperature of my pool please",
    ],
)
async def test_sensor_query(fast_path, text):
    plan = await _match(fast_path, text)
    assert plan == Plan(actions=[Action.read_state("sensor.pool_temperature")])


@pytest.mark.parametrize(
    "text,domain,service,entity_id",
    [
        ("Turn on the pool pump", "switch", "turn_on", "switch.pool_pump"),
        ("Switch off the pool light, please", "switch", "turn_off", "switch.pool_light"),
        ("turn off kitchen light", "light", "turn_off", "light.kitchen"),
        ("Bedroom light off", "light", "turn_off", "light.bedroom"),
        ("pool pump on", "switch", "turn_on", "switch.pool_pump"),
    ],
)
async def test_on_off_commands(fast_path, text, domain, service, entity_id):
    plan = await _match(fast_path, text)
    assert plan == Plan(actions=[Action.call_service(domain, service, entity_id=entity_id)])


@pytest.mark.parametrize(
    "text",
    [
        "is the bedroom light on",
        "what's on",
        "are the kitchen lights on",
        "turn on the garage door",
        "one two three four five six seven off",
        "set bedroom light to 50%",
        "",
    ],
)
async def test_no_plan(fast_path, text):
    assert await _match(fast_path, text) is None


async def test_sensor_query_without_sensor_falls_through(config, clock):
    client = HubClient(config, session=MagicMock(), clock=clock)
    client._request = FakeHubTransport([make_state("switch.pool_pump", "off", "Pool Pump")])

    assert await FastPathCapability(client, config).match("pool temperature") is None


async def test_run_uses_normalized_text(fast_path):
    plan = await fast_path.run(ConversationInput.from_text("Switch on the pool pump!"))
    assert plan.actions[0].target_entity_id == "switch.pool_pump"
