"""Tests for configuration loading and agent wiring."""

import pytest
import voluptuous as vol

from voice_bridge import CONFIG_SCHEMA, config_from_env, setup_agent
from voice_bridge.conversation import VoiceBridgeAgent

BASE_ENV = {"HA_URL": "http://hub.local:8123", "HA_TOKEN": "secret-token", "API_KEY": "s3cret"}


def test_defaults_applied():
    config = config_from_env(BASE_ENV)

    assert config["hub_url"] == "http://hub.local:8123"
    assert config["port"] == 3000
    assert config["states_ttl_ms"] == 5000
    assert config["request_timeout_ms"] == 6000
    assert config["warmup_on_start"] is True
    assert config["plan_cache_max_entries"] == 500
    assert config["plan_cache_ttl_ms"] == 7 * 24 * 60 * 60 * 1000
    assert config["tool_catalog"] == "discovery"
    assert config["llm_max_rounds"] == 8
    assert config["match_score_default"] == 4
    assert config["match_score_rules"] == {"pool": 3}


def test_env_values_are_coerced():
    config = config_from_env(
        {
            **BASE_ENV,
            "PORT": "8080",
            "HA_STATES_TTL_MS": "1000",
            "HA_WARMUP_ON_START": "false",
            "INTENT_CACHE_MAX": "10",
            "LLM_TOOL_CATALOG": "direct",
            "UNRELATED": "ignored",
        }
    )

    assert config["port"] == 8080
    assert config["states_ttl_ms"] == 1000
    assert config["warmup_on_start"] is False
    assert config["plan_cache_max_entries"] == 10
    assert config["tool_catalog"] == "direct"
    assert config["api_key"] == "s3cret"


@pytest.mark.parametrize(
    "env",
    [
        {"HA_TOKEN": "secret-token", "API_KEY": "s3cret"},
        {"HA_URL": "http://hub.local:8123", "API_KEY": "s3cret"},
        {"HA_URL": "http://hub.local:8123", "HA_TOKEN": "secret-token"},
        {**BASE_ENV, "API_KEY": ""},
        {**BASE_ENV, "PORT": "http"},
        {**BASE_ENV, "LLM_TOOL_CATALOG": "everything"},
        {**BASE_ENV, "INTENT_CACHE_MAX": "0"},
    ],
)
def test_invalid_config(env):
    with pytest.raises(vol.Invalid):
        config_from_env(env)


def test_match_score_rules_validated():
    with pytest.raises(vol.Invalid):
        CONFIG_SCHEMA({"hub_url": "http://h", "hub_token": "t", "api_key": "k", "match_score_rules": {"pool": 0}})


def test_setup_agent():
    agent = setup_agent(config_from_env(BASE_ENV))

    assert isinstance(agent, VoiceBridgeAgent)
    assert [stage.name for stage in agent.stages] == [
        "stage1_cache",
        "stage2_fast_path",
        "stage3_tool_use",
    ]
