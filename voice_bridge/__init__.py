"""Voice Bridge: voice-command middleware for Home Assistant."""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Mapping, Optional

import voluptuous as vol

from .const import (
    CONF_API_KEY,
    CONF_GOOGLE_API_KEY,
    CONF_HUB_TOKEN,
    CONF_HUB_URL,
    CONF_LLM_MAX_ROUNDS,
    CONF_LLM_MAX_TOKENS,
    CONF_LLM_MODEL,
    CONF_LLM_TIMEOUT,
    CONF_MATCH_SCORE_DEFAULT,
    CONF_MATCH_SCORE_RULES,
    CONF_PLAN_CACHE_MAX_ENTRIES,
    CONF_PLAN_CACHE_TTL_MS,
    CONF_PORT,
    CONF_REQUEST_TIMEOUT_MS,
    CONF_STATES_TTL_MS,
    CONF_TOOL_CATALOG,
    CONF_WARMUP_ON_START,
    DEFAULTS,
    ENV_VARS,
    TOOL_CATALOG_DIRECT,
    TOOL_CATALOG_DISCOVERY,
)

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_HUB_URL): vol.All(str, vol.Length(min=1)),
        vol.Required(CONF_HUB_TOKEN): vol.All(str, vol.Length(min=1)),
        vol.Required(CONF_API_KEY): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_GOOGLE_API_KEY): vol.Any(None, str),
        vol.Optional(CONF_PORT, default=DEFAULTS[CONF_PORT]): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_STATES_TTL_MS, default=DEFAULTS[CONF_STATES_TTL_MS]): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
        vol.Optional(CONF_REQUEST_TIMEOUT_MS, default=DEFAULTS[CONF_REQUEST_TIMEOUT_MS]): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_WARMUP_ON_START, default=DEFAULTS[CONF_WARMUP_ON_START]): vol.Boolean(),
        vol.Optional(
            CONF_PLAN_CACHE_MAX_ENTRIES, default=DEFAULTS[CONF_PLAN_CACHE_MAX_ENTRIES]
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Optional(CONF_PLAN_CACHE_TTL_MS, default=DEFAULTS[CONF_PLAN_CACHE_TTL_MS]): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=0))
        ),
        vol.Optional(CONF_LLM_MODEL, default=DEFAULTS[CONF_LLM_MODEL]): str,
        vol.Optional(CONF_TOOL_CATALOG, default=DEFAULTS[CONF_TOOL_CATALOG]): vol.In(
            [TOOL_CATALOG_DIRECT, TOOL_CATALOG_DISCOVERY]
        ),
        vol.Optional(CONF_LLM_MAX_ROUNDS, default=DEFAULTS[CONF_LLM_MAX_ROUNDS]): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=50)
        ),
        vol.Optional(CONF_LLM_TIMEOUT, default=DEFAULTS[CONF_LLM_TIMEOUT]): vol.All(
            vol.Coerce(int), vol.Range(min=5, max=300)
        ),
        vol.Optional(CONF_LLM_MAX_TOKENS, default=DEFAULTS[CONF_LLM_MAX_TOKENS]): vol.All(
            vol.Coerce(int), vol.Range(min=16)
        ),
        vol.Optional(CONF_MATCH_SCORE_DEFAULT, default=DEFAULTS[CONF_MATCH_SCORE_DEFAULT]): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(
            CONF_MATCH_SCORE_RULES, default=dict(DEFAULTS[CONF_MATCH_SCORE_RULES])
        ): {str: vol.All(vol.Coerce(int), vol.Range(min=1))},
    },
    extra=vol.REMOVE_EXTRA,
)


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build a validated config from environment variables.

    Empty values count as unset, so defaults apply.
    """
    environ = os.environ if environ is None else environ
    raw = {
        key: environ[var]
        for var, key in ENV_VARS.items()
        if environ.get(var) not in (None, "")
    }
    return CONFIG_SCHEMA(raw)


def setup_agent(config: Dict[str, Any], session=None, model=None):
    """Wire the hub client and the agent from a validated config.

    Returns the VoiceBridgeAgent; call ``async_start`` to warm the directory.
    """
    from .conversation import VoiceBridgeAgent
    from .hub_client import HubClient

    hub = HubClient(config, session=session)
    agent = VoiceBridgeAgent(hub, config, model=model)
    _LOGGER.info("Voice Bridge agent created for %s", config[CONF_HUB_URL])
    return agent


async def async_start(agent) -> asyncio.Task:
    """Warm the entity directory in the background (never blocks startup)."""
    return asyncio.get_running_loop().create_task(agent.hub.warmup())
