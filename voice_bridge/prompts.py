# prompts.py

from .const import (
    TOOL_CALL_SERVICE,
    TOOL_CATALOG_DIRECT,
    TOOL_CATALOG_DISCOVERY,
    TOOL_FIND_ENTITIES,
    TOOL_GET_ENTITY_STATE,
)
from .constants.domain_config import TOOL_DOMAINS

_GET_ENTITY_STATE_TOOL = {
    "name": TOOL_GET_ENTITY_STATE,
    "description": "Get the current state of a Home Assistant entity",
    "input_schema": {
        "type": "object",
        "properties": {
            "entity_id": {
                "type": "string",
                "description": "The entity ID (e.g., light.living_room, sensor.temperature)",
            },
        },
        "required": ["entity_id"],
    },
}

_CALL_SERVICE_TOOL = {
    "name": TOOL_CALL_SERVICE,
    "description": "Call a Home Assistant service to control devices",
    "input_schema": {
        "type": "object",
        "properties": {
            "domain": {
                "type": "string",
                "description": "Service domain (e.g., light, switch, climate)",
            },
            "service": {
                "type": "string",
                "description": "Service name (e.g., turn_on, turn_off, toggle)",
            },
            "target": {
                "type": "object",
                "description": "Target entities or areas",
                "properties": {
                    "entity_id": {"type": "string"},
                    "area_id": {"type": "string"},
                },
            },
            "data": {
                "type": "object",
                "description": "Additional service data (e.g., brightness, temperature)",
            },
        },
        "required": ["domain", "service"],
    },
}

# Higher-capability model: free-form listing, may act on ids it infers.
DIRECT_TOOLS = [
    {
        "name": TOOL_FIND_ENTITIES,
        "description": "List Home Assistant entities of a domain, optionally filtered by name.",
        "input_schema": {
            "type": "object",
            "properties": {
                "domain": {
                    "type": "string",
                    "description": "Entity domain (e.g., light, switch, sensor, climate)",
                },
                "search": {
                    "type": "string",
                    "description": "Optional name filter",
                },
            },
            "required": ["domain"],
        },
    },
    _GET_ENTITY_STATE_TOOL,
    _CALL_SERVICE_TOOL,
]

# Cheaper/faster model: constrained domains, discover ids before acting.
DISCOVERY_TOOLS = [
    {
        "name": TOOL_FIND_ENTITIES,
        "description": "Find Home Assistant entities by domain to discover exact entity IDs.",
        "input_schema": {
            "type": "object",
            "properties": {
                "domain": {
                    "type": "string",
                    "description": "The domain to search: " + ", ".join(TOOL_DOMAINS),
                    "enum": list(TOOL_DOMAINS),
                },
                "search": {
                    "type": "string",
                    "description": 'Optional search term to filter by name (e.g., "bedroom", "pool", "temperature")',
                },
            },
            "required": ["domain"],
        },
    },
    _GET_ENTITY_STATE_TOOL,
    _CALL_SERVICE_TOOL,
]

DIRECT_SYSTEM_PROMPT = """You are a smart home voice assistant. Keep responses very brief - one sentence max.

You control Home Assistant through tools. If you already know an exact entity ID you may read or control it directly; otherwise list the domain first. Lights may be under "light" or "switch" domain."""

DISCOVERY_SYSTEM_PROMPT = """You are a smart home voice assistant. Keep responses very brief - one sentence max.

IMPORTANT: Use find_entities to discover exact entity IDs when needed before controlling devices or querying sensors. Lights may be under "light" or "switch" domain - check both if needed."""

TOOL_CATALOGS = {
    TOOL_CATALOG_DIRECT: {"system": DIRECT_SYSTEM_PROMPT, "tools": DIRECT_TOOLS},
    TOOL_CATALOG_DISCOVERY: {"system": DISCOVERY_SYSTEM_PROMPT, "tools": DISCOVERY_TOOLS},
}
