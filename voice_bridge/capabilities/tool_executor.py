"""Tool executor capability.

Dispatches a named tool call (from a cached plan, the fast path or the LLM)
to the hub client after validating its input.
"""

import logging
from typing import Any, Dict

import voluptuous as vol

from .base import Capability
from ..const import TOOL_CALL_SERVICE, TOOL_FIND_ENTITIES, TOOL_GET_ENTITY_STATE
from ..errors import UnknownToolError, ValidationError

_LOGGER = logging.getLogger(__name__)

_NON_EMPTY_STR = vol.All(str, vol.Length(min=1))

TOOL_INPUT_SCHEMAS = {
    TOOL_FIND_ENTITIES: vol.Schema(
        {
            vol.Required("domain"): _NON_EMPTY_STR,
            vol.Optional("search"): vol.Any(None, str),
        },
        extra=vol.REMOVE_EXTRA,
    ),
    TOOL_GET_ENTITY_STATE: vol.Schema(
        {vol.Required("entity_id"): _NON_EMPTY_STR},
        extra=vol.REMOVE_EXTRA,
    ),
    TOOL_CALL_SERVICE: vol.Schema(
        {
            vol.Required("domain"): _NON_EMPTY_STR,
            vol.Required("service"): _NON_EMPTY_STR,
            vol.Optional("target"): vol.Any(
                None,
                vol.Schema(
                    {
                        vol.Optional("entity_id"): vol.Any(None, str),
                        vol.Optional("area_id"): vol.Any(None, str),
                    },
                    extra=vol.REMOVE_EXTRA,
                ),
            ),
            vol.Optional("data"): vol.Any(None, dict),
        },
        extra=vol.REMOVE_EXTRA,
    ),
}


def validate_tool_input(tool_name: str, tool_input: Any) -> Dict[str, Any]:
    """Validate tool input against its schema.

    Raises:
        UnknownToolError: tool name not in the catalog
        ValidationError: input missing required fields or mistyped
    """
    schema = TOOL_INPUT_SCHEMAS.get(tool_name)
    if schema is None:
        raise UnknownToolError(f"Unknown tool: {tool_name}")
    try:
        return schema(tool_input or {})
    except vol.Invalid as err:
        raise ValidationError(f"Invalid input for {tool_name}: {err}") from err


class ToolExecutorCapability(Capability):
    """Execute catalog tools against the hub."""

    name = "tool_executor"
    description = "Run find_entities / get_entity_state / call_service on the hub."

    async def execute(self, tool_name: str, tool_input: Dict[str, Any]) -> Any:
        params = validate_tool_input(tool_name, tool_input)
        _LOGGER.debug("[ToolExecutor] %s(%s)", tool_name, params)

        if tool_name == TOOL_FIND_ENTITIES:
            return await self.hub.find_entities(params["domain"], params.get("search"))
        if tool_name == TOOL_GET_ENTITY_STATE:
            return await self.hub.get_state(params["entity_id"])
        return await self.hub.call_service(
            params["domain"],
            params["service"],
            target=params.get("target"),
            data=params.get("data"),
        )

    async def run(self, user_input, *, tool_name: str = "", tool_input=None, **_: Any) -> Any:
        return await self.execute(tool_name, tool_input or {})
