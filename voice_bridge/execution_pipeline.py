"""ExecutionPipeline: replay a resolved plan and phrase the confirmation.

Used for plans from the plan cache and the fast path:

1. Execute non-read actions sequentially, in plan order (unlock before open)
2. Execute all state reads concurrently
3. Render a spoken confirmation from the LAST result only

The first failing action aborts the whole execution; the caller decides
whether to drop a cached plan and fall through to the next stage.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .capabilities.tool_executor import ToolExecutorCapability
from .const import TOOL_CALL_SERVICE, TOOL_GET_ENTITY_STATE
from .constants.messages_en import CONFIRMATION_TEMPLATES
from .utils.plan_types import Action, ActionResult, Plan

_LOGGER = logging.getLogger(__name__)


def format_state_for_speech(state: Dict[str, Any]) -> str:
    """Phrase a state record; the unit is appended without a space."""
    attributes = state.get("attributes") or {}
    name = attributes.get("friendly_name") or state.get("entity_id")
    unit = attributes.get("unit_of_measurement") or ""
    return CONFIRMATION_TEMPLATES["state"].format(name=name, state=state.get("state"), unit=unit)


class ExecutionPipeline:
    """Executes plans against the hub and renders deterministic confirmations."""

    def __init__(self, hub, config):
        self.hub = hub
        self.config = config
        self._executor = ToolExecutorCapability(hub, config)

    async def _run_action(self, action: Action) -> ActionResult:
        result = await self._executor.execute(action.name, action.input)
        return ActionResult(action=action, result=result)

    async def execute(self, plan: Plan) -> List[ActionResult]:
        """Execute a plan: writes in order, then reads concurrently.

        Raises whatever the first failing action raises.
        """
        reads = [a for a in plan.actions if a.is_read]
        others = [a for a in plan.actions if not a.is_read]

        _LOGGER.debug(
            "[ExecutionPipeline] Executing %d actions (%d reads)", len(plan.actions), len(reads)
        )

        results: List[ActionResult] = []
        for action in others:
            results.append(await self._run_action(action))

        if reads:
            results.extend(await asyncio.gather(*(self._run_action(a) for a in reads)))

        return results

    def render(self, results: List[ActionResult]) -> str:
        """Phrase the confirmation from the last result. Never calls the hub."""
        done = CONFIRMATION_TEMPLATES["done"]
        if not results:
            return done

        last = results[-1]
        action = last.action

        if action.name == TOOL_CALL_SERVICE:
            service = action.input.get("service")
            entity_id = action.target_entity_id
            summary: Optional[Dict[str, Any]] = (
                self.hub.get_summary(entity_id) if entity_id else None
            )
            if summary and service in ("turn_on", "turn_off"):
                return CONFIRMATION_TEMPLATES[service].format(name=summary["name"])
            return done

        if action.name == TOOL_GET_ENTITY_STATE and isinstance(last.result, dict):
            return format_state_for_speech(last.result)

        return done
