"""Stage 2: Deterministic fast path.

Stage2 recognizes the most common command shapes (sensor query, turn on/off)
with fixed rules and resolves the device with the entity resolver, skipping
the LLM entirely. Anything it cannot resolve is escalated to Stage3.
"""

import logging
from typing import Any, Dict, Optional

from .base_stage import BaseStage
from .capabilities.fast_path import FastPathCapability
from .stage_result import StageResult

_LOGGER = logging.getLogger(__name__)


class Stage2FastPathProcessor(BaseStage):
    """Stage 2: rule-based plans for common commands."""

    name = "stage2_fast_path"
    capabilities = [FastPathCapability]

    async def process(self, user_input, context: Optional[Dict[str, Any]] = None) -> StageResult:
        context = context or {}

        plan = await self.use("fast_path", user_input)
        if plan is None:
            _LOGGER.debug("[Stage2FastPath] No rule matched '%s' → escalate", user_input.normalized)
            return StageResult.escalate(context=context, raw_text=user_input.text)

        return StageResult.success(
            plan=plan,
            context={**context, "from_fast_path": True},
            raw_text=user_input.text,
        )
