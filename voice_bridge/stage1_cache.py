"""Stage 1: Exact-match plan cache.

Stage1 replays plans resolved by earlier requests for the same normalized
utterance. This gives instant responses for repeated commands without the
fast path rules or any LLM call.

Flow:
1. Skip empty utterances
2. Look up the normalized utterance in PlanCacheCapability
3. Return StageResult.success with the cached plan, otherwise escalate

If replaying the plan fails, the agent drops the entry and escalates.
"""

import logging
from typing import Any, Dict, Optional

from .base_stage import BaseStage
from .capabilities.plan_cache import PlanCacheCapability
from .stage_result import StageResult

_LOGGER = logging.getLogger(__name__)


class Stage1CacheProcessor(BaseStage):
    """Stage 1: Plan cache lookup for fast command execution."""

    name = "stage1_cache"
    capabilities = [PlanCacheCapability]

    async def process(self, user_input, context: Optional[Dict[str, Any]] = None) -> StageResult:
        """Process user input using plan cache lookup.

        Args:
            user_input: ConversationInput with normalized text
            context: Optional context from the agent

        Returns:
            StageResult with status indicating outcome
        """
        context = context or {}

        if not user_input.normalized:
            return StageResult.escalate(context=context, raw_text=user_input.text)

        plan = self.get("plan_cache").get(user_input.normalized)
        if plan is None:
            _LOGGER.debug("[Stage1Cache] Cache MISS: '%s' → escalate", user_input.normalized)
            return StageResult.escalate(
                context={**context, "cache_miss": True},
                raw_text=user_input.text,
            )

        _LOGGER.info(
            "[Stage1Cache] Cache HIT: '%s' → %d actions",
            user_input.normalized,
            len(plan.actions),
        )
        return StageResult.success(
            plan=plan,
            context={**context, "from_cache": True},
            raw_text=user_input.text,
        )
