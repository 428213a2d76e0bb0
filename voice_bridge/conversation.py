"""Voice Bridge conversation agent.

This orchestrator runs through stages sequentially:
- Stage1: Plan cache (exact match on the normalized utterance)
- Stage2: Fast path (deterministic rules + entity resolution)
- Stage3: Gemini tool-use loop (fallback for everything else)

Each stage returns a StageResult. On "success", we execute the plan via the
ExecutionPipeline and render the confirmation. On "escalate", or when a
cached/fast plan fails to execute, we pass to the next stage. Only a failure
of the last stage produces the apologetic response.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from .capabilities.plan_cache import PlanCacheCapability
from .constants.messages_en import APOLOGY
from .conversation_utils import ConversationInput
from .errors import ValidationError, VoiceBridgeError
from .execution_pipeline import ExecutionPipeline
from .stage1_cache import Stage1CacheProcessor
from .stage2_fast_path import Stage2FastPathProcessor
from .stage3_tool_use import Stage3ToolUseProcessor
from .stage_result import StageResult
from .utils.tool_use_types import ToolUseModel

_LOGGER = logging.getLogger(__name__)

# Labels for the per-request latency log
STAGE_TIERS = {
    Stage1CacheProcessor.name: "cache",
    Stage2FastPathProcessor.name: "fast",
    Stage3ToolUseProcessor.name: "llm",
}


class VoiceBridgeAgent:
    """Three-tier orchestrator turning utterances into hub actions."""

    def __init__(
        self,
        hub,
        config: Dict[str, Any],
        model: Optional[ToolUseModel] = None,
        plan_cache: Optional[PlanCacheCapability] = None,
    ):
        self.hub = hub
        self.config = config

        _LOGGER.info("[VoiceBridge] Initializing 3-stage pipeline")
        self.plan_cache = plan_cache or PlanCacheCapability(hub, config)
        self.stages: List[Any] = [
            Stage1CacheProcessor(hub, config),
            Stage2FastPathProcessor(hub, config),
            Stage3ToolUseProcessor(hub, config, model=model),
        ]

        # Every stage shares the agent's plan cache
        for stage in self.stages:
            stage.agent = self
            if stage.has("plan_cache"):
                stage.set(self.plan_cache)

        self._execution_pipeline = ExecutionPipeline(hub, config)

    async def async_process(self, text: str) -> str:
        """Resolve, execute and answer one utterance.

        Raises:
            ValidationError: empty input
        """
        if not text or not str(text).strip():
            raise ValidationError("No text provided")

        started = time.monotonic()
        user_input = ConversationInput.from_text(str(text))
        _LOGGER.info("Received command: %s", user_input.text)

        try:
            response, tier = await self._run_pipeline(user_input)
        except Exception:
            _LOGGER.exception("Error processing voice command: %s", user_input.text)
            return APOLOGY

        _LOGGER.info(
            "Response (%s): %s (%dms)", tier, response, (time.monotonic() - started) * 1000
        )
        return response

    async def _execute_plan(self, stage, user_input: ConversationInput, result: StageResult) -> Optional[str]:
        """Execute a cached or fast-path plan; None if it failed."""
        from_cache = result.context.get("from_cache", False)
        try:
            results = await self._execution_pipeline.execute(result.plan)
        except Exception as err:
            if from_cache:
                _LOGGER.warning(
                    "Cache plan failed for \"%s\": %s", user_input.normalized, err
                )
                self.plan_cache.delete(user_input.normalized)
            else:
                _LOGGER.warning(
                    "%s plan failed for \"%s\": %s", stage.name, user_input.normalized, err
                )
            return None

        if not from_cache and user_input.normalized:
            self.plan_cache.set(user_input.normalized, result.plan)
        return self._execution_pipeline.render(results)

    async def _run_pipeline(
        self, user_input: ConversationInput, context: Optional[dict] = None
    ) -> Tuple[str, str]:
        """Run the stages in order; return (response, tier label)."""
        current_context = context or {}
        last_stage = self.stages[-1]

        for stage in self.stages:
            tier = STAGE_TIERS.get(stage.name, stage.name)
            try:
                result: StageResult = await stage.process(user_input, current_context)
            except Exception:
                if stage is last_stage:
                    raise
                _LOGGER.exception("%s.process() failed", stage.__class__.__name__)
                continue

            _LOGGER.debug("[Pipeline] %s returned %s", stage.__class__.__name__, result.as_dict())

            if result.status == "success" and result.plan:
                response = await self._execute_plan(stage, user_input, result)
                if response is not None:
                    return response, tier
                continue

            if result.status in ("handled", "error") and result.response:
                return result.response, tier

            # escalate: pass enriched context to next stage
            current_context = {**current_context, **result.context}

        raise VoiceBridgeError("All stages exhausted without result")
