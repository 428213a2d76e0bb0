"""Stage 3: LLM tool-use loop (Google Gemini).

Stage3 is the final fallback. The model gets the user utterance plus a tool
catalog and may request tool calls; each call is executed against the hub
and its result (or error) is sent back until the model answers in text.

Flow:
1. Send system prompt + utterance + tool catalog
2. While the model requests tools: execute each, append results, ask again
3. Final text (or "Done.") becomes the spoken response
4. Concrete, replayable tool calls are stored in the plan cache
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from .base_stage import BaseStage
from .capabilities.google_gemini_client import GoogleGeminiClient
from .capabilities.plan_cache import PlanCacheCapability
from .capabilities.tool_executor import ToolExecutorCapability
from .const import (
    CONF_GOOGLE_API_KEY,
    CONF_LLM_MAX_ROUNDS,
    CONF_LLM_MAX_TOKENS,
    CONF_LLM_MODEL,
    CONF_LLM_TIMEOUT,
    CONF_TOOL_CATALOG,
    DEFAULTS,
)
from .constants.messages_en import CONFIRMATION_TEMPLATES, ERROR_MESSAGES
from .errors import LLMError, ToolLoopLimitError
from .prompts import TOOL_CATALOGS
from .stage_result import StageResult
from .utils.plan_types import Action, build_plan_from_tool_calls
from .utils.tool_use_types import Message, ModelTurn, ToolResult, ToolUseModel

_LOGGER = logging.getLogger(__name__)


class Stage3ToolUseProcessor(BaseStage):
    """Stage 3: model-driven tool use for everything the fast tiers missed."""

    name = "stage3_tool_use"
    capabilities = [ToolExecutorCapability, PlanCacheCapability]

    def __init__(self, hub, config, model: Optional[ToolUseModel] = None):
        super().__init__(hub, config)

        catalog_name = config.get(CONF_TOOL_CATALOG, DEFAULTS[CONF_TOOL_CATALOG])
        if catalog_name not in TOOL_CATALOGS:
            raise ValueError(f"Unknown tool catalog: {catalog_name}")
        catalog = TOOL_CATALOGS[catalog_name]
        self.system_prompt: str = catalog["system"]
        self.tools: List[Dict[str, Any]] = catalog["tools"]

        self.max_rounds: int = config.get(CONF_LLM_MAX_ROUNDS, DEFAULTS[CONF_LLM_MAX_ROUNDS])
        self.timeout: float = config.get(CONF_LLM_TIMEOUT, DEFAULTS[CONF_LLM_TIMEOUT])

        self._model = model
        api_key = config.get(CONF_GOOGLE_API_KEY)
        if self._model is None and api_key:
            model_name = config.get(CONF_LLM_MODEL, DEFAULTS[CONF_LLM_MODEL])
            self._model = GoogleGeminiClient(
                api_key,
                model_name,
                max_output_tokens=config.get(CONF_LLM_MAX_TOKENS, DEFAULTS[CONF_LLM_MAX_TOKENS]),
            )
            _LOGGER.info(
                "[Stage3ToolUse] Initialized with model: %s (catalog=%s)", model_name, catalog_name
            )
        elif self._model is None:
            _LOGGER.warning("[Stage3ToolUse] No API key configured")

    async def _request_turn(self, messages: List[Message]) -> ModelTurn:
        try:
            return await asyncio.wait_for(
                self._model.generate(self.system_prompt, self.tools, messages),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as err:
            raise LLMError(f"Model did not answer within {self.timeout}s", "timeout") from err

    async def _execute_calls(self, turn: ModelTurn, seen: List[Action]) -> List[ToolResult]:
        """Run every requested tool; failures become error results."""
        executor: ToolExecutorCapability = self.get("tool_executor")
        results: List[ToolResult] = []
        for call in turn.tool_calls:
            seen.append(Action(call.name, dict(call.input)))
            _LOGGER.info("[Stage3ToolUse] Calling tool: %s", call.name)
            try:
                content = await executor.execute(call.name, call.input)
                results.append(ToolResult(call=call, content=content))
            except Exception as err:
                _LOGGER.info(
                    "[Stage3ToolUse] Tool error (%s): %s",
                    getattr(err, "error_type", type(err).__name__),
                    err,
                )
                results.append(ToolResult(call=call, content=str(err), is_error=True))
        return results

    async def run_tool_loop(self, text: str) -> Tuple[str, List[Action]]:
        """Drive the conversation until the model stops requesting tools.

        Returns:
            (response text, list of every tool call seen as Actions)

        Raises:
            ToolLoopLimitError: model still requesting tools after max_rounds
        """
        messages: List[Message] = [Message.user(text)]
        seen: List[Action] = []

        turn = await self._request_turn(messages)
        rounds = 0
        while turn.needs_tool_results:
            rounds += 1
            if rounds > self.max_rounds:
                raise ToolLoopLimitError(
                    f"Model requested tools for more than {self.max_rounds} rounds"
                )
            results = await self._execute_calls(turn, seen)
            messages = messages + [Message.assistant(turn), Message.tool(results)]
            turn = await self._request_turn(messages)

        return turn.text or CONFIRMATION_TEMPLATES["done"], seen

    async def process(self, user_input, context: Optional[Dict[str, Any]] = None) -> StageResult:
        """Answer the utterance via the model and cache replayable calls."""
        context = context or {}

        if self._model is None:
            _LOGGER.error("[Stage3ToolUse] No model available")
            return StageResult.error(
                response=ERROR_MESSAGES["llm_unavailable"],
                raw_text=user_input.text,
            )

        response, seen = await self.run_tool_loop(user_input.text)

        plan = build_plan_from_tool_calls(seen)
        if plan and user_input.normalized:
            self.get("plan_cache").set(user_input.normalized, plan)
            _LOGGER.debug(
                "[Stage3ToolUse] Cached %d of %d tool calls for '%s'",
                len(plan.actions),
                len(seen),
                user_input.normalized,
            )

        return StageResult.handled(
            response=response,
            plan=plan,
            context={**context, "tool_calls": len(seen)},
            raw_text=user_input.text,
        )
