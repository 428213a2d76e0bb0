"""Gemini adapter for the tool-use loop (google-genai SDK).

Maps the provider-neutral Message/ModelTurn types onto genai contents and
function declarations. The SDK is imported and the client built on first
use, off the event loop.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..errors import LLMError
from ..utils.tool_use_types import Message, ModelTurn, ToolCall

_LOGGER = logging.getLogger(__name__)

# Populated by _ensure_genai_imported()
_genai = None
_types = None

_QUOTA_MARKERS = ("429", "quota", "resource_exhausted")
_MAX_TOKENS = "MAX_TOKENS"


def _ensure_genai_imported():
    """Import google.genai once; the import does blocking file I/O."""
    global _genai, _types
    if _genai is not None:
        return
    from google import genai
    from google.genai import types

    _genai, _types = genai, types


def _finish_reason(candidate) -> Optional[str]:
    reason = getattr(candidate, "finish_reason", None)
    return getattr(reason, "value", reason)


def _classify_error(err: Exception) -> str:
    text = str(err).lower()
    if any(marker in text for marker in _QUOTA_MARKERS):
        return "api_quota_exceeded"
    return "api_error"


class GoogleGeminiClient:
    """ToolUseModel backed by Gemini function calling."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        max_output_tokens: int = 256,
        thinking_budget: int = 0,
    ):
        self._api_key = api_key
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.thinking_budget = thinking_budget
        self._client = None
        self._initialized = False

    async def _ensure_client(self):
        if self._initialized:
            return

        def _build_client():
            _ensure_genai_imported()
            return _genai.Client(api_key=self._api_key)

        self._client = await asyncio.get_running_loop().run_in_executor(None, _build_client)
        self._initialized = True

    def _build_tools(self, tools: List[Dict[str, Any]]) -> List[Any]:
        """Catalog entries (name/description/input_schema) → Gemini declarations."""
        return [
            _types.Tool(
                function_declarations=[
                    _types.FunctionDeclaration(
                        name=tool["name"],
                        description=tool.get("description", ""),
                        parameters_json_schema=tool["input_schema"],
                    )
                    for tool in tools
                ]
            )
        ]

    def _format_messages(self, messages: List[Message]) -> List[Any]:
        """Convert the running conversation to a google-genai Content list.

        Internal roles map as: user → user, assistant → model,
        tool → user with function_response parts.
        """
        contents = []
        for message in messages:
            if message.role == "user":
                contents.append(
                    _types.Content(role="user", parts=[_types.Part.from_text(text=message.text or "")])
                )
            elif message.role == "assistant":
                turn = message.turn
                if turn.raw is not None:
                    contents.append(turn.raw)
                    continue
                parts = []
                if turn.text:
                    parts.append(_types.Part.from_text(text=turn.text))
                for call in turn.tool_calls:
                    parts.append(
                        _types.Part(function_call=_types.FunctionCall(name=call.name, args=call.input))
                    )
                contents.append(_types.Content(role="model", parts=parts))
            elif message.role == "tool":
                parts = []
                for result in message.results:
                    key = "error" if result.is_error else "result"
                    parts.append(
                        _types.Part.from_function_response(
                            name=result.call.name, response={key: result.content}
                        )
                    )
                contents.append(_types.Content(role="user", parts=parts))
        return contents

    def _parse_response(self, response) -> ModelTurn:
        """Turn a generate_content response into a ModelTurn.

        Raises:
            LLMError: the output budget ran out before any text or tool call
        """
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return ModelTurn(text=None)

        candidate = candidates[0]
        content = candidate.content
        texts: List[str] = []
        calls: List[ToolCall] = []
        for index, part in enumerate((content.parts if content is not None else None) or []):
            if part.function_call:
                fc = part.function_call
                calls.append(
                    ToolCall(
                        id=fc.id or f"call_{index}",
                        name=fc.name,
                        input=dict(fc.args or {}),
                    )
                )
            elif part.text:
                texts.append(part.text)

        text: Optional[str] = "".join(texts).strip() or None
        if text is None and not calls and _finish_reason(candidate) == _MAX_TOKENS:
            raise LLMError(
                f"Model hit the {self.max_output_tokens} token limit without answering",
                "max_tokens",
            )
        return ModelTurn(text=text, tool_calls=calls, raw=content)


    async def generate(
        self,
        system_prompt: str,
        tools: List[Dict[str, Any]],
        messages: List[Message],
    ) -> ModelTurn:
        """Request the next model turn.

        Raises:
            LLMError: On API errors with categorized error_type
        """
        await self._ensure_client()

        if not self._client:
            raise LLMError("Gemini client unavailable", "llm_unavailable")

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=self._format_messages(messages),
                config=_types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    tools=self._build_tools(tools),
                    max_output_tokens=self.max_output_tokens,
                    # Thinking tokens count against max_output_tokens on 2.5 models
                    thinking_config=_types.ThinkingConfig(thinking_budget=self.thinking_budget),
                    automatic_function_calling=_types.AutomaticFunctionCallingConfig(disable=True),
                ),
            )
        except Exception as err:
            error_type = _classify_error(err)
            _LOGGER.exception("[Gemini] generate_content failed (%s)", error_type)
            raise LLMError(str(err), error_type) from err

        return self._parse_response(response)
