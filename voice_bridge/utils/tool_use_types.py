"""Provider-neutral types for the LLM tool-use loop.

The loop speaks only in these types; a model adapter translates them to and
from its SDK. Tests script ModelTurn sequences directly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class ToolCall:
    """One tool invocation requested by the model."""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolResult:
    """Outcome of a tool call, reported back to the model."""

    call: ToolCall
    content: Any
    is_error: bool = False


@dataclass
class ModelTurn:
    """One model response: final text, or tool calls to satisfy first.

    ``raw`` keeps the SDK's own content object so the adapter can echo it
    back verbatim in the next request.
    """

    text: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    raw: Any = None

    @property
    def needs_tool_results(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class Message:
    """Conversation entry: role is "user", "assistant" or "tool"."""

    role: str
    text: Optional[str] = None
    turn: Optional[ModelTurn] = None
    results: List[ToolResult] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, turn: ModelTurn) -> "Message":
        return cls(role="assistant", turn=turn)

    @classmethod
    def tool(cls, results: List[ToolResult]) -> "Message":
        return cls(role="tool", results=list(results))


class ToolUseModel(Protocol):
    """Anything that can produce the next model turn."""

    async def generate(
        self,
        system_prompt: str,
        tools: List[Dict[str, Any]],
        messages: List[Message],
    ) -> ModelTurn:
        ...
