"""Shared types for resolved action plans.

Plans are produced by the fast path or distilled from the tool calls of the
LLM stage, stored in the plan cache and replayed by the execution pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..const import (
    PLAN_VERSION,
    TOOL_CALL_SERVICE,
    TOOL_GET_ENTITY_STATE,
)

# Services whose effect depends on current state and so cannot be replayed
NON_REPLAYABLE_SERVICES = {"toggle"}


@dataclass
class Action:
    """A single concrete hub operation (tool name + input payload)."""

    name: str
    input: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.name == TOOL_GET_ENTITY_STATE

    @property
    def target_entity_id(self) -> Optional[str]:
        if self.name == TOOL_GET_ENTITY_STATE:
            return self.input.get("entity_id")
        target = self.input.get("target") or {}
        if isinstance(target, dict):
            return target.get("entity_id")
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "input": dict(self.input)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        return cls(name=data["name"], input=dict(data.get("input") or {}))

    @classmethod
    def read_state(cls, entity_id: str) -> "Action":
        return cls(TOOL_GET_ENTITY_STATE, {"entity_id": entity_id})

    @classmethod
    def call_service(
        cls,
        domain: str,
        service: str,
        entity_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> "Action":
        payload: Dict[str, Any] = {"domain": domain, "service": service}
        if entity_id:
            payload["target"] = {"entity_id": entity_id}
        if data:
            payload["data"] = dict(data)
        return cls(TOOL_CALL_SERVICE, payload)


@dataclass
class Plan:
    """An ordered list of actions ready to execute without interpretation."""

    actions: List[Action] = field(default_factory=list)
    version: int = PLAN_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        return cls(
            actions=[Action.from_dict(a) for a in data.get("actions", [])],
            version=data.get("version", PLAN_VERSION),
        )


@dataclass
class ActionResult:
    """Outcome of one executed action."""

    action: Action
    result: Any


def is_cacheable_action(action: Optional[Action]) -> bool:
    """Return True if the action is deterministic and safe to replay verbatim.

    - call_service: needs a single resolved target entity and must not toggle.
    - get_entity_state: needs a specific entity id.
    - find_entities: never (result size/content varies).
    """
    if action is None or not action.name or not isinstance(action.input, dict):
        return False

    if action.name == TOOL_CALL_SERVICE:
        target = action.target_entity_id
        if not isinstance(target, str) or not target:
            return False
        if action.input.get("service") in NON_REPLAYABLE_SERVICES:
            return False
        return True

    if action.name == TOOL_GET_ENTITY_STATE:
        return bool(action.input.get("entity_id"))

    return False


def build_plan_from_tool_calls(calls: Iterable[Action]) -> Optional[Plan]:
    """Keep the cacheable calls; None if there are none."""
    concrete = [Action(c.name, dict(c.input)) for c in calls if is_cacheable_action(c)]
    if not concrete:
        return None
    return Plan(actions=concrete)
