"""Result type shared by the resolution tiers.

The agent reads ``status`` to decide whether to execute a plan, speak a
prepared response, or move on to the next tier.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

from .utils.plan_types import Plan

Status = Literal["success", "handled", "escalate", "error"]


@dataclass
class StageResult:
    """Outcome of one tier.

    Attributes:
        status:
            - "success": plan resolved, the agent executes it
            - "handled": the tier already acted and wrote the response
            - "escalate": unresolved, next tier
            - "error": stop with the prepared response
        plan: Plan to execute (success) or the cacheable part of what ran (handled)
        response: Spoken text (handled/error)
        context: Flags for the agent and later tiers (from_cache, cache_miss, ...)
        raw_text: Utterance as received, for logs
    """

    status: Status
    plan: Optional[Plan] = None
    response: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    raw_text: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "context": self.context}
        if self.plan is not None:
            data["plan"] = self.plan.to_dict()
        if self.response is not None:
            data["response"] = self.response
        return data

    @classmethod
    def success(cls, plan: Plan, context: Optional[Dict[str, Any]] = None, raw_text: Optional[str] = None):
        return cls("success", plan=plan, context=dict(context or {}), raw_text=raw_text)

    @classmethod
    def handled(
        cls,
        response: str,
        plan: Optional[Plan] = None,
        context: Optional[Dict[str, Any]] = None,
        raw_text: Optional[str] = None,
    ):
        """The tier executed everything itself; ``plan`` is only for caching."""
        return cls("handled", plan=plan, response=response, context=dict(context or {}), raw_text=raw_text)

    @classmethod
    def escalate(cls, context: Optional[Dict[str, Any]] = None, raw_text: Optional[str] = None):
        return cls("escalate", context=dict(context or {}), raw_text=raw_text)

    @classmethod
    def error(cls, response: str, raw_text: Optional[str] = None):
        return cls("error", response=response, raw_text=raw_text)
