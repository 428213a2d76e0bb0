"""Common base for the resolution tiers.

A tier owns a set of capabilities built from its ``capabilities`` class list
and turns one ConversationInput into a StageResult.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

from .capabilities.base import Capability
from .stage_result import StageResult

_LOGGER = logging.getLogger(__name__)


class BaseStage(ABC):
    """One resolution tier and the capabilities it composes.

    process() answers with:
    - success: a plan for the agent to execute
    - handled: the tier acted itself and has the spoken response
    - escalate: try the next tier
    - error: stop with a prepared response
    """

    name = "base"
    capabilities: List[Type[Capability]] = []

    def __init__(self, hub: Any, config: Dict[str, Any]) -> None:
        self.hub = hub
        self.config = config
        self.capabilities_map: Dict[str, Capability] = {}
        for capability_cls in self.capabilities:
            self.capabilities_map[capability_cls.name] = capability_cls(hub, config)

    def has(self, name: str) -> bool:
        return name in self.capabilities_map

    def get(self, name: str) -> Capability:
        try:
            return self.capabilities_map[name]
        except KeyError:
            raise KeyError(f"Stage {self.name} has no capability '{name}'") from None

    def set(self, capability: Capability) -> None:
        """Swap in a shared instance (the agent's plan cache)."""
        self.capabilities_map[capability.name] = capability

    async def use(self, name: str, user_input, **kwargs) -> Any:
        """Run a capability on the input."""
        capability = self.get(name)
        result = await capability.run(user_input, **kwargs)
        _LOGGER.debug("[%s] %s('%s') -> %s", self.name, name, user_input.normalized, result)
        return result

    @abstractmethod
    async def process(
        self, user_input, context: Optional[Dict[str, Any]] = None
    ) -> StageResult:
        """Resolve the input or escalate.

        Args:
            user_input: ConversationInput (raw and normalized text)
            context: Context merged from earlier escalations
        """
