"""Base class for pipeline capabilities."""

import logging
from typing import Any, Dict

_LOGGER = logging.getLogger(__name__)


class Capability:
    """A reusable unit of work that stages compose.

    Capabilities receive the shared hub client and the effective config.
    """

    name = "base"
    description = ""

    def __init__(self, hub: Any, config: Dict[str, Any]) -> None:
        self.hub = hub
        self.config = config

    async def run(self, user_input, **kwargs: Any) -> Any:
        raise NotImplementedError(f"Capability '{self.name}' does not implement run()")
