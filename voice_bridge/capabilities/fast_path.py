"""Deterministic fast path for the most common command shapes.

Rules run in order on the normalized utterance, first match wins:
1. Sensor query ("pool temperature", "temp of the pool") -> state read
2. Prefix imperative ("turn on pool pump") -> turn_on/turn_off
3. Suffix imperative ("pool pump off") -> turn_on/turn_off

A matched rule whose entity resolution fails yields nothing, so the caller
falls through to the LLM stage.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .base import Capability
from .entity_resolver import EntityResolverCapability
from ..constants.domain_config import (
    MAX_SUFFIX_TARGET_WORDS,
    ON_OFF_SERVICES,
    QUERY_PREFIXES,
    SENSOR_QUERY_RULES,
    SWITCHABLE_DOMAINS,
)
from ..utils.plan_types import Action, Plan
from ..utils.text_utils import word_count

_LOGGER = logging.getLogger(__name__)

PREFIX_IMPERATIVE = re.compile(r"\bturn\s+(on|off)\s+(.+)$")
SUFFIX_IMPERATIVE = re.compile(r"^(.+)\s+\b(on|off)\b$")


def _sensor_query_patterns(rule: Dict[str, Any]) -> Tuple[re.Pattern, re.Pattern]:
    subject = re.escape(rule["subject"])
    measurement = "|".join(re.escape(m) for m in rule["measurements"])
    return (
        re.compile(rf"\b{subject}\b.*\b({measurement})\b"),
        re.compile(rf"\b({measurement})\b.*\b{subject}\b"),
    )


class FastPathCapability(Capability):
    """Resolve a normalized utterance to a plan without the LLM."""

    name = "fast_path"
    description = "Rule-based plans for sensor queries and on/off commands."

    def __init__(self, hub, config):
        super().__init__(hub, config)
        self.resolver = EntityResolverCapability(hub, config)
        self._sensor_rules: List[Tuple[Dict[str, Any], Tuple[re.Pattern, re.Pattern]]] = [
            (rule, _sensor_query_patterns(rule)) for rule in SENSOR_QUERY_RULES
        ]

    async def _match_sensor_query(self, text: str) -> Optional[Plan]:
        for rule, patterns in self._sensor_rules:
            if not any(p.search(text) for p in patterns):
                continue
            entity_id = await self.resolver.resolve(
                rule["domains"],
                rule["searches"],
                min_score=self.resolver.min_score_for(rule["subject"]),
            )
            if entity_id:
                return Plan(actions=[Action.read_state(entity_id)])
        return None

    async def _on_off_plan(self, target_text: str, desired: str) -> Optional[Plan]:
        entity_id = await self.resolver.resolve(SWITCHABLE_DOMAINS, [target_text])
        if not entity_id:
            return None
        domain = entity_id.split(".", 1)[0]
        return Plan(
            actions=[Action.call_service(domain, ON_OFF_SERVICES[desired], entity_id=entity_id)]
        )

    async def _match_prefix_imperative(self, text: str) -> Optional[Plan]:
        match = PREFIX_IMPERATIVE.search(text)
        if not match:
            return None
        return await self._on_off_plan(match.group(2).strip(), match.group(1))

    async def _match_suffix_imperative(self, text: str) -> Optional[Plan]:
        match = SUFFIX_IMPERATIVE.search(text)
        if not match:
            return None

        target_text = match.group(1).strip()
        if target_text.startswith(QUERY_PREFIXES):
            return None
        if word_count(target_text) > MAX_SUFFIX_TARGET_WORDS:
            return None
        return await self._on_off_plan(target_text, match.group(2))

    async def match(self, normalized: str) -> Optional[Plan]:
        if not normalized:
            return None

        for rule in (
            self._match_sensor_query,
            self._match_prefix_imperative,
            self._match_suffix_imperative,
        ):
            plan = await rule(normalized)
            if plan:
                _LOGGER.debug(
                    "[FastPath] %s matched '%s' → %s",
                    rule.__name__.replace("_match_", ""),
                    normalized,
                    plan.to_dict(),
                )
                return plan
        return None

    async def run(self, user_input, **_: Any) -> Optional[Plan]:
        return await self.match(user_input.normalized)
