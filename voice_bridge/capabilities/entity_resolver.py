"""Entity resolver capability.

Resolves a spoken device phrase to a single entity id via the hub client's
token scoring. The minimum acceptable score depends on the phrase: short,
category-specific names (e.g. pool equipment) score lower by nature, so a
keyword rule table can lower the threshold.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from .base import Capability
from ..const import CONF_MATCH_SCORE_DEFAULT, CONF_MATCH_SCORE_RULES, DEFAULTS

_LOGGER = logging.getLogger(__name__)


class EntityResolverCapability(Capability):
    """Resolve free-text device names to entity ids."""

    name = "entity_resolver"
    description = "Fuzzy-match a device phrase against the entity directory."

    def __init__(self, hub, config):
        super().__init__(hub, config)
        self.default_min_score: int = config.get(
            CONF_MATCH_SCORE_DEFAULT, DEFAULTS[CONF_MATCH_SCORE_DEFAULT]
        )
        rules = config.get(CONF_MATCH_SCORE_RULES)
        if rules is None:
            rules = DEFAULTS[CONF_MATCH_SCORE_RULES]
        self.score_rules: Dict[str, int] = dict(rules)

    def min_score_for(self, text: str) -> int:
        """First keyword rule contained in the text wins, else the default."""
        text = (text or "").lower()
        for keyword, min_score in self.score_rules.items():
            if keyword in text:
                return min_score
        return self.default_min_score

    async def resolve(
        self,
        domains: Sequence[str],
        searches: Sequence[str],
        min_score: Optional[int] = None,
    ) -> Optional[str]:
        """Try each search phrase in order; return the first resolved id."""
        for search in searches:
            threshold = min_score if min_score is not None else self.min_score_for(search)
            entity_id = await self.hub.resolve_entity_id(domains, search, min_score=threshold)
            if entity_id:
                _LOGGER.debug(
                    "[EntityResolver] '%s' → %s (min_score=%d)", search, entity_id, threshold
                )
                return entity_id
        _LOGGER.debug("[EntityResolver] No match in %s for %s", list(domains), list(searches))
        return None

    async def run(
        self,
        user_input,
        *,
        domains: Sequence[str] = (),
        search: Optional[str] = None,
        **_: Any,
    ) -> Optional[str]:
        if not search:
            return None
        return await self.resolve(domains, [search])
