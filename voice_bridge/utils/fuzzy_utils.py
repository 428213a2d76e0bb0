"""Token-overlap scoring used to match spoken device names to entities.

Scores are small integers: +3 for every query token found in the entity's
name tokens, +1 for every query token contained in the raw entity id, +2 when
the whole phrase appears in the name, -10 for unavailable entities.
"""

from typing import Iterable, List, Sequence

from ..const import UNAVAILABLE_STATES


TOKEN_MATCH_POINTS = 3
ID_SUBSTRING_POINTS = 1
PHRASE_MATCH_POINTS = 2
UNAVAILABLE_PENALTY = -10


def score_match(
    query_tokens: Sequence[str], entity_tokens: Iterable[str], entity_id: str
) -> int:
    """Score query tokens against an entity's name tokens and id."""
    if not query_tokens:
        return 0

    entity_token_set = set(entity_tokens)
    score = 0
    for token in query_tokens:
        if token in entity_token_set:
            score += TOKEN_MATCH_POINTS
        if token in entity_id:
            score += ID_SUBSTRING_POINTS
    return score


def score_entity(entity, search: str, query_tokens: List[str], penalize: bool = True) -> int:
    """Full score for one entity: token score, phrase bonus, state penalty.

    ``penalize=False`` skips the unavailable-state penalty (entity listing
    only filters and orders, it never demotes).
    """
    score = score_match(query_tokens, entity.tokens, entity.entity_id)
    if search and search.lower() in entity.name.lower():
        score += PHRASE_MATCH_POINTS
    if penalize and entity.state in UNAVAILABLE_STATES:
        score += UNAVAILABLE_PENALTY
    return score
