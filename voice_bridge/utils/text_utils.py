"""English utterance utilities for cache keys and entity matching.

Provides the canonical form of a voice command (used as the plan cache key
and as fast path input) and the tokenizer used by entity scoring.
"""

import re
from typing import List, Tuple


# Characters kept by the normalizer besides letters, digits and whitespace.
# "_" is part of \w and is stripped explicitly.
_STRIP_PATTERN = re.compile(r"[^\w\s%.\-]|_")

# Tokens for matching keep only letters and digits.
_TOKEN_STRIP_PATTERN = re.compile(r"[^\w\s]|_")

_WHITESPACE = re.compile(r"\s+")

# Ordered: later patterns run on the already substituted text.
SYNONYM_REPLACEMENTS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bswitch\s+(on|off)\b"), r"turn \1"),  # "switch on" -> "turn on"
    (re.compile(r"\bplease\b"), ""),
    (re.compile(r"\bthe\b"), ""),
    (re.compile(r"\ba\b"), ""),
    (re.compile(r"\ban\b"), ""),
    (re.compile(r"\bmy\b"), ""),
]

# Removing filler words can create a new match for an earlier pattern
# ("switch the on"), so substitution repeats until stable.
_MAX_PASSES = 5


def _apply_replacements(text: str) -> str:
    for pattern, replacement in SYNONYM_REPLACEMENTS:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_utterance(text) -> str:
    """Return the canonical form of an utterance.

    Lower-cases, replaces punctuation (except ``%``, ``.`` and ``-``) with
    spaces, rewrites "switch on/off" to "turn on/off", drops filler words and
    collapses whitespace. Deterministic and idempotent.

    Examples:
        normalize_utterance("Switch on the pool pump, please!") -> "turn on pool pump"
        normalize_utterance(None) -> ""
    """
    if not text:
        return ""

    normalized = _STRIP_PATTERN.sub(" ", str(text).lower())
    normalized = _WHITESPACE.sub(" ", normalized).strip()

    for _ in range(_MAX_PASSES):
        replaced = _apply_replacements(normalized)
        if replaced == normalized:
            break
        normalized = replaced

    return normalized


def tokenize(text) -> List[str]:
    """Split text into lower-case letter/digit tokens."""
    if not text:
        return []
    return _TOKEN_STRIP_PATTERN.sub(" ", str(text).lower()).split()


def word_count(text: str) -> int:
    return len(text.split()) if text else 0
