"""Centralized domain configuration for Voice Bridge.

Single source of truth for the domains the tools expose and the rule tables
the fast path uses, so deployments can extend them without touching the
matching code.

Usage:
    from .domain_config import SENSOR_QUERY_RULES, SWITCHABLE_DOMAINS
"""

from typing import Any, Dict, List, Tuple

# Domains offered to the model in the discovery tool catalog
TOOL_DOMAINS: List[str] = [
    "light",
    "switch",
    "sensor",
    "climate",
    "cover",
    "lock",
    "fan",
    "scene",
]

# Lights may be exposed as either domain
SWITCHABLE_DOMAINS: List[str] = ["light", "switch"]

# Spoken "on"/"off" -> service
ON_OFF_SERVICES: Dict[str, str] = {
    "on": "turn_on",
    "off": "turn_off",
}

# Words that mark "<x> on/off" as a question rather than a command
QUERY_PREFIXES: Tuple[str, ...] = ("what ", "whats ", "what's ", "is ", "are ")

# Longest "<target> on/off" phrase still treated as a device name
MAX_SUFFIX_TARGET_WORDS = 6

# Sensor queries answered without the LLM.
# subject: word that must appear with one of the measurement words.
# searches: entity searches tried in order.
SENSOR_QUERY_RULES: List[Dict[str, Any]] = [
    {
        "subject": "pool",
        "measurements": ["temp", "temperature"],
        "domains": ["sensor"],
        "searches": ["pool temperature", "pool temp"],
    },
]
