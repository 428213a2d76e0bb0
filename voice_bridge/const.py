"""Constants for the Voice Bridge middleware."""

# Hub (Home Assistant) connection
CONF_HUB_URL = "hub_url"
CONF_HUB_TOKEN = "hub_token"
CONF_STATES_TTL_MS = "states_ttl_ms"  # Inventory snapshot freshness window
CONF_REQUEST_TIMEOUT_MS = "request_timeout_ms"  # Bound for every hub call
CONF_WARMUP_ON_START = "warmup_on_start"

# Inbound HTTP surface
CONF_API_KEY = "api_key"
CONF_PORT = "port"

# Plan cache
CONF_PLAN_CACHE_MAX_ENTRIES = "plan_cache_max_entries"
CONF_PLAN_CACHE_TTL_MS = "plan_cache_ttl_ms"

# LLM (Google Gemini) tool-use stage
CONF_GOOGLE_API_KEY = "google_api_key"
CONF_LLM_MODEL = "llm_model"  # e.g. "gemini-2.5-flash"
CONF_TOOL_CATALOG = "tool_catalog"  # "direct" or "discovery"
CONF_LLM_MAX_ROUNDS = "llm_max_rounds"
CONF_LLM_TIMEOUT = "llm_timeout"  # Seconds per model call
CONF_LLM_MAX_TOKENS = "llm_max_tokens"

# Fast path entity matching
CONF_MATCH_SCORE_DEFAULT = "match_score_default"
CONF_MATCH_SCORE_RULES = "match_score_rules"  # {keyword: min_score}

TOOL_CATALOG_DIRECT = "direct"
TOOL_CATALOG_DISCOVERY = "discovery"

DEFAULTS = {
    CONF_STATES_TTL_MS: 5000,
    CONF_REQUEST_TIMEOUT_MS: 6000,
    CONF_WARMUP_ON_START: True,
    CONF_PORT: 3000,
    CONF_PLAN_CACHE_MAX_ENTRIES: 500,
    CONF_PLAN_CACHE_TTL_MS: 7 * 24 * 60 * 60 * 1000,
    CONF_LLM_MODEL: "gemini-2.5-flash",
    CONF_TOOL_CATALOG: TOOL_CATALOG_DISCOVERY,
    CONF_LLM_MAX_ROUNDS: 8,
    CONF_LLM_TIMEOUT: 30,
    CONF_LLM_MAX_TOKENS: 256,
    CONF_MATCH_SCORE_DEFAULT: 4,
    CONF_MATCH_SCORE_RULES: {"pool": 3},  # Pool entities often have shorter names
}

# Environment variable -> config key
ENV_VARS = {
    "HA_URL": CONF_HUB_URL,
    "HA_TOKEN": CONF_HUB_TOKEN,
    "HA_STATES_TTL_MS": CONF_STATES_TTL_MS,
    "HA_REQUEST_TIMEOUT_MS": CONF_REQUEST_TIMEOUT_MS,
    "HA_WARMUP_ON_START": CONF_WARMUP_ON_START,
    "API_KEY": CONF_API_KEY,
    "PORT": CONF_PORT,
    "INTENT_CACHE_MAX": CONF_PLAN_CACHE_MAX_ENTRIES,
    "INTENT_CACHE_TTL_MS": CONF_PLAN_CACHE_TTL_MS,
    "GOOGLE_API_KEY": CONF_GOOGLE_API_KEY,
    "LLM_MODEL": CONF_LLM_MODEL,
    "LLM_TOOL_CATALOG": CONF_TOOL_CATALOG,
    "LLM_MAX_ROUNDS": CONF_LLM_MAX_ROUNDS,
    "LLM_TIMEOUT": CONF_LLM_TIMEOUT,
}

# Tool / action names shared by the plan model and the LLM tool catalog
TOOL_FIND_ENTITIES = "find_entities"
TOOL_GET_ENTITY_STATE = "get_entity_state"
TOOL_CALL_SERVICE = "call_service"

PLAN_VERSION = 1

# Entity states that deprioritize a candidate during resolution
UNAVAILABLE_STATES = ("unknown", "unavailable")

FIND_ENTITIES_LIMIT = 50
