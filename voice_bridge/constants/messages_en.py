"""Centralized English language messages for Voice Bridge.

Single source of truth for every user-facing string, so the spoken output
can be reviewed in one place.

Message categories:
- ERROR_MESSAGES: Error and failure messages
- CONFIRMATION_TEMPLATES: Action confirmation messages

Usage:
    from .messages_en import CONFIRMATION_TEMPLATES

    CONFIRMATION_TEMPLATES["turn_on"].format(name="Pool Pump")
    # Returns: "Turned on Pool Pump."
"""

from typing import Dict


ERROR_MESSAGES: Dict[str, str] = {
    "internal_error": "Sorry, I encountered an error processing your request.",
    "no_text": "No text provided",
    "unauthorized": "Unauthorized",
    "llm_unavailable": "Sorry, the language model is not configured.",
}


CONFIRMATION_TEMPLATES: Dict[str, str] = {
    "turn_on": "Turned on {name}.",
    "turn_off": "Turned off {name}.",
    "state": "{name} is {state}{unit}.",
    "done": "Done.",
}


APOLOGY = ERROR_MESSAGES["internal_error"]
