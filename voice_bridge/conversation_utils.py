from dataclasses import dataclass

from .utils.text_utils import normalize_utterance


@dataclass(frozen=True)
class ConversationInput:
    """One inbound utterance with its canonical form."""

    text: str
    normalized: str

    @classmethod
    def from_text(cls, text: str) -> "ConversationInput":
        return cls(text=text, normalized=normalize_utterance(text))
