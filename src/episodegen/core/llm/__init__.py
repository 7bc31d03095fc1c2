"""Client du service de génération de texte."""

from episodegen.core.llm.client import (
    ChatMessage,
    GenerationClient,
    GenerationClientError,
    GenerationRequest,
    InsufficientBalanceError,
    QuotaExceededError,
    TextGenerator,
)

__all__ = [
    "ChatMessage",
    "GenerationClient",
    "GenerationClientError",
    "GenerationRequest",
    "InsufficientBalanceError",
    "QuotaExceededError",
    "TextGenerator",
]
