"""Construction des prompts (génération, amélioration)."""

from episodegen.core.prompts.enhancement import (
    ENHANCE_OPERATIONS,
    ENHANCEMENT_SYSTEM_PROMPT,
    SELECTION_REWRITE_SYSTEM_PROMPT,
    EnhanceOperation,
    UnknownOperationError,
    build_enhancement_prompt,
    build_selection_rewrite_prompt,
    get_operation,
)
from episodegen.core.prompts.generation import GENERATION_SYSTEM_PROMPT, build_generation_prompt

__all__ = [
    "ENHANCE_OPERATIONS",
    "ENHANCEMENT_SYSTEM_PROMPT",
    "GENERATION_SYSTEM_PROMPT",
    "SELECTION_REWRITE_SYSTEM_PROMPT",
    "EnhanceOperation",
    "UnknownOperationError",
    "build_enhancement_prompt",
    "build_generation_prompt",
    "build_selection_rewrite_prompt",
    "get_operation",
]
