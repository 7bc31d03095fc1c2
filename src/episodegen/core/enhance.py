"""
Amélioration a posteriori d'un résultat généré (polish, shorten, expand, ...).

Le résultat amélioré remplace titre et synopsis du GenerationResult existant ;
aucune nouvelle entrée n'est créée.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from episodegen.core.llm.client import GenerationRequest, TextGenerator
from episodegen.core.models import GenerationResult
from episodegen.core.prompts.enhancement import (
    ENHANCEMENT_SYSTEM_PROMPT,
    SELECTION_REWRITE_MAX_TOKENS,
    SELECTION_REWRITE_SYSTEM_PROMPT,
    SELECTION_REWRITE_TEMPERATURE,
    build_selection_rewrite_prompt,
    get_operation,
)

logger = logging.getLogger(__name__)

_TITLE_LABEL = re.compile(r"^(?:标题[:：]?\s*)?(.+)$")
_SUMMARY_LABEL = re.compile(r"^(?:简介[:：]?\s*)?")


@dataclass(frozen=True)
class EnhancedText:
    title: str
    summary: str


def parse_enhanced_text(raw: str, current: GenerationResult) -> EnhancedText:
    """
    Lit la réponse « 标题：… / 简介：… ». Ne lève pas.
    Moins de deux lignes non vides : première ligne = titre, réponse entière = synopsis.
    Réponse vide : texte courant conservé.
    """
    content = (raw or "").strip()
    if not content:
        logger.warning("Empty enhancement response, keeping current text")
        return EnhancedText(current.generated_title, current.generated_summary)
    lines = [line for line in content.split("\n") if line.strip()]
    match = _TITLE_LABEL.match(lines[0].strip())
    title = match.group(1).strip() if match else current.generated_title
    if len(lines) < 2:
        return EnhancedText(title or current.generated_title, content)
    summary = _SUMMARY_LABEL.sub("", "\n".join(lines[1:]).strip(), count=1).strip()
    return EnhancedText(title or current.generated_title, summary or content)


class EnhancementEngine:
    """Applique une opération du registre à un résultat via le client de génération."""

    def __init__(self, client: TextGenerator, *, model: str):
        self.client = client
        self.model = model

    def enhance(self, result: GenerationResult, operation_id: str) -> EnhancedText:
        """
        Titre / synopsis proposés par l'opération (sans modifier le résultat).
        Lève UnknownOperationError (id inconnu) ou GenerationClientError (appel).
        """
        operation = get_operation(operation_id)
        request = GenerationRequest.from_prompts(
            self.model,
            ENHANCEMENT_SYSTEM_PROMPT,
            operation.render(result.generated_title, result.generated_summary),
            temperature=operation.temperature,
            max_tokens=operation.max_tokens,
        )
        logger.info("Enhancing episode %d with %s", result.episode_number, operation_id)
        return parse_enhanced_text(self.client.complete(request), result)

    def apply(self, result: GenerationResult, operation_id: str) -> GenerationResult:
        """Remplace titre, synopsis et nombre de caractères en place ; retourne le même objet."""
        enhanced = self.enhance(result, operation_id)
        result.generated_title = enhanced.title
        result.generated_summary = enhanced.summary
        result.word_count = len(enhanced.summary)
        return result

    def rewrite_selection(self, result: GenerationResult, start: int, end: int) -> GenerationResult:
        """Réécrit summary[start:end] et le réinsère à sa place dans le synopsis."""
        summary = result.generated_summary
        if not 0 <= start < end <= len(summary):
            raise ValueError(f"invalid selection [{start}, {end}) for summary of {len(summary)} chars")
        request = GenerationRequest.from_prompts(
            self.model,
            SELECTION_REWRITE_SYSTEM_PROMPT,
            build_selection_rewrite_prompt(summary[start:end]),
            temperature=SELECTION_REWRITE_TEMPERATURE,
            max_tokens=SELECTION_REWRITE_MAX_TOKENS,
        )
        rewritten = self.client.complete(request).strip()
        if not rewritten:
            logger.warning("Empty selection rewrite, summary unchanged")
            return result
        result.generated_summary = summary[:start] + rewritten + summary[end:]
        result.word_count = len(result.generated_summary)
        return result
