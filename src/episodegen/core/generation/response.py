"""
Lecture de la sortie brute du modèle : chemin JSON strict, repli heuristique ligne à ligne.

parse_response retourne un type étiqueté (StructuredResponse | HeuristicResponse) portant
sa confiance par défaut ; parse_generation_response le convertit en GenerationResult.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Union

from episodegen.core.models import Episode, GenerationConfig, GenerationResult
from episodegen.core.styles import SUMMARY_STYLES, StyleCatalog
from episodegen.core.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

STRUCTURED_DEFAULT_CONFIDENCE = 0.8
HEURISTIC_CONFIDENCE = 0.6
DEFAULT_SUMMARY = "暂无简介"
# Tolérances du contrôle de longueur (avertissement seulement)
OVER_LENGTH_TOLERANCE = 10
UNDER_LENGTH_TOLERANCE = 5

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)
_LABEL_PREFIX = re.compile(r".*[:：]\s*")
_QUOTES = re.compile(r"[\"“”]")
_QUOTED_LONG = re.compile(r"\"([^\"]{20,})\"")
_SENTENCE_SPLIT = re.compile(r"[。！？.!?]")
_TITLE_TOKENS = ("标题", "title", "Title")
_SUMMARY_TOKENS = ("简介", "summary", "Summary")
# Ligne non étiquetée retenue comme synopsis au-delà de cette longueur
_BARE_SUMMARY_MIN_CHARS = 20
_SHORT_RESPONSE_MAX_CHARS = 200


def default_title(episode_number: int) -> str:
    return f"第{episode_number}集"


@dataclass(frozen=True)
class StructuredResponse:
    """Réponse JSON valide ; champs absents laissés à None."""

    title: str | None
    summary: str | None
    confidence: float | None

    def resolved_confidence(self) -> float:
        """Confiance ramenée dans ]0, 1] ; absente ou <= 0 : valeur par défaut (0 est réservé aux échecs)."""
        if self.confidence is None or self.confidence <= 0:
            return STRUCTURED_DEFAULT_CONFIDENCE
        return min(self.confidence, 1.0)


@dataclass(frozen=True)
class HeuristicResponse:
    """Réponse extraite par balayage de lignes ; confiance fixe."""

    title: str | None
    summary: str | None

    def resolved_confidence(self) -> float:
        return HEURISTIC_CONFIDENCE


ParsedResponse = Union[StructuredResponse, HeuristicResponse]


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    match = _CODE_FENCE.match(text)
    return match.group(1) if match else text


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_confidence(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _try_structured(raw: str) -> StructuredResponse | None:
    try:
        data = json.loads(_strip_code_fence(raw))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return StructuredResponse(
        title=_as_text(data.get("title")),
        summary=_as_text(data.get("summary")),
        confidence=_as_confidence(data.get("confidence")),
    )


def _strip_label(line: str) -> str:
    return _QUOTES.sub("", _LABEL_PREFIX.sub("", line, count=1)).strip()


def _fallback_summary(raw: str) -> str | None:
    text = raw.strip()
    if not text:
        return None
    quoted = _QUOTED_LONG.search(text)
    if quoted:
        return quoted.group(1)
    if len(text) < _SHORT_RESPONSE_MAX_CHARS and "\n\n" not in text:
        return text
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > 10]
    if sentences:
        return sentences[0].strip() + "。"
    return text[:100] + "..."


def _scan_lines(raw: str) -> HeuristicResponse:
    title: str | None = None
    summary: str | None = None
    for line in raw.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if any(token in stripped for token in _TITLE_TOKENS):
            title = _strip_label(stripped) or title
        elif any(token in stripped for token in _SUMMARY_TOKENS):
            summary = _strip_label(stripped) or summary
        elif len(stripped) > _BARE_SUMMARY_MIN_CHARS and "第" not in stripped and "集" not in stripped:
            summary = stripped
    if summary is None:
        summary = _fallback_summary(raw)
    return HeuristicResponse(title=title, summary=summary)


def parse_response(raw: str) -> ParsedResponse:
    """JSON d'abord ({title, summary, confidence}, blocs ``` tolérés), sinon heuristique. Ne lève pas."""
    structured = _try_structured(raw or "")
    if structured is not None:
        return structured
    logger.debug("Response is not JSON, falling back to line scan")
    return _scan_lines(raw or "")


def check_summary_length(summary: str, config: GenerationConfig) -> None:
    """Avertit (sans bloquer) si le synopsis sort de [min - 5, max + 10]."""
    length = len(summary)
    ceiling = config.max_length + OVER_LENGTH_TOLERANCE
    if length > ceiling:
        logger.warning("Summary too long (%d chars > %d), consider regenerating", length, ceiling)
    elif length < config.min_length - UNDER_LENGTH_TOLERANCE:
        logger.warning("Summary too short (%d chars < %d)", length, config.min_length)


def parse_generation_response(
    raw: str,
    episode: Episode,
    config: GenerationConfig,
    style_id: str | None,
    *,
    clock: Clock | None = None,
    file_name: str = "",
    catalog: StyleCatalog = SUMMARY_STYLES,
) -> GenerationResult:
    """Construit le GenerationResult d'une réponse brute pour (épisode, style)."""
    parsed = parse_response(raw)
    title = parsed.title or default_title(episode.episode_number)
    summary = parsed.summary or DEFAULT_SUMMARY
    if isinstance(parsed, StructuredResponse):
        check_summary_length(summary, config)
    clock = clock or SystemClock()
    return GenerationResult(
        episode_number=episode.episode_number,
        generated_title=title,
        generated_summary=summary,
        confidence=parsed.resolved_confidence(),
        model=config.model,
        generation_time=clock.now(),
        file_name=file_name,
        style_id=style_id,
        style_name=catalog.name_of(style_id),
        word_count=len(summary),
        styles=[style_id] if style_id else list(config.selected_styles),
        original_title=episode.title,
    )
