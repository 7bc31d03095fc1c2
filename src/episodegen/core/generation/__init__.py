"""Génération titre + synopsis : orchestration, lecture des réponses, pauses, résultats."""

from episodegen.core.generation.orchestrator import BatchProgress, GenerationOrchestrator
from episodegen.core.generation.pacing import CancellationToken, DelayPolicy, Pacer
from episodegen.core.generation.response import (
    HeuristicResponse,
    StructuredResponse,
    parse_generation_response,
    parse_response,
)
from episodegen.core.generation.store import ResultStore

__all__ = [
    "BatchProgress",
    "CancellationToken",
    "DelayPolicy",
    "GenerationOrchestrator",
    "HeuristicResponse",
    "Pacer",
    "ResultStore",
    "StructuredResponse",
    "parse_generation_response",
    "parse_response",
]
