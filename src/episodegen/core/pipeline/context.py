"""Contrat typé du contexte passé au pipeline (runner et steps)."""

from __future__ import annotations

from typing import Callable, TypedDict

from episodegen.core.generation.orchestrator import GenerationOrchestrator
from episodegen.core.generation.pacing import CancellationToken
from episodegen.core.models import GenerationConfig, SubtitleFile


class _PipelineContextOptional(TypedDict, total=False):
    """Clés optionnelles du contexte pipeline."""

    is_cancelled: Callable[[], bool] | None
    """If present, steps may check this in loops to abort early (e.g. on user cancel)."""
    token: CancellationToken | None
    """Jeton transmis à l'orchestrateur (pauses interruptibles). Fourni par le runner."""


class PipelineContext(_PipelineContextOptional):
    """
    Contexte passé à chaque étape du pipeline et au runner.

    Clés requises :
        config : instantané de configuration de génération (GenerationConfig).
        orchestrator : orchestrateur de génération (porte le client et le ResultStore).
        files : fichiers de sous-titres dans l'ordre d'import ; LoadSubtitlesStep y ajoute les siens.

    Clés optionnelles :
        is_cancelled : callable sans argument retournant True si l'utilisateur a annulé.
        token : CancellationToken partagé avec l'orchestrateur.
    """

    config: GenerationConfig
    orchestrator: GenerationOrchestrator
    files: list[SubtitleFile]
