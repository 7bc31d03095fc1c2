"""Pipeline : étapes (chargement, génération, amélioration, export) et runner."""

from episodegen.core.pipeline.context import PipelineContext
from episodegen.core.pipeline.runner import PipelineRunner
from episodegen.core.pipeline.steps import Step, StepResult
from episodegen.core.pipeline.tasks import (
    EnhanceResultsStep,
    ExportCsvStep,
    GenerateEpisodesStep,
    LoadSubtitlesStep,
    PreferStyleStep,
)

__all__ = [
    "EnhanceResultsStep",
    "ExportCsvStep",
    "GenerateEpisodesStep",
    "LoadSubtitlesStep",
    "PipelineContext",
    "PipelineRunner",
    "PreferStyleStep",
    "Step",
    "StepResult",
]
