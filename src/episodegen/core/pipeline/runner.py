"""Exécution du pipeline de génération : étapes en séquence, annulation, progression globale."""

from __future__ import annotations

import logging

from episodegen.core.generation.pacing import CancellationToken
from episodegen.core.pipeline.context import PipelineContext
from episodegen.core.pipeline.steps import (
    CancelledCallback,
    ErrorCallback,
    LogCallback,
    ProgressCallback,
    Step,
    StepResult,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled"


def _overall_fraction(step_index: int, local: float | None, total_steps: int) -> float:
    """Fraction 0-1 du pipeline entier à partir de l'avancement local de l'étape."""
    value = max(0.0, min(1.0, float(local or 0.0)))
    if total_steps <= 0:
        return value
    return (step_index + value) / total_steps


class PipelineRunner:
    """
    Exécute une liste d'étapes avec callbacks (progress, log, error).
    cancel() peut être appelé depuis un autre thread : le jeton réveille la pause en cours
    de l'orchestrateur, et l'étape suivante n'est pas lancée.
    """

    def __init__(self):
        self._token = CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def cancel(self) -> None:
        self._token.cancel()

    def run(
        self,
        steps: list[Step],
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: ProgressCallback | None = None,
        on_log: LogCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_cancelled: CancelledCallback | None = None,
    ) -> list[StepResult]:
        """
        Exécute les étapes dans l'ordre ; s'arrête à la première étape en échec ou annulée.
        force est transmis aux étapes (GenerateEpisodesStep : remplace les résultats existants).
        """
        self._token = CancellationToken()
        token = self._token
        results: list[StepResult] = []

        def log(level: str, msg: str):
            if on_log:
                on_log(level, msg)
                return
            getattr(logger, level.lower(), logger.info)(msg)

        def stop_cancelled() -> None:
            if on_cancelled:
                on_cancelled()
            log("warning", "Pipeline cancelled")

        for i, step in enumerate(steps):
            if token.cancelled:
                stop_cancelled()
                break
            log("info", f"Running step: {step.name}")
            ctx = PipelineContext(**context)
            ctx["is_cancelled"] = lambda: token.cancelled
            ctx["token"] = token

            def emit_progress(step_name: str, percent: float, message: str, _i: int = i) -> None:
                if on_progress:
                    on_progress(step_name, _overall_fraction(_i, percent, len(steps)), message)

            emit_progress(step.name, 0.0, f"Starting: {step.name}")
            try:
                result = step.run(ctx, force=force, on_progress=emit_progress, on_log=on_log)
            except Exception as e:
                logger.exception("Step %s failed", step.name)
                if on_error:
                    on_error(step.name, e)
                results.append(StepResult(False, str(e), {"step_name": step.name}))
                break
            result.data = dict(result.data or {})
            result.data.setdefault("step_name", step.name)
            results.append(result)
            if result.success:
                emit_progress(step.name, 1.0, result.message or f"Done: {step.name}")
                continue
            if result.message == CANCELLED_MESSAGE:
                stop_cancelled()
            else:
                if on_error:
                    on_error(step.name, RuntimeError(result.message))
                log("error", result.message)
            break
        return results
