"""Tâches concrètes du pipeline : LoadSubtitles, GenerateEpisodes, PreferStyle, EnhanceResults, ExportCsv."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from episodegen.core.enhance import EnhancementEngine
from episodegen.core.export_utils import export_tmdb_csv, merge_results, representative_results
from episodegen.core.generation.orchestrator import BatchProgress, GenerationOrchestrator
from episodegen.core.generation.pacing import CancellationToken
from episodegen.core.llm.client import GenerationClientError
from episodegen.core.models import ExportOptions, GenerationConfig, SubtitleFile
from episodegen.core.pipeline.context import PipelineContext
from episodegen.core.pipeline.runner import CANCELLED_MESSAGE
from episodegen.core.pipeline.steps import Step, StepResult
from episodegen.core.prompts.enhancement import UnknownOperationError, get_operation
from episodegen.core.subtitles.parsers import UnsupportedSubtitleFormat, load_subtitle_file
from episodegen.core.utils.clock import Clock, IdFactory

logger = logging.getLogger(__name__)


def _make_log(on_log: Callable[[str, str], None] | None):
    def log(level: str, msg: str):
        if on_log:
            on_log(level, msg)
        getattr(logger, level.lower(), logger.info)(msg)

    return log


class LoadSubtitlesStep(Step):
    """Lit et découpe les fichiers de sous-titres ; les ajoute à context["files"] dans l'ordre donné."""

    name = "load_subtitles"

    def __init__(
        self,
        paths: list[Path],
        *,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ):
        self.paths = [Path(p) for p in paths]
        self.clock = clock
        self.id_factory = id_factory

    def run(
        self,
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: Callable[[str, float, str], None] | None = None,
        on_log: Callable[[str, str], None] | None = None,
    ) -> StepResult:
        log = _make_log(on_log)
        files: list[SubtitleFile] = context["files"]
        is_cancelled = context.get("is_cancelled")
        loaded: list[SubtitleFile] = []
        skipped = 0
        total = len(self.paths)
        for i, path in enumerate(self.paths):
            if is_cancelled and is_cancelled():
                return StepResult(False, CANCELLED_MESSAGE)
            if on_progress:
                on_progress(self.name, i / max(total, 1), f"Loading {path.name}...")
            try:
                sub_file = load_subtitle_file(path, clock=self.clock, id_factory=self.id_factory)
            except (UnsupportedSubtitleFormat, OSError) as e:
                log("warning", f"{path}: {e}")
                skipped += 1
                continue
            loaded.append(sub_file)
        if not loaded:
            return StepResult(False, "No subtitle file loaded")
        files.extend(loaded)
        episodes = sum(len(f.episodes) for f in loaded)
        msg = f"Loaded {len(loaded)} file(s), {episodes} episode(s)"
        if skipped:
            msg += f", {skipped} skipped"
        return StepResult(True, msg, {"loaded": len(loaded), "skipped": skipped, "episodes": episodes})


class GenerateEpisodesStep(Step):
    """Génère titre + synopsis pour tous les fichiers du contexte (lot). force=True remplace les résultats existants."""

    name = "generate_episodes"

    def run(
        self,
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: Callable[[str, float, str], None] | None = None,
        on_log: Callable[[str, str], None] | None = None,
    ) -> StepResult:
        log = _make_log(on_log)
        orchestrator: GenerationOrchestrator = context["orchestrator"]
        config: GenerationConfig = context["config"]
        files: list[SubtitleFile] = context["files"]
        token = context.get("token")

        def report(progress: BatchProgress) -> None:
            if on_progress:
                on_progress(
                    self.name,
                    progress.percent / 100,
                    f"{progress.file_name}: {progress.generated_count} episode(s) "
                    f"({progress.completed_episodes}/{progress.total_episodes})",
                )

        by_file = orchestrator.generate_for_all_files(
            files,
            config,
            token=token,
            replace_existing=force,
            on_progress=report,
        )
        results = [r for file_results in by_file.values() for r in file_results]
        failures = sum(1 for r in results if r.is_failure)
        if token is not None and token.cancelled:
            log("warning", f"Generation cancelled after {len(results)} result(s)")
            return StepResult(False, CANCELLED_MESSAGE, {"results": len(results), "failures": failures})
        if failures:
            log("warning", f"{failures} generation(s) failed, re-run to retry")
        return StepResult(
            True,
            f"Generated {len(results)} result(s), {failures} failure(s)",
            {"results": len(results), "failures": failures},
        )


class ExportCsvStep(Step):
    """Fusionne les résultats du store et écrit le CSV TMDB-Import."""

    name = "export_csv"

    def __init__(self, output_path: Path, options: ExportOptions | None = None):
        self.output_path = Path(output_path)
        self.options = options or ExportOptions()

    def run(
        self,
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: Callable[[str, float, str], None] | None = None,
        on_log: Callable[[str, str], None] | None = None,
    ) -> StepResult:
        orchestrator: GenerationOrchestrator = context["orchestrator"]
        files: list[SubtitleFile] = context["files"]
        rows = merge_results(orchestrator.store.as_dict(), files, self.options)
        if not rows:
            return StepResult(False, "Nothing to export: no generation result")
        export_tmdb_csv(rows, self.output_path)
        return StepResult(
            True,
            f"Exported {len(rows)} row(s) to {self.output_path}",
            {"rows": len(rows), "path": str(self.output_path)},
        )


class PreferStyleStep(Step):
    """
    Place en tête, pour chaque épisode, le premier résultat utilisable du style donné :
    c'est lui que l'export et l'amélioration retiennent. Épisodes sans ce style inchangés.
    """

    name = "prefer_style"

    def __init__(self, style_id: str):
        self.style_id = style_id

    def run(
        self,
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: Callable[[str, float, str], None] | None = None,
        on_log: Callable[[str, str], None] | None = None,
    ) -> StepResult:
        log = _make_log(on_log)
        orchestrator: GenerationOrchestrator = context["orchestrator"]
        files: list[SubtitleFile] = context["files"]
        if self.style_id not in orchestrator.catalog:
            return StepResult(False, f"Unknown summary style: {self.style_id}")
        moved = 0
        for f in files:
            results = orchestrator.store.get(f.id)
            seen: set[int] = set()
            picks = []
            for result in results:
                if result.style_id == self.style_id and not result.is_failure and result.episode_number not in seen:
                    seen.add(result.episode_number)
                    picks.append(result)
            for result in picks:
                index = next(i for i, r in enumerate(results) if r is result)
                orchestrator.store.move_to_top(f.id, index)
                moved += 1
        if not moved:
            log("warning", f"No usable result in style {self.style_id}")
        return StepResult(True, f"Preferred {self.style_id} for {moved} episode(s)", {"moved": moved})


class EnhanceResultsStep(Step):
    """
    Applique les opérations d'amélioration (dans l'ordre) au résultat retenu de chaque épisode.
    Les résultats sont modifiés en place dans le store ; un échec d'appel laisse le texte courant.
    """

    name = "enhance_results"

    def __init__(self, operations: list[str]):
        self.operations = list(operations)

    def run(
        self,
        context: PipelineContext,
        *,
        force: bool = False,
        on_progress: Callable[[str, float, str], None] | None = None,
        on_log: Callable[[str, str], None] | None = None,
    ) -> StepResult:
        log = _make_log(on_log)
        orchestrator: GenerationOrchestrator = context["orchestrator"]
        config: GenerationConfig = context["config"]
        files: list[SubtitleFile] = context["files"]
        token = context.get("token") or CancellationToken()
        try:
            for op_id in self.operations:
                get_operation(op_id)
        except UnknownOperationError as e:
            return StepResult(False, f"Unknown enhancement operation: {e.args[0]}")

        targets = [
            result
            for f in files
            for result in representative_results(orchestrator.store.get(f.id))
            if not result.is_failure
        ]
        engine = EnhancementEngine(orchestrator.client, model=config.model)
        total = len(targets) * len(self.operations)
        done = 0
        failures = 0
        for result in targets:
            for op_id in self.operations:
                if done and not orchestrator.pacer.between_styles(token):
                    return StepResult(False, CANCELLED_MESSAGE, {"enhanced": done - failures, "failures": failures})
                if not orchestrator.pacer.before_request(token):
                    return StepResult(False, CANCELLED_MESSAGE, {"enhanced": done - failures, "failures": failures})
                if on_progress:
                    on_progress(self.name, done / max(total, 1), f"{op_id}: episode {result.episode_number}")
                try:
                    engine.apply(result, op_id)
                except GenerationClientError as e:
                    log("warning", f"Episode {result.episode_number} / {op_id} failed: {e}")
                    failures += 1
                done += 1
        if failures:
            log("warning", f"{failures} enhancement(s) failed, current text kept")
        return StepResult(
            True,
            f"Enhanced {done - failures} result(s), {failures} failure(s)",
            {"enhanced": done - failures, "failures": failures},
        )
