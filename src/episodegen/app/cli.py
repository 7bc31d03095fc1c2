"""Interface en ligne de commande : generate, parse, operations."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from episodegen import __version__
from episodegen.app.settings import API_KEY_ENV, AppSettings, load_settings
from episodegen.core.export_utils import timestamp_to_minutes
from episodegen.core.generation import GenerationOrchestrator, Pacer
from episodegen.core.llm import GenerationClient
from episodegen.core.models import ConfigError, ExportOptions
from episodegen.core.pipeline import (
    EnhanceResultsStep,
    ExportCsvStep,
    GenerateEpisodesStep,
    LoadSubtitlesStep,
    PipelineContext,
    PipelineRunner,
    PreferStyleStep,
)
from episodegen.core.prompts import ENHANCE_OPERATIONS
from episodegen.core.styles import SUMMARY_STYLES
from episodegen.core.subtitles import UnsupportedSubtitleFormat, load_subtitle_file
from episodegen.core.utils.logging import level_from_verbosity, setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Parseur principal avec sous-commandes."""
    parser = argparse.ArgumentParser(
        prog="episodegen",
        description="Génère titres et synopsis d'épisodes depuis des sous-titres et exporte un CSV TMDB-Import.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    generate_parser = subparsers.add_parser(
        "generate",
        help="Générer titres et synopsis pour un ou plusieurs fichiers de sous-titres.",
    )
    generate_parser.add_argument(
        "files",
        nargs="+",
        type=Path,
        help="Fichiers de sous-titres (.srt, .vtt, .ass, .ssa, .sub), dans l'ordre d'import.",
    )
    generate_parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Fichier de réglages TOML (valeurs par défaut si absent).",
    )
    generate_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("import.csv"),
        help="CSV TMDB-Import à écrire (défaut : import.csv).",
    )
    generate_parser.add_argument("--no-title", action="store_true", help="Laisser la colonne name vide.")
    generate_parser.add_argument("--no-overview", action="store_true", help="Laisser la colonne overview vide.")
    generate_parser.add_argument(
        "--prefer-style",
        choices=[s.id for s in SUMMARY_STYLES],
        help="Style de synopsis retenu en priorité pour l'export (si généré avec succès).",
    )
    generate_parser.add_argument(
        "--enhance",
        action="append",
        default=[],
        metavar="OP",
        choices=list(ENHANCE_OPERATIONS),
        help="Opération d'amélioration à appliquer avant export (répétable, voir « operations »).",
    )
    generate_parser.add_argument("--no-runtime", action="store_true", help="Mettre runtime à 0.")
    generate_parser.add_argument("--log-file", type=Path, help="Écrire aussi les logs dans ce fichier.")
    generate_parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Plus de logs (-v : info, -vv : debug).",
    )
    generate_parser.add_argument("--quiet", action="store_true", help="Pas d'affichage de progression.")

    parse_parser = subparsers.add_parser(
        "parse",
        help="Afficher les épisodes détectés dans un fichier de sous-titres.",
    )
    parse_parser.add_argument("file", type=Path, help="Fichier de sous-titres.")

    subparsers.add_parser("operations", help="Lister les opérations d'amélioration disponibles.")
    return parser


class _ConsoleReporter:
    """Relaye progression et logs du pipeline sur stderr (sauf mode quiet)."""

    def __init__(self, quiet: bool):
        self.quiet = quiet
        self._last_percent = -1

    def log(self, level: str, message: str) -> None:
        if self.quiet and level.lower() not in ("warning", "error"):
            return
        print(f"[{level.upper()}] {message}", file=sys.stderr)

    def progress(self, step_name: str, fraction: float, message: str) -> None:
        if self.quiet:
            return
        percent = int(fraction * 100)
        # Évite de répéter le même pourcentage
        if percent == self._last_percent:
            return
        self._last_percent = percent
        print(f"[{percent:3d}%] {step_name}: {message}", file=sys.stderr)


def _export_options(settings: AppSettings, args: argparse.Namespace) -> ExportOptions:
    return ExportOptions(
        include_title=settings.export.include_title and not args.no_title,
        include_overview=settings.export.include_overview and not args.no_overview,
        include_runtime=settings.export.include_runtime and not args.no_runtime,
    )


def _run_generate(args: argparse.Namespace) -> int:
    setup_logging(level_from_verbosity(args.verbose), args.log_file)
    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    if not settings.api.api_key:
        print(f"[ERROR] API key missing: set {API_KEY_ENV} or [api].api_key", file=sys.stderr)
        return 2

    client = GenerationClient(
        settings.api.endpoint,
        settings.api.api_key,
        timeout_s=settings.api.timeout_s,
        retries=settings.api.retries,
    )
    orchestrator = GenerationOrchestrator(client, pacer=Pacer(settings.pacing))
    context = PipelineContext(config=settings.generation, orchestrator=orchestrator, files=[])
    steps = [LoadSubtitlesStep(args.files), GenerateEpisodesStep()]
    if args.prefer_style:
        steps.append(PreferStyleStep(args.prefer_style))
    if args.enhance:
        steps.append(EnhanceResultsStep(args.enhance))
    steps.append(ExportCsvStep(args.output, _export_options(settings, args)))
    reporter = _ConsoleReporter(quiet=bool(args.quiet))
    runner = PipelineRunner()
    try:
        results = runner.run(
            steps,
            context,
            on_progress=reporter.progress,
            on_log=reporter.log,
        )
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130
    if not results or not results[-1].success:
        return 1
    print(args.output)
    return 0


def _run_parse(args: argparse.Namespace) -> int:
    try:
        sub_file = load_subtitle_file(args.file)
    except (UnsupportedSubtitleFormat, OSError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    print(f"{sub_file.name}: {len(sub_file.episodes)} episode(s)")
    for ep in sub_file.episodes:
        runtime = timestamp_to_minutes(ep.last_timestamp)
        preview = ep.content[:60].replace("\n", " ")
        print(f"  #{ep.episode_number:<3} {ep.word_count:>6} chars  {runtime:>4} min  {preview}")
    return 0


def _run_operations(args: argparse.Namespace) -> int:
    for op in ENHANCE_OPERATIONS.values():
        print(f"{op.id:<15} {op.label:<6} temperature={op.temperature} max_tokens={op.max_tokens}")
    return 0


def run_cli(args: argparse.Namespace) -> int:
    if args.command == "generate":
        return _run_generate(args)
    if args.command == "parse":
        return _run_parse(args)
    if args.command == "operations":
        return _run_operations(args)
    print("Unknown command. Use 'generate', 'parse' or 'operations'.", file=sys.stderr)
    return 2


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2
    return run_cli(args)


if __name__ == "__main__":
    sys.exit(main())
