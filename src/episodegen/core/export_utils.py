"""Export TMDB-Import : fusion des résultats de tous les fichiers en lignes renumérotées, CSV."""

from __future__ import annotations

import csv
import io
import logging
import math
from pathlib import Path

from episodegen.core.models import ExportOptions, ExportRow, GenerationResult, SubtitleFile

logger = logging.getLogger(__name__)

TMDB_CSV_COLUMNS = ["episode_number", "name", "runtime", "overview", "backdrop"]


def timestamp_to_minutes(timestamp: str | None) -> int:
    """
    « HH:MM:SS,mmm » ou « HH:MM:SS.mmm » -> minutes arrondies (demi vers le haut).
    Millisecondes ignorées ; entrée invalide -> 0.
    """
    if not timestamp:
        return 0
    head = timestamp.strip().replace(",", ".").split(".")[0]
    parts = head.split(":")
    if len(parts) != 3:
        return 0
    try:
        hours, minutes, seconds = (int(p) for p in parts)
    except ValueError:
        return 0
    total = hours * 60 + minutes + seconds / 60
    return int(math.floor(total + 0.5))


def representative_results(results: list[GenerationResult]) -> list[GenerationResult]:
    """
    Un résultat par numéro d'épisode, trié par numéro : le premier inséré parmi les résultats
    utilisables (confidence > 0) ; le premier échec seulement si tous ont échoué.
    """
    usable: dict[int, GenerationResult] = {}
    failed: dict[int, GenerationResult] = {}
    for result in results:
        target = failed if result.is_failure else usable
        target.setdefault(result.episode_number, result)
    chosen = {**failed, **usable}
    return [chosen[n] for n in sorted(chosen)]


def merge_results(
    results_by_file: dict[str, list[GenerationResult]],
    files: list[SubtitleFile],
    options: ExportOptions | None = None,
) -> list[ExportRow]:
    """
    Aplatit les résultats dans l'ordre d'import des fichiers, puis des épisodes.
    Numérotation globale 1, 2, 3... jamais remise à zéro entre fichiers.
    La durée vient du last_timestamp de l'épisode d'origine (pas du résultat).
    Un échec n'est retenu que si l'épisode n'a aucun résultat utilisable ; il passe alors
    tel quel (texte d'erreur en overview).
    """
    options = options or ExportOptions()
    rows: list[ExportRow] = []
    for file in files:
        results = results_by_file.get(file.id) or []
        for result in representative_results(results):
            if result.is_failure:
                logger.warning(
                    "%s episode %d: exporting failed result as-is",
                    file.name,
                    result.episode_number,
                )
            episode = file.episode(result.episode_number)
            runtime = timestamp_to_minutes(episode.last_timestamp) if episode else 0
            rows.append(
                ExportRow(
                    episode_number=len(rows) + 1,
                    name=result.generated_title if options.include_title else "",
                    runtime=runtime if options.include_runtime else 0,
                    overview=result.generated_summary if options.include_overview else "",
                )
            )
    return rows


def rows_to_csv(rows: list[ExportRow]) -> str:
    """CSV TMDB-Import : chaînes entre guillemets (guillemets internes doublés), nombres nus, séparateur \\n."""
    buf = io.StringIO()
    # En-tête sans guillemets
    buf.write(",".join(TMDB_CSV_COLUMNS) + "\n")
    w = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for row in rows:
        w.writerow([row.episode_number, row.name, row.runtime, row.overview, row.backdrop])
    return buf.getvalue().rstrip("\n")


def export_tmdb_csv(rows: list[ExportRow], path: Path) -> None:
    """Écrit le CSV TMDB-Import en UTF-8."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(rows_to_csv(rows))
    logger.info("Exported %d row(s) to %s", len(rows), path)
