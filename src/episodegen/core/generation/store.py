"""Résultats de génération en mémoire, indexés par id de fichier (dernière écriture gagne)."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from episodegen.core.models import GenerationResult

logger = logging.getLogger(__name__)


class ResultStore:
    """
    Map id de fichier -> liste ordonnée de résultats (ordre d'insertion).
    move_to_top est la seule réorganisation ; l'ordre compte pour l'export (premier résultat utilisable retenu).
    """

    def __init__(self) -> None:
        self._results: dict[str, list[GenerationResult]] = {}

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._results

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def get(self, file_id: str) -> list[GenerationResult]:
        """Liste vivante des résultats du fichier (vide si inconnu)."""
        return self._results.setdefault(file_id, [])

    def append(self, file_id: str, results: Iterable[GenerationResult]) -> None:
        self.get(file_id).extend(results)

    def replace_all(self, file_id: str, results: Iterable[GenerationResult]) -> None:
        self._results[file_id] = list(results)

    def clear(self, file_id: str | None = None) -> None:
        """Vide un fichier, ou tout le store si file_id est None."""
        if file_id is None:
            self._results.clear()
        else:
            self._results[file_id] = []

    def remove_file(self, file_id: str) -> None:
        self._results.pop(file_id, None)

    def update_result(
        self,
        file_id: str,
        index: int,
        *,
        title: str | None = None,
        summary: str | None = None,
    ) -> GenerationResult:
        """Édition manuelle du titre / synopsis d'un résultat (en place)."""
        result = self.get(file_id)[index]
        if title is not None:
            result.generated_title = title
        if summary is not None:
            result.generated_summary = summary
            result.word_count = len(summary)
        return result

    def move_to_top(self, file_id: str, index: int) -> None:
        results = self.get(file_id)
        if not 0 <= index < len(results):
            raise IndexError(f"{file_id}: no result at index {index}")
        if index == 0:
            return
        results.insert(0, results.pop(index))
        logger.debug("Moved result %d of %s to top", index, file_id)

    def as_dict(self) -> dict[str, list[GenerationResult]]:
        return {file_id: list(results) for file_id, results in self._results.items()}
