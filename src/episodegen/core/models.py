"""Modèle de données : dataclasses typées pour fichiers, épisodes, configuration, résultats, export."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ConfigError(ValueError):
    """Configuration de génération invalide (bornes, styles, température...)."""


class InvalidStatusTransition(ValueError):
    """Transition d'état de génération non autorisée."""


class GenerationStatus(str, Enum):
    """État de génération d'un fichier de sous-titres."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[GenerationStatus, frozenset[GenerationStatus]] = {
    GenerationStatus.PENDING: frozenset({GenerationStatus.PENDING, GenerationStatus.GENERATING}),
    GenerationStatus.GENERATING: frozenset({GenerationStatus.COMPLETED, GenerationStatus.FAILED}),
    GenerationStatus.COMPLETED: frozenset({GenerationStatus.PENDING, GenerationStatus.GENERATING}),
    GenerationStatus.FAILED: frozenset({GenerationStatus.PENDING, GenerationStatus.GENERATING}),
}


def can_transition(current: GenerationStatus, target: GenerationStatus) -> bool:
    """True si `current -> target` est une transition permise."""
    return target in _ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class Episode:
    """Un épisode découpé dans un fichier de sous-titres (immuable une fois parsé)."""

    episode_number: int
    """Numéro 1-based, unique dans le fichier."""
    content: str
    word_count: int
    """Nombre de caractères du contenu nettoyé (pas un comptage de mots)."""
    last_timestamp: str | None = None
    """Dernier timecode de fin vu (HH:MM:SS,mmm), utilisé pour la durée."""
    title: str | None = None


@dataclass
class SubtitleFile:
    """Fichier de sous-titres importé + état de génération."""

    id: str
    name: str
    size: int
    content: str
    episodes: list[Episode] = field(default_factory=list)
    upload_time: float = 0.0
    generation_status: GenerationStatus = GenerationStatus.PENDING
    generation_progress: float = 0.0
    """Pourcentage 0-100 des épisodes traités pour ce fichier."""
    generated_count: int = 0

    def transition_to(self, status: GenerationStatus) -> None:
        """Change l'état de génération ; lève InvalidStatusTransition si interdit."""
        if not can_transition(self.generation_status, status):
            raise InvalidStatusTransition(
                f"{self.name}: {self.generation_status.value} -> {status.value} not allowed"
            )
        self.generation_status = status

    def episode(self, episode_number: int) -> Episode | None:
        for ep in self.episodes:
            if ep.episode_number == episode_number:
                return ep
        return None


@dataclass(frozen=True)
class GenerationConfig:
    """Instantané de configuration capturé par une exécution de génération."""

    model: str
    summary_length: tuple[int, int] = (20, 30)
    """Bornes [min, max] du synopsis en caractères (min < max)."""
    selected_styles: tuple[str, ...] = ("crunchyroll",)
    selected_title_style: str | None = None
    temperature: float = 0.7
    custom_prompt: str = ""

    def __post_init__(self) -> None:
        if not self.model or not self.model.strip():
            raise ConfigError("model must not be empty")
        if len(self.summary_length) != 2:
            raise ConfigError("summary_length must be a (min, max) pair")
        min_len, max_len = self.summary_length
        if min_len < 0 or min_len >= max_len:
            raise ConfigError(f"summary_length must satisfy 0 <= min < max, got {self.summary_length}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigError(f"temperature out of range: {self.temperature}")
        # Listes passées par l'appelant : figées pour que la config reste un instantané
        object.__setattr__(self, "summary_length", (int(min_len), int(max_len)))
        object.__setattr__(self, "selected_styles", tuple(self.selected_styles))

    @property
    def min_length(self) -> int:
        return self.summary_length[0]

    @property
    def max_length(self) -> int:
        return self.summary_length[1]


@dataclass
class GenerationResult:
    """
    Résultat d'une tentative (épisode, style).
    confidence == 0.0 est la sentinelle d'échec : generated_summary contient alors le message d'erreur.
    """

    episode_number: int
    generated_title: str
    generated_summary: str
    confidence: float
    model: str
    generation_time: float
    file_name: str = ""
    style_id: str | None = None
    style_name: str = ""
    word_count: int = 0
    styles: list[str] = field(default_factory=list)
    original_title: str | None = None
    error: str | None = None
    """Code machine optionnel (INSUFFICIENT_BALANCE, QUOTA_EXCEEDED)."""

    @property
    def is_failure(self) -> bool:
        return self.confidence == 0


@dataclass(frozen=True)
class ExportOptions:
    """Colonnes remplies à l'export (sinon chaîne vide / 0)."""

    include_title: bool = True
    include_overview: bool = True
    include_runtime: bool = True


@dataclass(frozen=True)
class ExportRow:
    """Une ligne de l'export TMDB-Import, renumérotée globalement."""

    episode_number: int
    name: str
    runtime: int
    overview: str
    backdrop: str = ""
