"""
Orchestration de la génération : épisodes x styles, pour un fichier ou un lot.

Exécution séquentielle (limite de débit du service) : pause entre styles et entre épisodes
via le Pacer ; un échec (épisode, style) devient un résultat de substitution (confidence 0)
et n'interrompt jamais le lot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from episodegen.core.generation.pacing import CancellationToken, Pacer
from episodegen.core.generation.response import default_title, parse_generation_response
from episodegen.core.generation.store import ResultStore
from episodegen.core.llm.client import (
    GenerationClientError,
    GenerationRequest,
    InsufficientBalanceError,
    QuotaExceededError,
    TextGenerator,
)
from episodegen.core.models import (
    Episode,
    GenerationConfig,
    GenerationResult,
    GenerationStatus,
    SubtitleFile,
)
from episodegen.core.prompts.generation import GENERATION_SYSTEM_PROMPT, build_generation_prompt
from episodegen.core.styles import SUMMARY_STYLES, StyleCatalog
from episodegen.core.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

GENERATION_MAX_TOKENS = 800
# Synopsis utilisable mais trop court : confiance plafonnée
SHORT_SUMMARY_CHARS = 30
SHORT_SUMMARY_MAX_CONFIDENCE = 0.3

INSUFFICIENT_BALANCE_SUMMARY = "余额不足，无法生成内容"
QUOTA_EXCEEDED_SUMMARY = "今日配额已用完，请明天再试"


@dataclass(frozen=True)
class BatchProgress:
    """Avancement après chaque épisode terminé."""

    file_id: str
    file_name: str
    file_progress: float
    """Pourcentage 0-100 du fichier courant."""
    generated_count: int
    completed_episodes: int
    total_episodes: int

    @property
    def percent(self) -> float:
        """Avancement global du lot (épisodes terminés / épisodes totaux)."""
        if self.total_episodes <= 0:
            return 0.0
        return self.completed_episodes / self.total_episodes * 100


ProgressFn = Callable[[BatchProgress], None]


class GenerationOrchestrator:
    """Pilote prompt -> client -> parse pour chaque (épisode, style) et tient la comptabilité d'état."""

    def __init__(
        self,
        client: TextGenerator,
        *,
        store: ResultStore | None = None,
        pacer: Pacer | None = None,
        clock: Clock | None = None,
        catalog: StyleCatalog = SUMMARY_STYLES,
    ):
        self.client = client
        self.store = store if store is not None else ResultStore()
        self.pacer = pacer or Pacer()
        self.clock = clock or SystemClock()
        self.catalog = catalog

    def _placeholder(
        self,
        episode: Episode,
        config: GenerationConfig,
        style_id: str,
        file_name: str,
        *,
        title: str,
        summary: str,
        error: str | None = None,
    ) -> GenerationResult:
        return GenerationResult(
            episode_number=episode.episode_number,
            generated_title=title,
            generated_summary=summary,
            confidence=0.0,
            model=config.model,
            generation_time=self.clock.now(),
            file_name=file_name,
            style_id=style_id,
            style_name=self.catalog.name_of(style_id),
            word_count=0,
            styles=[style_id],
            original_title=episode.title or default_title(episode.episode_number),
            error=error,
        )

    def _failure(
        self,
        episode: Episode,
        config: GenerationConfig,
        style_id: str,
        file_name: str,
        exc: Exception,
    ) -> GenerationResult:
        style_name = self.catalog.name_of(style_id)
        return self._placeholder(
            episode,
            config,
            style_id,
            file_name,
            title=f"第{episode.episode_number}集（{style_name} style generation failed）",
            summary=f"生成失败：{exc}",
        )

    def _generate_style(
        self,
        episode: Episode,
        config: GenerationConfig,
        style_id: str,
        file_name: str,
    ) -> GenerationResult:
        prompt = build_generation_prompt(episode, config, style_id, summary_styles=self.catalog)
        request = GenerationRequest.from_prompts(
            config.model,
            GENERATION_SYSTEM_PROMPT,
            prompt,
            temperature=config.temperature,
            max_tokens=GENERATION_MAX_TOKENS,
        )
        try:
            raw = self.client.complete(request)
        except InsufficientBalanceError as e:
            logger.warning("Episode %d / %s: %s", episode.episode_number, style_id, e)
            return self._placeholder(
                episode,
                config,
                style_id,
                file_name,
                title=default_title(episode.episode_number),
                summary=INSUFFICIENT_BALANCE_SUMMARY,
                error=InsufficientBalanceError.code,
            )
        except QuotaExceededError as e:
            logger.warning("Episode %d / %s: %s", episode.episode_number, style_id, e)
            return self._placeholder(
                episode,
                config,
                style_id,
                file_name,
                title=default_title(episode.episode_number),
                summary=QUOTA_EXCEEDED_SUMMARY,
                error=QuotaExceededError.code,
            )
        except GenerationClientError as e:
            logger.warning("Episode %d / %s failed: %s", episode.episode_number, style_id, e)
            return self._failure(episode, config, style_id, file_name, e)
        except Exception as e:
            logger.exception("Episode %d / %s failed", episode.episode_number, style_id)
            return self._failure(episode, config, style_id, file_name, e)

        result = parse_generation_response(
            raw,
            episode,
            config,
            style_id,
            clock=self.clock,
            file_name=file_name,
            catalog=self.catalog,
        )
        if len(result.generated_summary) < SHORT_SUMMARY_CHARS:
            logger.warning(
                "Episode %d / %s: summary too short (%d chars)",
                episode.episode_number,
                style_id,
                len(result.generated_summary),
            )
            result.confidence = min(result.confidence, SHORT_SUMMARY_MAX_CONFIDENCE)
        return result

    def _generate_styles(
        self,
        episode: Episode,
        config: GenerationConfig,
        file_name: str,
        token: CancellationToken,
    ) -> tuple[list[GenerationResult], bool]:
        """Résultats de l'épisode + False si l'annulation a interrompu la série de styles."""
        style_ids = self.catalog.filter_known(config.selected_styles)
        if not style_ids:
            logger.warning("Episode %d: no valid summary style selected", episode.episode_number)
            return [], True
        results: list[GenerationResult] = []
        for i, style_id in enumerate(style_ids):
            if i > 0 and not self.pacer.between_styles(token):
                return results, False
            if not self.pacer.before_request(token):
                return results, False
            result = self._generate_style(episode, config, style_id, file_name)
            results.append(result)
            if result.error == InsufficientBalanceError.code:
                logger.warning("Insufficient balance: remaining styles of episode %d skipped", episode.episode_number)
                break
        return results, True

    def generate_for_episode(
        self,
        episode: Episode,
        config: GenerationConfig,
        *,
        file_name: str = "",
        token: CancellationToken | None = None,
    ) -> list[GenerationResult]:
        """Un résultat par style valide sélectionné (liste vide si aucun style valide)."""
        results, _ = self._generate_styles(episode, config, file_name, token or CancellationToken())
        return results

    def generate_for_file(
        self,
        file: SubtitleFile,
        config: GenerationConfig,
        *,
        token: CancellationToken | None = None,
        replace_existing: bool = False,
        on_progress: ProgressFn | None = None,
    ) -> list[GenerationResult]:
        """Génère tous les épisodes d'un fichier ; résultats ajoutés au store sous file.id."""
        by_file = self.generate_for_all_files(
            [file],
            config,
            token=token,
            replace_existing=replace_existing,
            on_progress=on_progress,
        )
        return by_file.get(file.id, [])

    def generate_for_all_files(
        self,
        files: list[SubtitleFile],
        config: GenerationConfig,
        *,
        token: CancellationToken | None = None,
        replace_existing: bool = False,
        on_progress: ProgressFn | None = None,
    ) -> dict[str, list[GenerationResult]]:
        """
        Génère les fichiers dans l'ordre d'import. Les fichiers sans épisode sont ignorés.

        Statut par fichier : GENERATING puis COMPLETED si tous ses résultats ont confidence > 0,
        FAILED sinon (ou si le lot est annulé pendant ce fichier). Un fichier n'est remis à zéro
        (progression, résultats si replace_existing) qu'au moment où son tour arrive : après une
        annulation, les fichiers non atteints gardent leur état et leurs résultats.
        Retourne les résultats de cette exécution par id de fichier.
        """
        token = token or CancellationToken()
        eligible = [f for f in files if f.episodes]
        for f in files:
            if not f.episodes:
                logger.warning("Skipping %s: no episodes", f.name)
        total_episodes = sum(len(f.episodes) for f in eligible)
        completed_episodes = 0
        first_episode = True
        output: dict[str, list[GenerationResult]] = {}

        for f in eligible:
            # Pause avant le premier épisode du fichier, avant toute remise à zéro
            if not first_episode and not self.pacer.between_episodes(token):
                logger.info("Generation cancelled before %s", f.name)
                break
            if token.cancelled:
                logger.info("Generation cancelled before %s", f.name)
                break
            if replace_existing:
                self.store.clear(f.id)
            f.generation_progress = 0.0
            f.generated_count = 0
            f.transition_to(GenerationStatus.GENERATING)
            file_results: list[GenerationResult] = []
            output[f.id] = file_results
            interrupted = False
            try:
                for done, episode in enumerate(f.episodes, start=1):
                    if done > 1 and not self.pacer.between_episodes(token):
                        interrupted = True
                        break
                    first_episode = False
                    if token.cancelled:
                        interrupted = True
                        break
                    results, finished = self._generate_styles(episode, config, f.name, token)
                    file_results.extend(results)
                    self.store.append(f.id, results)
                    if not finished:
                        interrupted = True
                        break
                    completed_episodes += 1
                    f.generation_progress = done / len(f.episodes) * 100
                    f.generated_count = done
                    if on_progress:
                        on_progress(
                            BatchProgress(
                                file_id=f.id,
                                file_name=f.name,
                                file_progress=f.generation_progress,
                                generated_count=f.generated_count,
                                completed_episodes=completed_episodes,
                                total_episodes=total_episodes,
                            )
                        )
            except BaseException:
                f.transition_to(GenerationStatus.FAILED)
                raise
            ok = not interrupted and all(r.confidence > 0 for r in file_results)
            f.transition_to(GenerationStatus.COMPLETED if ok else GenerationStatus.FAILED)
            failures = sum(1 for r in file_results if r.is_failure)
            logger.info(
                "%s: %s (%d result(s), %d failure(s))",
                f.name,
                f.generation_status.value,
                len(file_results),
                failures,
            )
            if interrupted:
                logger.info("Generation cancelled during %s", f.name)
                break
        return output
