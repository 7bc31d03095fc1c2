"""
Découpage SRT / VTT en épisodes.
parse_episodes ne lève jamais : au pire un épisode de substitution portant une note d'erreur.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path

from episodegen.core.models import Episode, SubtitleFile
from episodegen.core.utils.clock import Clock, IdFactory, SystemClock, uuid_id_factory

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".srt", ".vtt", ".ass", ".ssa", ".sub")

# Marqueur de début d'épisode dans le texte : 第 3 集, Episode 3, EP3
EPISODE_MARKER = re.compile(r"第\s*\d+\s*集|Episode\s*\d+|EP\s*\d+", re.IGNORECASE)
# Un buffer plus court ne ferme pas l'épisode (évite les coupures parasites)
MIN_EPISODE_CHARS = 50
# Découpage de secours par phrases
SENTENCE_SPLIT = re.compile(r"[。！？.!?]")
MIN_SENTENCE_CHARS = 10
MIN_SENTENCES_PER_CHUNK = 10
FALLBACK_EPISODE_COUNT = 3

# Tags <i>, </i>, <font ...>, <v Name> ...
MARKUP_TAG = re.compile(r"<[^>]*>")
BLOCK_SEPARATOR = re.compile(r"\n\s*\n")
SRT_CUE_HEADER = re.compile(r"\d+\n\d{2}:\d{2}:\d{2},\d{3} --> \d{2}:\d{2}:\d{2},\d{3}\n")
VTT_TIMING = re.compile(r"\d{2}:\d{2}:\d{2}\.\d{3} --> \d{2}:\d{2}:\d{2}\.\d{3}")
NEWLINES = re.compile(r"\n+")

PARSE_ERROR_NOTE = "字幕文件解析失败，请检查文件格式"


class UnsupportedSubtitleFormat(ValueError):
    """Extension de fichier non prise en charge."""


def _normalize_newlines(content: str) -> str:
    text = content.replace("\r\n", "\n").replace("\r", "\n")
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


def _end_timestamp(timing_line: str) -> str:
    """Partie fin d'une ligne `start --> end [réglages VTT]`."""
    tail = timing_line.split("-->", 1)[1].strip()
    return tail.split()[0] if tail else ""


def _make_episode(number: int, buffer: str, last_timestamp: str | None) -> Episode:
    content = buffer.strip()
    return Episode(
        episode_number=number,
        content=content,
        word_count=len(content),
        last_timestamp=last_timestamp or None,
    )


def _split_by_sentences(text: str) -> list[Episode]:
    sentences = [s for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > MIN_SENTENCE_CHARS]
    if not sentences:
        return []
    chunk_size = max(MIN_SENTENCES_PER_CHUNK, math.ceil(len(sentences) / FALLBACK_EPISODE_COUNT))
    episodes: list[Episode] = []
    for start in range(0, len(sentences), chunk_size):
        chunk = "。".join(sentences[start : start + chunk_size]).strip()
        if chunk:
            episodes.append(_make_episode(len(episodes) + 1, chunk, None))
    return episodes


def parse_srt_episodes(content: str) -> list[Episode]:
    """
    Parse un SRT et le découpe en épisodes selon les marqueurs « 第N集 / Episode N / EP N ».
    Sans marqueur exploitable, découpe par phrases (au plus 3 pseudo-épisodes).
    """
    episodes: list[Episode] = []
    buffer = ""
    total = ""
    last_timestamp = ""
    for block in BLOCK_SEPARATOR.split(_normalize_newlines(content)):
        lines = block.strip().split("\n")
        if len(lines) < 3:
            continue
        if "-->" in lines[1]:
            end = _end_timestamp(lines[1])
            if end:
                last_timestamp = end
        text = MARKUP_TAG.sub("", " ".join(lines[2:])).strip()
        if not text:
            continue
        buffer += f"{text}\n"
        total += f"{text}\n"
        if EPISODE_MARKER.search(text) and len(buffer.strip()) > MIN_EPISODE_CHARS:
            episodes.append(_make_episode(len(episodes) + 1, buffer, last_timestamp))
            buffer = ""
    if len(buffer.strip()) > MIN_EPISODE_CHARS:
        episodes.append(_make_episode(len(episodes) + 1, buffer, last_timestamp))
    if not episodes and total.strip():
        episodes = _split_by_sentences(total)
    return episodes


def parse_vtt_episodes(content: str) -> list[Episode]:
    """Parse un VTT : toujours un seul épisode (pas de découpage multi-épisodes)."""
    buffer: list[str] = []
    last_timestamp = ""
    for line in _normalize_newlines(content).split("\n"):
        stripped = line.strip()
        if "-->" in stripped:
            end = _end_timestamp(stripped)
            if end:
                last_timestamp = end
            continue
        if not stripped or stripped.startswith("WEBVTT") or stripped.isdigit():
            continue
        cleaned = MARKUP_TAG.sub("", stripped).strip()
        if cleaned:
            buffer.append(cleaned)
    text = " ".join(buffer).strip()
    if not text:
        return []
    return [_make_episode(1, text, last_timestamp)]


def parse_plain_episode(content: str) -> list[Episode]:
    """Repli générique : retire tags et timecodes, un seul épisode."""
    text = _normalize_newlines(content)
    text = MARKUP_TAG.sub("", text)
    text = SRT_CUE_HEADER.sub("", text)
    text = VTT_TIMING.sub("", text)
    text = text.replace("WEBVTT", "")
    text = NEWLINES.sub(" ", text).strip()
    if not text:
        return []
    return [_make_episode(1, text, None)]


def _format_of(filename_or_format: str) -> str:
    value = (filename_or_format or "").strip().lower()
    if "." in value:
        return value.rsplit(".", 1)[1]
    return value


def parse_episodes(content: str, filename_or_format: str) -> list[Episode]:
    """
    Découpe un contenu de sous-titres en épisodes ordonnés.
    filename_or_format : nom de fichier (« a.srt ») ou format nu (« srt »).
    Ne lève pas : en cas d'erreur inattendue, retourne un épisode de substitution (word_count 0).
    """
    try:
        fmt = _format_of(filename_or_format)
        episodes: list[Episode] = []
        if fmt == "srt":
            episodes = parse_srt_episodes(content)
        elif fmt == "vtt":
            episodes = parse_vtt_episodes(content)
        if not episodes:
            episodes = parse_plain_episode(content)
        return episodes
    except Exception:
        logger.exception("Subtitle parsing failed for %s", filename_or_format)
        return [Episode(episode_number=1, content=PARSE_ERROR_NOTE, word_count=0)]


# Encodages à essayer à l'import (fichiers Windows / utilisateur)
_SUBTITLE_ENCODINGS = ("utf-8", "cp1252", "latin-1")


def read_subtitle_file_content(path: Path) -> str:
    """
    Lit le contenu d'un fichier de sous-titres en essayant utf-8, puis cp1252, puis latin-1.
    """
    for enc in _SUBTITLE_ENCODINGS:
        try:
            return path.read_text(encoding=enc)
        except (UnicodeDecodeError, LookupError):
            continue
    return path.read_text(encoding="utf-8", errors="replace")


def is_supported_subtitle(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def load_subtitle_file(
    path: Path,
    *,
    clock: Clock | None = None,
    id_factory: IdFactory | None = None,
) -> SubtitleFile:
    """
    Lit et parse un fichier de sous-titres. Lève UnsupportedSubtitleFormat si l'extension n'est pas acceptée.
    """
    path = Path(path)
    if not is_supported_subtitle(path):
        raise UnsupportedSubtitleFormat(
            f"{path.name}: extension non prise en charge ({', '.join(SUPPORTED_EXTENSIONS)})"
        )
    clock = clock or SystemClock()
    id_factory = id_factory or uuid_id_factory
    content = read_subtitle_file_content(path)
    episodes = parse_episodes(content, path.name)
    logger.info("Parsed %s: %d episode(s)", path.name, len(episodes))
    return SubtitleFile(
        id=id_factory(),
        name=path.name,
        size=path.stat().st_size,
        content=content,
        episodes=episodes,
        upload_time=clock.now(),
    )


def truncate_file_name(file_name: str, max_length: int = 30) -> str:
    """Tronque un nom pour l'affichage en gardant le début, la fin et l'extension."""
    if len(file_name) <= max_length:
        return file_name
    dot = file_name.rfind(".")
    name = file_name[:dot] if dot > 0 else file_name
    extension = file_name[dot:] if dot > 0 else ""
    if len(extension) > 10:
        return file_name[: max_length - 3] + "..."
    available = max_length - len(extension) - 3
    if available <= 0:
        return file_name[: max_length - 3] + "..."
    start_length = math.ceil(available * 0.6)
    end_length = available - start_length
    if end_length <= 0:
        return name[:start_length] + "..." + extension
    return name[:start_length] + "..." + name[len(name) - end_length :] + extension
