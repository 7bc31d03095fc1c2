"""Fixtures pytest communes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from episodegen.core.generation.pacing import DelayPolicy, Pacer
from episodegen.core.llm.client import GenerationRequest
from episodegen.core.models import Episode, GenerationConfig, SubtitleFile
from episodegen.core.utils.clock import FixedClock

# Répertoire des fixtures
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR


def json_reply(title: str, summary: str, confidence: float | None = 0.9) -> str:
    data = {"title": title, "summary": summary}
    if confidence is not None:
        data["confidence"] = confidence
    return json.dumps(data, ensure_ascii=False)


LONG_SUMMARY = "少年踏入禁忌森林寻找失踪的妹妹，却发现村庄守护神早已苏醒，一场交易悄然展开。"


class FakeGenerator:
    """
    Client de génération factice : réponses prises dans l'ordre (str ou exception),
    ou calculées par un callable(request) ; enregistre chaque requête.
    """

    def __init__(self, replies=None, *, default: str | None = None):
        self._replies = list(replies or [])
        self._default = default
        self.requests: list[GenerationRequest] = []

    def complete(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        if self._replies:
            item = self._replies.pop(0)
        elif self._default is not None:
            item = self._default
        else:
            raise AssertionError("No more fake replies configured")
        if callable(item) and not isinstance(item, str):
            item = item(request)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def fake_generator():
    return FakeGenerator(default=json_reply("禁忌森林", LONG_SUMMARY))


class RecordingSleep:
    """Sleep du Pacer qui n'attend pas : garde les délais demandés, peut déclencher une action."""

    def __init__(self):
        self.calls: list[float] = []
        self.on_call = None

    def __call__(self, delay_s: float, token) -> None:
        self.calls.append(delay_s)
        if self.on_call:
            self.on_call(len(self.calls), token)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def pacer(recording_sleep):
    return Pacer(DelayPolicy(style_delay_s=0.5, episode_delay_s=1.5), sleep=recording_sleep)


@pytest.fixture
def fixed_clock():
    return FixedClock(1_700_000_000.0)


@pytest.fixture
def config():
    return GenerationConfig(model="test-model", summary_length=(30, 60), selected_styles=("crunchyroll",))


def make_episode(number: int, content: str = "字幕内容" * 20, last_timestamp: str | None = "00:20:00,000") -> Episode:
    return Episode(
        episode_number=number,
        content=content,
        word_count=len(content),
        last_timestamp=last_timestamp,
    )


def make_file(file_id: str, n_episodes: int, *, name: str | None = None) -> SubtitleFile:
    episodes = [make_episode(i) for i in range(1, n_episodes + 1)]
    return SubtitleFile(
        id=file_id,
        name=name or f"{file_id}.srt",
        size=100,
        content="",
        episodes=episodes,
    )
