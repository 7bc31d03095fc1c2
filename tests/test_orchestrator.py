"""Tests GenerationOrchestrator : styles x épisodes, pauses, échecs, annulation, statuts."""

from __future__ import annotations

import dataclasses

import pytest

from conftest import LONG_SUMMARY, FakeGenerator, json_reply, make_episode, make_file
from episodegen.core.generation import CancellationToken, DelayPolicy, GenerationOrchestrator, Pacer, ResultStore
from episodegen.core.generation.orchestrator import (
    INSUFFICIENT_BALANCE_SUMMARY,
    QUOTA_EXCEEDED_SUMMARY,
)
from episodegen.core.llm import GenerationClientError, InsufficientBalanceError, QuotaExceededError
from episodegen.core.models import GenerationStatus


def _orchestrator(generator, pacer, clock, store=None) -> GenerationOrchestrator:
    return GenerationOrchestrator(generator, store=store, pacer=pacer, clock=clock)


def test_one_result_per_style(fake_generator, pacer, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    orch = _orchestrator(fake_generator, pacer, fixed_clock)

    results = orch.generate_for_episode(make_episode(3), cfg, file_name="a.srt")

    assert [r.style_id for r in results] == ["crunchyroll", "netflix"]
    assert all(r.episode_number == 3 for r in results)
    assert all(r.file_name == "a.srt" for r in results)
    assert results[0].generated_title == "禁忌森林"
    assert results[0].confidence == 0.9
    assert results[0].generation_time == fixed_clock.now()
    assert len(fake_generator.requests) == 2


def test_request_parameters(fake_generator, pacer, fixed_clock, config):
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    orch.generate_for_episode(make_episode(1), config)

    request = fake_generator.requests[0]
    assert request.model == "test-model"
    assert request.temperature == config.temperature
    assert request.max_tokens == 800
    assert [m.role for m in request.messages] == ["system", "user"]
    assert "第1集" in request.messages[1].content


def test_pauses_between_styles_and_episodes(fake_generator, pacer, recording_sleep, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    orch = _orchestrator(fake_generator, pacer, fixed_clock)

    orch.generate_for_file(make_file("a", 2), cfg)

    # épisode 1 : pause style ; épisode 2 : pause épisode puis pause style
    assert recording_sleep.calls == [0.5, 1.5, 0.5]
    assert len(fake_generator.requests) == 4


def test_requests_respect_minimum_interval(fake_generator, recording_sleep, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    ticks = [0.0, 0.1, 5.0]
    pacer = Pacer(
        DelayPolicy(style_delay_s=0, episode_delay_s=0, min_request_interval_s=1.0),
        sleep=recording_sleep,
        monotonic=lambda: ticks.pop(0) if len(ticks) > 1 else ticks[0],
    )
    orch = _orchestrator(fake_generator, pacer, fixed_clock)

    orch.generate_for_episode(make_episode(1), cfg)

    assert recording_sleep.calls == [pytest.approx(0.9)]
    assert len(fake_generator.requests) == 2


def test_no_valid_style_yields_nothing(fake_generator, pacer, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("nope",))
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    assert orch.generate_for_episode(make_episode(1), cfg) == []
    assert fake_generator.requests == []


def test_client_error_becomes_placeholder(pacer, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    generator = FakeGenerator([GenerationClientError("boom")], default=json_reply("标题", LONG_SUMMARY))
    orch = _orchestrator(generator, pacer, fixed_clock)
    file = make_file("a", 1)

    results = orch.generate_for_file(file, cfg)

    failed, ok = results
    assert failed.confidence == 0
    assert failed.is_failure
    assert failed.generated_title.startswith("第1集（")
    assert "style generation failed" in failed.generated_title
    assert failed.generated_summary == "生成失败：boom"
    assert failed.word_count == 0
    assert ok.confidence == 0.9
    # un seul échec suffit à marquer le fichier en échec
    assert file.generation_status is GenerationStatus.FAILED


def test_unexpected_error_becomes_placeholder(pacer, fixed_clock, config):
    generator = FakeGenerator([RuntimeError("parser exploded")])
    orch = _orchestrator(generator, pacer, fixed_clock)
    results = orch.generate_for_episode(make_episode(2), config)
    assert len(results) == 1
    assert results[0].confidence == 0
    assert "parser exploded" in results[0].generated_summary


def test_insufficient_balance_stops_remaining_styles(pacer, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix", "professional"))
    generator = FakeGenerator(
        [InsufficientBalanceError("balance")],
        default=json_reply("标题", LONG_SUMMARY),
    )
    orch = _orchestrator(generator, pacer, fixed_clock)

    results = orch.generate_for_file(make_file("a", 2), cfg)

    # épisode 1 : un seul appel ; épisode 2 : tous les styles
    assert len(generator.requests) == 4
    assert len(results) == 4
    first = results[0]
    assert first.error == "INSUFFICIENT_BALANCE"
    assert first.generated_title == "第1集"
    assert first.generated_summary == INSUFFICIENT_BALANCE_SUMMARY
    assert first.confidence == 0
    assert [r.episode_number for r in results[1:]] == [2, 2, 2]


def test_quota_exceeded_placeholder_does_not_stop_styles(pacer, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    generator = FakeGenerator([QuotaExceededError("quota")], default=json_reply("标题", LONG_SUMMARY))
    orch = _orchestrator(generator, pacer, fixed_clock)

    results = orch.generate_for_episode(make_episode(1), cfg)

    assert len(results) == 2
    assert results[0].error == "QUOTA_EXCEEDED"
    assert results[0].generated_summary == QUOTA_EXCEEDED_SUMMARY
    assert results[1].confidence == 0.9


def test_short_summary_caps_confidence(pacer, fixed_clock, config):
    generator = FakeGenerator([json_reply("标题", "太短的简介", 0.95)])
    orch = _orchestrator(generator, pacer, fixed_clock)
    (result,) = orch.generate_for_episode(make_episode(1), config)
    assert result.confidence == 0.3
    assert result.generated_summary == "太短的简介"


def test_batch_statuses_and_store(fake_generator, pacer, fixed_clock, config):
    store = ResultStore()
    orch = _orchestrator(fake_generator, pacer, fixed_clock, store=store)
    files = [make_file("a", 2), make_file("b", 1)]

    by_file = orch.generate_for_all_files(files, config)

    assert [f.generation_status for f in files] == [GenerationStatus.COMPLETED] * 2
    assert [len(by_file["a"]), len(by_file["b"])] == [2, 1]
    assert store.get("a") == by_file["a"]
    assert files[0].generation_progress == 100
    assert files[0].generated_count == 2


def test_progress_is_monotonic(fake_generator, pacer, fixed_clock, config):
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    events = []
    orch.generate_for_all_files([make_file("a", 2), make_file("b", 1)], config, on_progress=events.append)

    assert [(e.file_id, e.file_progress) for e in events] == [("a", 50), ("a", 100), ("b", 100)]
    percents = [e.percent for e in events]
    assert percents == sorted(percents)
    assert percents[-1] == pytest.approx(100)
    assert [e.completed_episodes for e in events] == [1, 2, 3]
    assert all(e.total_episodes == 3 for e in events)


def test_files_without_episodes_are_skipped(fake_generator, pacer, fixed_clock, config):
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    empty = make_file("empty", 0)
    full = make_file("full", 1)

    by_file = orch.generate_for_all_files([empty, full], config)

    assert "empty" not in by_file
    assert empty.generation_status is GenerationStatus.PENDING
    assert full.generation_status is GenerationStatus.COMPLETED


def test_rerun_appends_unless_replace_existing(fake_generator, pacer, fixed_clock, config):
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    file = make_file("a", 2)

    orch.generate_for_file(file, config)
    orch.generate_for_file(file, config)
    assert len(orch.store.get("a")) == 4

    orch.generate_for_file(file, config, replace_existing=True)
    assert len(orch.store.get("a")) == 2
    assert file.generation_status is GenerationStatus.COMPLETED


def test_cancel_during_episode_pause(fake_generator, pacer, recording_sleep, fixed_clock, config):
    recording_sleep.on_call = lambda n, token: token.cancel()
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    first, second = make_file("a", 2), make_file("b", 2)

    by_file = orch.generate_for_all_files([first, second], config)

    assert len(by_file["a"]) == 1
    assert "b" not in by_file
    assert first.generation_status is GenerationStatus.FAILED
    assert second.generation_status is GenerationStatus.PENDING
    assert len(fake_generator.requests) == 1


def test_cancel_before_start(fake_generator, pacer, fixed_clock, config):
    token = CancellationToken()
    token.cancel()
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    file = make_file("a", 1)

    assert orch.generate_for_all_files([file], config, token=token) == {}
    assert file.generation_status is GenerationStatus.PENDING
    assert fake_generator.requests == []


def test_cancelled_replace_rerun_keeps_unreached_files(fake_generator, pacer, recording_sleep, fixed_clock, config):
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    first, second = make_file("a", 1), make_file("b", 1)
    orch.generate_for_all_files([first, second], config)
    previous_b = list(orch.store.get("b"))

    # Annulation pendant la pause qui précède le fichier b
    recording_sleep.on_call = lambda n, token: token.cancel()
    by_file = orch.generate_for_all_files([first, second], config, replace_existing=True)

    assert list(by_file) == ["a"]
    assert len(orch.store.get("a")) == 1
    assert first.generation_status is GenerationStatus.COMPLETED
    assert orch.store.get("b") == previous_b
    assert second.generation_status is GenerationStatus.COMPLETED
    assert second.generation_progress == 100.0
    assert second.generated_count == 1
    assert len(fake_generator.requests) == 3


def test_cancel_between_styles_keeps_partial_results(fake_generator, pacer, recording_sleep, fixed_clock, config):
    cfg = dataclasses.replace(config, selected_styles=("crunchyroll", "netflix"))
    recording_sleep.on_call = lambda n, token: token.cancel()
    orch = _orchestrator(fake_generator, pacer, fixed_clock)
    file = make_file("a", 1)

    results = orch.generate_for_file(file, cfg)

    assert [r.style_id for r in results] == ["crunchyroll"]
    assert orch.store.get("a") == results
    assert file.generation_status is GenerationStatus.FAILED


def test_interrupt_marks_file_failed(pacer, fixed_clock, config):
    generator = FakeGenerator([KeyboardInterrupt()])
    orch = _orchestrator(generator, pacer, fixed_clock)
    file = make_file("a", 1)

    with pytest.raises(KeyboardInterrupt):
        orch.generate_for_file(file, config)
    assert file.generation_status is GenerationStatus.FAILED


def test_placeholder_keeps_episode_title(pacer, fixed_clock, config):
    generator = FakeGenerator([GenerationClientError("down")])
    orch = _orchestrator(generator, pacer, fixed_clock)
    episode = dataclasses.replace(make_episode(5), title="原标题")
    (result,) = orch.generate_for_episode(episode, config)
    assert result.original_title == "原标题"
