"""Tests lecture des réponses du modèle : JSON strict puis heuristique."""

from __future__ import annotations

import json
import logging

import pytest

from conftest import make_episode
from episodegen.core.generation.response import (
    HeuristicResponse,
    StructuredResponse,
    parse_generation_response,
    parse_response,
)
from episodegen.core.models import GenerationConfig
from episodegen.core.utils.clock import FixedClock

CONFIG = GenerationConfig(model="m", summary_length=(20, 30), selected_styles=("netflix",))


def test_json_response_is_structured():
    parsed = parse_response('{"title": "月下之约", "summary": "两人在月光下立下誓言。", "confidence": 0.92}')
    assert isinstance(parsed, StructuredResponse)
    assert parsed.title == "月下之约"
    assert parsed.resolved_confidence() == 0.92


def test_json_in_code_fence_is_structured():
    raw = '```json\n{"title": "T", "summary": "S"}\n```'
    parsed = parse_response(raw)
    assert isinstance(parsed, StructuredResponse)
    assert parsed.resolved_confidence() == 0.8


def test_json_defaults_applied_in_result():
    result = parse_generation_response("{}", make_episode(4), CONFIG, "netflix", clock=FixedClock(5.0))
    assert result.generated_title == "第4集"
    assert result.generated_summary == "暂无简介"
    assert result.confidence == 0.8
    assert result.generation_time == 5.0
    assert result.styles == ["netflix"]
    assert result.style_name == "Netflix平台风格"


def test_json_zero_confidence_falls_back_to_default():
    parsed = parse_response('{"title": "T", "summary": "S", "confidence": 0}')
    assert parsed.resolved_confidence() == 0.8


@pytest.mark.parametrize("raw_confidence, expected", [(-0.2, 0.8), ("-1", 0.8), (1.7, 1.0), (1, 1.0), (0.35, 0.35)])
def test_json_confidence_is_clamped(raw_confidence, expected):
    raw = json.dumps({"title": "T", "summary": "S", "confidence": raw_confidence})
    parsed = parse_response(raw)
    assert parsed.resolved_confidence() == expected
    result = parse_generation_response(raw, make_episode(1), CONFIG, "netflix", clock=FixedClock(0.0))
    assert 0 < result.confidence <= 1
    assert not result.is_failure


def test_json_length_warning_is_not_blocking(caplog):
    summary = "长" * 45
    with caplog.at_level(logging.WARNING):
        result = parse_generation_response(
            '{"title": "T", "summary": "%s", "confidence": 0.7}' % summary,
            make_episode(1),
            CONFIG,
            "netflix",
            clock=FixedClock(),
        )
    assert result.generated_summary == summary
    assert result.confidence == 0.7
    assert result.word_count == 45
    assert "too long" in caplog.text


def test_json_short_summary_warning(caplog):
    with caplog.at_level(logging.WARNING):
        parse_generation_response('{"summary": "短"}', make_episode(1), CONFIG, "netflix", clock=FixedClock())
    assert "too short" in caplog.text


def test_json_within_tolerance_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING):
        parse_generation_response('{"summary": "%s"}' % ("字" * 40), make_episode(1), CONFIG, "netflix", clock=FixedClock())
    assert caplog.text == ""


def test_heuristic_labels():
    raw = "标题：\"封印之战\"\n简介：少年们踏上旅途，封印之下的秘密逐渐浮出水面。"
    parsed = parse_response(raw)
    assert isinstance(parsed, HeuristicResponse)
    assert parsed.title == "封印之战"
    assert parsed.summary == "少年们踏上旅途，封印之下的秘密逐渐浮出水面。"
    assert parsed.resolved_confidence() == 0.6


def test_heuristic_english_labels_and_curly_quotes():
    parsed = parse_response("Title: “The Gate”\nSummary: The gate opens at dawn and nobody returns.")
    assert parsed.title == "The Gate"
    assert parsed.summary == "The gate opens at dawn and nobody returns."


def test_heuristic_defaults_in_result():
    result = parse_generation_response("标题：\n", make_episode(7), CONFIG, "netflix", clock=FixedClock())
    assert result.generated_title == "第7集"
    assert result.confidence == 0.6


def test_heuristic_long_unlabelled_line_is_summary():
    raw = "Here is my answer\nA long unlabelled line describing what happens in this story."
    parsed = parse_response(raw)
    assert parsed.title is None
    assert parsed.summary == "A long unlabelled line describing what happens in this story."


def test_heuristic_quoted_text_fallback():
    raw = '第1集的回答如下 "The heroes cross the frozen river at night" 完'
    parsed = parse_response(raw)
    assert parsed.summary == "The heroes cross the frozen river at night"


def test_heuristic_short_whole_response_fallback():
    parsed = parse_response("第一集很短")
    assert parsed.summary == "第一集很短"


def test_heuristic_first_sentence_fallback():
    raw = "第二段落的第一句话比较长一些。然后还有更多内容" + "集" * 200
    parsed = parse_response(raw)
    assert parsed.summary == "第二段落的第一句话比较长一些。"


def test_empty_response_is_heuristic_with_defaults():
    result = parse_generation_response("", make_episode(2), CONFIG, None, clock=FixedClock())
    assert result.generated_title == "第2集"
    assert result.generated_summary == "暂无简介"
    assert result.styles == ["netflix"]
