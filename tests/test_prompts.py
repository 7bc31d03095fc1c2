"""Tests construction des prompts (génération, amélioration) et catalogues de styles."""

from __future__ import annotations

import logging

import pytest

from conftest import make_episode
from episodegen.core.models import ConfigError, GenerationConfig, GenerationResult
from episodegen.core.prompts import (
    ENHANCE_OPERATIONS,
    UnknownOperationError,
    build_enhancement_prompt,
    build_generation_prompt,
    build_selection_rewrite_prompt,
    get_operation,
)
from episodegen.core.prompts.generation import DEFAULT_TITLE_REQUIREMENT, truncate_content
from episodegen.core.styles import SUMMARY_STYLES, TITLE_STYLES


def _config(**kwargs) -> GenerationConfig:
    base = {"model": "m", "summary_length": (40, 80), "selected_styles": ("crunchyroll",)}
    base.update(kwargs)
    return GenerationConfig(**base)


def test_generation_prompt_bounds_and_ceiling():
    prompt = build_generation_prompt(make_episode(3), _config(), "crunchyroll")
    assert "第3集" in prompt
    assert "[40, 80]" in prompt
    assert "最多不超过90字" in prompt
    assert "严禁使用疑问句" in prompt
    assert '"title"' in prompt and '"summary"' in prompt and '"confidence"' in prompt


def test_generation_prompt_truncates_content():
    episode = make_episode(1, content="字" * 2500)
    prompt = build_generation_prompt(episode, _config(), "professional")
    assert "字" * 2000 + "..." in prompt
    assert "字" * 2001 not in prompt
    assert truncate_content("abc") == "abc"


def test_generation_prompt_default_title_requirement():
    prompt = build_generation_prompt(make_episode(1), _config(), "netflix")
    assert DEFAULT_TITLE_REQUIREMENT in prompt


def test_generation_prompt_uses_selected_title_style():
    prompt = build_generation_prompt(make_episode(1), _config(selected_title_style="mystery_suspense"), "netflix")
    assert TITLE_STYLES.get("mystery_suspense").prompt_label in prompt
    assert DEFAULT_TITLE_REQUIREMENT not in prompt


@pytest.mark.parametrize(
    "style_id, marker",
    [
        ("crunchyroll", "Crunchyroll风格特殊要求"),
        ("netflix", "Netflix风格特殊要求"),
        ("ai_free", "AI自由发挥风格特殊要求"),
    ],
)
def test_platform_styles_get_structural_rules(style_id, marker):
    prompt = build_generation_prompt(make_episode(1), _config(), style_id)
    assert marker in prompt
    assert SUMMARY_STYLES.get(style_id).prompt_label in prompt


def test_plain_style_has_no_platform_rules():
    prompt = build_generation_prompt(make_episode(1), _config(), "humorous")
    assert "风格特殊要求" not in prompt
    # Interdiction des questions quel que soit le style
    assert "严禁使用疑问句" in prompt


def test_custom_prompt_comes_last():
    prompt = build_generation_prompt(make_episode(1), _config(custom_prompt="  保留角色原名  "), "netflix")
    assert prompt.rstrip().endswith("保留角色原名")
    assert "## 额外要求" in prompt


def test_blank_custom_prompt_is_ignored():
    prompt = build_generation_prompt(make_episode(1), _config(custom_prompt="   "), "netflix")
    assert "额外要求" not in prompt


def test_config_rejects_inverted_bounds():
    with pytest.raises(ConfigError):
        _config(summary_length=(80, 40))
    with pytest.raises(ConfigError):
        _config(summary_length=(50, 50))


def test_config_freezes_styles_list():
    cfg = _config(selected_styles=["netflix", "crunchyroll"])
    assert cfg.selected_styles == ("netflix", "crunchyroll")


def test_style_catalog_filters_unknown_ids(caplog):
    with caplog.at_level(logging.WARNING):
        kept = SUMMARY_STYLES.filter_known(["netflix", "nope", "crunchyroll"])
    assert kept == ["netflix", "crunchyroll"]
    assert "nope" in caplog.text
    assert SUMMARY_STYLES.name_of("nope") == "nope"
    assert SUMMARY_STYLES.name_of("netflix") == "Netflix平台风格"


def test_enhancement_registry_parameters():
    expected = {
        "polish": (0.6, 1000),
        "formalize": (0.6, 1000),
        "literarize": (0.6, 1000),
        "shorten": (0.4, 600),
        "summarize": (0.4, 600),
        "expand": (0.8, 1200),
        "continue": (0.8, 1200),
        "addSpoilers": (0.8, 1200),
        "colloquialize": (0.7, 1000),
        "rephrase": (0.7, 1000),
        "rewrite": (0.7, 1000),
        "removeSpoilers": (0.5, 800),
        "proofread": (0.3, 1000),
    }
    assert set(ENHANCE_OPERATIONS) == set(expected)
    for op_id, (temperature, max_tokens) in expected.items():
        op = get_operation(op_id)
        assert (op.temperature, op.max_tokens) == (temperature, max_tokens)
        assert 600 <= op.max_tokens <= 1200


def test_enhancement_prompt_embeds_result_and_contract():
    result = GenerationResult(
        episode_number=1,
        generated_title="旧标题",
        generated_summary="旧简介内容",
        confidence=0.8,
        model="m",
        generation_time=0.0,
    )
    prompt = build_enhancement_prompt(result, "shorten")
    assert "标题：旧标题" in prompt
    assert "简介：旧简介内容" in prompt
    assert "简介60-80字" in prompt
    assert prompt.rstrip().endswith("简介：[精简后的简介]")
    assert "200-300字" in build_enhancement_prompt(result, "expand")


def test_unknown_operation_raises():
    with pytest.raises(UnknownOperationError):
        get_operation("translate")


def test_selection_rewrite_prompt():
    prompt = build_selection_rewrite_prompt("一段文字")
    assert "【需要改写的文字】\n一段文字" in prompt
