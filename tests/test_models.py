"""Tests modèle : transitions d'état de génération, résultats en échec."""

import pytest

from conftest import make_file
from episodegen.core.models import (
    GenerationResult,
    GenerationStatus,
    InvalidStatusTransition,
    can_transition,
)


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (GenerationStatus.PENDING, GenerationStatus.GENERATING, True),
        (GenerationStatus.GENERATING, GenerationStatus.COMPLETED, True),
        (GenerationStatus.GENERATING, GenerationStatus.FAILED, True),
        (GenerationStatus.COMPLETED, GenerationStatus.GENERATING, True),
        (GenerationStatus.FAILED, GenerationStatus.PENDING, True),
        (GenerationStatus.PENDING, GenerationStatus.COMPLETED, False),
        (GenerationStatus.PENDING, GenerationStatus.FAILED, False),
        (GenerationStatus.GENERATING, GenerationStatus.PENDING, False),
        (GenerationStatus.COMPLETED, GenerationStatus.FAILED, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_illegal_transition_raises():
    file = make_file("a", 1)
    with pytest.raises(InvalidStatusTransition):
        file.transition_to(GenerationStatus.COMPLETED)
    assert file.generation_status is GenerationStatus.PENDING


def test_episode_lookup():
    file = make_file("a", 3)
    assert file.episode(2).episode_number == 2
    assert file.episode(9) is None


def test_zero_confidence_is_failure():
    result = GenerationResult(1, "t", "生成失败：x", 0.0, "m", 0.0)
    assert result.is_failure
    result.confidence = 0.3
    assert not result.is_failure
