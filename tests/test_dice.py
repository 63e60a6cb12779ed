"""Tests for skill check resolution."""

import random

import pytest

from storyloom.state import GameState, SkillCheck
from storyloom.tools.dice import resolve_skill_check, roll_d20


class TestResolveSkillCheck:
    """Test stat + d20 against difficulty."""

    def test_success_at_difficulty(self, make_roll):
        result = resolve_skill_check(
            SkillCheck(skill="strength", difficulty=19),
            GameState(stats={"strength": 5}),
            make_roll(15),
        )
        assert result.total == 20
        assert result.success is True

    def test_failure_above_total(self, make_roll):
        result = resolve_skill_check(
            SkillCheck(skill="strength", difficulty=21),
            GameState(stats={"strength": 5}),
            make_roll(15),
        )
        assert result.total == 20
        assert result.success is False
        assert result.margin == -1

    def test_exact_difficulty_succeeds(self, make_roll):
        result = resolve_skill_check(SkillCheck(skill="wit", difficulty=10), GameState(), make_roll(10))
        assert result.skill_value == 0
        assert result.success is True
        assert result.margin == 0

    def test_capitalised_stat_key(self, make_roll):
        result = resolve_skill_check(
            SkillCheck(skill="strength", difficulty=12),
            GameState(stats={"Strength": 14}),
            make_roll(1),
        )
        assert result.skill_value == 14
        assert result.success is True

    def test_exact_key_preferred(self, make_roll):
        result = resolve_skill_check(
            SkillCheck(skill="strength", difficulty=12),
            GameState(stats={"Strength": 14, "strength": 2}),
            make_roll(1),
        )
        assert result.skill_value == 2

    def test_single_roll_in_range(self, make_roll):
        rng = make_roll(7)
        resolve_skill_check(SkillCheck(skill="wit", difficulty=10), GameState(), rng)
        assert rng.calls == [(1, 20)]

    @pytest.mark.parametrize("roll,narrative", [
        (20, "crushing success"),
        (15, "solid success"),
        (11, "narrow success"),
        (9, "near miss"),
        (6, "clear failure"),
        (1, "complete failure"),
    ])
    def test_narrative(self, make_roll, roll, narrative):
        result = resolve_skill_check(SkillCheck(skill="wit", difficulty=11), GameState(), make_roll(roll))
        assert result.narrative == narrative

    def test_to_dict(self, make_roll):
        result = resolve_skill_check(
            SkillCheck(skill="strength", difficulty=19),
            GameState(stats={"strength": 5}),
            make_roll(15),
        )
        data = result.to_dict()
        assert data["total"] == 20
        assert data["roll"] == 15
        assert data["narrative"] == "narrow success"


class TestRollD20:
    """Test the d20 with a real seeded generator."""

    def test_seeded_rolls_are_repeatable(self):
        first = [roll_d20(random.Random(42)) for _ in range(5)]
        second = [roll_d20(random.Random(42)) for _ in range(5)]
        assert first == second

    def test_rolls_in_range(self):
        rng = random.Random(1)
        rolls = [roll_d20(rng) for _ in range(200)]
        assert min(rolls) >= 1
        assert max(rolls) <= 20
