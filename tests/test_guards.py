"""Tests for guard condition parsing and evaluation."""

import pytest

from storyloom.rules.guards import (
    FlagLookup,
    InventoryHas,
    StatComparison,
    evaluate,
    parse_condition,
)
from storyloom.state import GameState, GuardSyntaxError


@pytest.fixture
def state():
    return GameState(
        stats={"wisdom": 50, "strength": 3},
        inventory=["sword"],
        flags={"found_key": True, "door_open": False},
    )


class TestParseCondition:
    """Test the three guard forms."""

    def test_stat_comparison(self):
        assert parse_condition("stats.wisdom >= 50") == StatComparison("wisdom", ">=", 50)

    def test_flag_lookup(self):
        assert parse_condition("flags.found_key") == FlagLookup("found_key")

    def test_inventory_double_quotes(self):
        assert parse_condition('inventory.has("sword")') == InventoryHas("sword")

    def test_inventory_single_quotes(self):
        assert parse_condition("inventory.has('rope')") == InventoryHas("rope")

    def test_no_match(self):
        assert parse_condition("garbage!!") is None

    def test_stat_form_wins_over_flag_form(self):
        """First structural match wins, in fixed priority order."""
        guard = parse_condition("stats.luck > 2 and flags.cursed")
        assert isinstance(guard, StatComparison)


class TestEvaluate:
    """Test evaluation against a state."""

    def test_empty_condition_passes(self, state):
        assert evaluate(None, state) is True
        assert evaluate("", state) is True
        assert evaluate("   ", state) is True

    def test_stat_at_threshold(self):
        assert evaluate("stats.wisdom >= 50", GameState(stats={"wisdom": 50})) is True

    def test_stat_below_threshold(self):
        assert evaluate("stats.wisdom >= 50", GameState(stats={"wisdom": 49})) is False

    @pytest.mark.parametrize("condition,expected", [
        ("stats.strength > 2", True),
        ("stats.strength > 3", False),
        ("stats.strength <= 3", True),
        ("stats.strength < 3", False),
        ("stats.strength == 3", True),
        ("stats.strength = 3", True),
        ("stats.strength != 3", False),
    ])
    def test_operators(self, state, condition, expected):
        assert evaluate(condition, state) is expected

    def test_missing_stat_defaults_to_zero(self, state):
        assert evaluate("stats.charisma >= 1", state) is False
        assert evaluate("stats.charisma == 0", state) is True

    def test_flag_true(self):
        assert evaluate("flags.found_key", GameState(flags={"found_key": True})) is True

    def test_flag_false_and_missing(self, state):
        assert evaluate("flags.door_open", state) is False
        assert evaluate("flags.never_set", state) is False

    def test_flag_ignores_trailing_operator(self, state):
        """Only the flag name matters; the comparison is not evaluated."""
        assert evaluate("flags.found_key == false", state) is True

    def test_inventory_has(self):
        assert evaluate('inventory.has("sword")', GameState(inventory=["sword"])) is True
        assert evaluate('inventory.has("shield")', GameState(inventory=["sword"])) is False

    def test_unrecognized_fails_open(self, state):
        assert evaluate("garbage!!", state) is True

    def test_strict_mode_rejects_unrecognized(self, state):
        with pytest.raises(GuardSyntaxError):
            evaluate("garbage!!", state, strict=True)

    def test_strict_mode_still_evaluates_known_forms(self, state):
        assert evaluate("stats.wisdom >= 51", state, strict=True) is False

    def test_evaluation_does_not_mutate(self, state):
        before = state.model_dump()
        evaluate("stats.missing >= 1", state)
        evaluate("flags.missing", state)
        assert state.model_dump() == before

    def test_non_numeric_stat_reads_as_zero(self):
        state = GameState()
        state.stats["mood"] = "grim"
        assert evaluate("stats.mood == 0", state) is True
