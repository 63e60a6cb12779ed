"""
Guard evaluation for choices and nodes.

The grammar is deliberately tiny. A condition is exactly one of:

    stats.<name> <op> <int>      op in >=, >, <=, <, ==, =, !=
    flags.<name>                 trailing operator/value is ignored
    inventory.has("<item>")      single or double quotes

Forms are tried in that order and the first structural match wins.
There is no AND/OR. A condition matching none of the forms evaluates
true (fail-open) unless strict mode is requested.
"""

import logging
import operator
import re
from dataclasses import dataclass
from typing import Callable

from ..state.errors import GuardSyntaxError
from ..state.schema import GameState


logger = logging.getLogger(__name__)


STAT_PATTERN = re.compile(r"stats\.(\w+)\s*(>=|<=|==|!=|>|<|=)\s*(-?\d+)")
FLAG_PATTERN = re.compile(r"flags\.(\w+)")
INVENTORY_PATTERN = re.compile(r"""inventory\.has\(\s*["']([^"']*)["']\s*\)""")

COMPARATORS: dict[str, Callable[[int, int], bool]] = {
    ">=": operator.ge,
    ">": operator.gt,
    "<=": operator.le,
    "<": operator.lt,
    "==": operator.eq,
    "=": operator.eq,
    "!=": operator.ne,
}


@dataclass(frozen=True)
class StatComparison:
    stat: str
    op: str
    value: int

    def evaluate(self, state: GameState) -> bool:
        return COMPARATORS[self.op](int(state.stat(self.stat)), self.value)


@dataclass(frozen=True)
class FlagLookup:
    flag: str

    def evaluate(self, state: GameState) -> bool:
        return bool(state.flags.get(self.flag, False))


@dataclass(frozen=True)
class InventoryHas:
    item: str

    def evaluate(self, state: GameState) -> bool:
        return state.has_item(self.item)


Guard = StatComparison | FlagLookup | InventoryHas


def parse_condition(condition: str) -> Guard | None:
    """Parse a condition string. Returns None when no form matches."""
    match = STAT_PATTERN.search(condition)
    if match:
        return StatComparison(match.group(1), match.group(2), int(match.group(3)))

    match = FLAG_PATTERN.search(condition)
    if match:
        return FlagLookup(match.group(1))

    match = INVENTORY_PATTERN.search(condition)
    if match:
        return InventoryHas(match.group(1))

    return None


def evaluate(condition: str | None, state: GameState, strict: bool = False) -> bool:
    """
    Evaluate a guard condition against a state snapshot.

    Args:
        condition: Guard expression, or None/empty for "no guard"
        state: State to read (never modified)
        strict: Raise GuardSyntaxError on unrecognized conditions

    Returns:
        Whether the guard passes
    """
    if not condition or not condition.strip():
        return True

    guard = parse_condition(condition)
    if guard is None:
        if strict:
            raise GuardSyntaxError(f"Unrecognized condition: {condition!r}")
        logger.debug("Unrecognized condition %r treated as true", condition)
        return True

    return guard.evaluate(state)
