"""Guard evaluation and effect application."""

from .guards import FlagLookup, InventoryHas, StatComparison, evaluate, parse_condition
from .effects import apply_effect, apply_effects

__all__ = [
    "FlagLookup",
    "InventoryHas",
    "StatComparison",
    "evaluate",
    "parse_condition",
    "apply_effect",
    "apply_effects",
]
