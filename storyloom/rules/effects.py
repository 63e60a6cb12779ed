"""
Effect application.

Effects are applied strictly in order against the live GameState;
later effects observe the mutations of earlier ones. Malformed or
unknown effects are skipped (fail-open) unless strict mode is requested.
"""

import logging
import operator
from typing import Callable, Iterable

from ..state.errors import EffectError
from ..state.schema import (
    AddItem,
    Effect,
    GameState,
    ModifyState,
    RemoveItem,
    SetFlag,
    UnknownEffect,
)


logger = logging.getLogger(__name__)


ARITHMETIC: dict[str, Callable] = {
    "add": operator.add,
    "subtract": operator.sub,
    "multiply": operator.mul,
}

OPERATIONS = frozenset({"set", *ARITHMETIC})


def apply_effects(effects: Iterable[Effect], state: GameState, strict: bool = False) -> GameState:
    """
    Apply effects to state in place.

    Args:
        effects: Ordered effects
        state: Live state to mutate
        strict: Raise EffectError instead of skipping bad effects

    Returns:
        The same state object, for chaining
    """
    for effect in effects:
        apply_effect(effect, state, strict=strict)
    return state


def apply_effect(effect: Effect, state: GameState, strict: bool = False) -> None:
    if isinstance(effect, ModifyState):
        _modify_state(effect, state, strict)
    elif isinstance(effect, SetFlag):
        state.flags[effect.name] = effect.value
    elif isinstance(effect, AddItem):
        if effect.name not in state.inventory:
            state.inventory.append(effect.name)
    elif isinstance(effect, RemoveItem):
        if effect.name in state.inventory:
            state.inventory.remove(effect.name)
    else:
        tag = effect.type if isinstance(effect, UnknownEffect) else type(effect).__name__
        _skip(f"Unknown effect type: {tag!r}", strict)


def _modify_state(effect: ModifyState, state: GameState, strict: bool) -> None:
    parts = effect.target.split(".")
    if len(parts) != 2 or not all(parts):
        _skip(f"Malformed state path: {effect.target!r}", strict)
        return

    if effect.operation not in OPERATIONS:
        _skip(f"Unknown operation {effect.operation!r} on {effect.target}", strict)
        return

    category_name, key = parts
    category = state.category(category_name)
    if category is None:
        _skip(f"State category {category_name!r} is not a mapping", strict)
        return

    if effect.operation == "set":
        value = effect.value
    else:
        current = category.get(key, 0)
        if not _is_number(current) or not _is_number(effect.value):
            _skip(
                f"Cannot {effect.operation} {effect.value!r} to {effect.target} (current {current!r})",
                strict,
            )
            return
        value = ARITHMETIC[effect.operation](current, effect.value)

    # stats and flags are typed; anything else would not survive a save
    check = CATEGORY_TYPES.get(category_name)
    if check is not None and not check(value):
        _skip(f"Value {value!r} does not fit {category_name} ({effect.target})", strict)
        return

    category[key] = value


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


CATEGORY_TYPES: dict[str, Callable] = {
    "stats": _is_number,
    "flags": lambda value: isinstance(value, bool),
}


def _skip(message: str, strict: bool) -> None:
    if strict:
        raise EffectError(message)
    logger.warning("%s (skipped)", message)
