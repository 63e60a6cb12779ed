"""
Pydantic models for storyloom story documents and game state.

Story documents are frozen once converted. GameState is the single
mutable aggregate and is designed to serialize to JSON unchanged.
"""

from datetime import datetime
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field


NARRATOR = "NARRATOR"

STATE_CATEGORIES = ("stats", "inventory", "flags", "variables", "relationships")


# -----------------------------------------------------------------------------
# Game State
# -----------------------------------------------------------------------------

class GameState(BaseModel):
    """
    Mutable player/world state.

    Extra top-level categories are allowed so that a modify_state effect
    targeting an unknown category survives a save round-trip.
    """

    model_config = ConfigDict(extra="allow")

    stats: dict[str, int | float] = Field(default_factory=dict)
    inventory: list[str] = Field(default_factory=list)
    flags: dict[str, bool] = Field(default_factory=dict)
    variables: dict[str, Any] = Field(default_factory=dict)
    relationships: dict[str, Any] = Field(default_factory=dict)

    def category(self, name: str, create: bool = True) -> dict | None:
        """
        Get a mapping category by name.

        Unknown categories are created as empty mappings when create is set.
        Returns None for categories that are not mappings (inventory).
        """
        if name in type(self).model_fields:
            value = getattr(self, name)
            return value if isinstance(value, dict) else None

        extra = self.__pydantic_extra__
        if name not in extra:
            if not create:
                return None
            extra[name] = {}
        value = extra[name]
        return value if isinstance(value, dict) else None

    def stat(self, name: str) -> int | float:
        """Numeric stat value; absent or non-numeric stats read as 0."""
        value = self.stats.get(name, 0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return value

    def has_item(self, item: str) -> bool:
        return item in self.inventory

    def snapshot(self) -> "GameState":
        """Deep copy for listeners and saves; never aliases the live state."""
        return self.model_copy(deep=True)


# -----------------------------------------------------------------------------
# Effects
# -----------------------------------------------------------------------------

class ModifyState(BaseModel):
    """Arithmetic or assignment on `category.key`."""
    model_config = ConfigDict(frozen=True)

    type: Literal["modify_state"] = "modify_state"
    target: str  # "category.key"; malformed paths are skipped at apply time
    operation: str = "set"  # set, add, subtract, multiply
    value: Any = 0


class SetFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["set_flag"] = "set_flag"
    name: str
    value: bool = True


class AddItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["add_item"] = "add_item"
    name: str


class RemoveItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["remove_item"] = "remove_item"
    name: str


class UnknownEffect(BaseModel):
    """An effect tag the engine does not recognize. Kept for diagnostics."""
    model_config = ConfigDict(frozen=True)

    type: str
    raw: dict[str, Any] = Field(default_factory=dict)


Effect = ModifyState | SetFlag | AddItem | RemoveItem | UnknownEffect


# -----------------------------------------------------------------------------
# Story Graph
# -----------------------------------------------------------------------------

class SkillCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    skill: str
    difficulty: int


class Choice(BaseModel):
    """A player-selectable transition."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    next: str = ""
    condition: str | None = None
    effects: tuple[Effect, ...] = ()
    skill_check: SkillCheck | None = None


class StoryNode(BaseModel):
    """One unit of narrative content."""
    model_config = ConfigDict(frozen=True)

    id: str
    kind: str = "story"
    title: str = ""
    text: str = ""
    speaker: str = NARRATOR
    choices: tuple[Choice, ...] = ()
    effects: tuple[Effect, ...] = ()
    condition: str | None = None

    @property
    def is_ending(self) -> bool:
        """A node with no choices is a resting state, not an error."""
        return not self.choices


class StoryDocument(BaseModel):
    """Root of a converted story. Immutable for the lifetime of a session."""
    model_config = ConfigDict(frozen=True)

    title: str = ""
    author: str = ""
    description: str = ""
    start_node: str = ""
    initial_state: GameState = Field(default_factory=GameState)
    nodes: dict[str, StoryNode] = Field(default_factory=dict)

    def get_node(self, node_id: str) -> StoryNode | None:
        return self.nodes.get(node_id)

    def new_state(self) -> GameState:
        """Fresh GameState seeded from the initial-state block."""
        return self.initial_state.model_copy(deep=True)


# -----------------------------------------------------------------------------
# Save Record
# -----------------------------------------------------------------------------

class SaveRecord(BaseModel):
    """Durable form of a session. Field names are the on-disk wire format."""

    story_title: str
    current_node: str
    game_state: GameState
    timestamp: datetime = Field(default_factory=datetime.now)


class Session(BaseModel):
    """Minimal restorable state of a play-through."""

    node_id: str
    state: GameState
    document: StoryDocument
