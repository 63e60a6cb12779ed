"""
Pydantic schemas for the storyloom HTTP API.

These models define the contract between a frontend and the engine.
The engine stays the source of truth; clients re-read /state after
every commit.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

class NodeView(BaseModel):
    """The current node as a client should present it."""
    id: str
    kind: str = "story"
    title: str = ""
    text: str = ""
    speaker: str
    location: str = ""
    is_ending: bool = False


class ChoiceView(BaseModel):
    index: int
    text: str
    available: bool
    condition: str | None = None
    skill: str | None = None
    difficulty: int | None = None


class SkillCheckView(BaseModel):
    skill: str
    difficulty: int
    skill_value: int | float
    roll: int
    total: int | float
    success: bool
    margin: int | float
    narrative: str


class SaveInfo(BaseModel):
    slot: str
    story_title: str
    current_node: str
    timestamp: datetime


# -----------------------------------------------------------------------------
# Requests / Responses
# -----------------------------------------------------------------------------

class StateResponse(BaseModel):
    """Full snapshot: node, choices and game state."""
    ok: bool = True
    story_title: str
    node: NodeView
    choices: list[ChoiceView] = Field(default_factory=list)
    game_state: dict[str, Any] = Field(default_factory=dict)


class ChooseRequest(BaseModel):
    index: int = Field(description="Zero-based choice index")


class ChooseResponse(BaseModel):
    ok: bool = True
    check: SkillCheckView | None = None
    state: StateResponse


class SlotRequest(BaseModel):
    slot: str = "quick"


class SaveResponse(BaseModel):
    ok: bool = True
    slot: str


class SavesResponse(BaseModel):
    ok: bool = True
    saves: list[SaveInfo] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error response."""
    ok: bool = False
    error: str
    code: str | None = None
    details: dict = Field(default_factory=dict)
