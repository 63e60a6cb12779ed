"""
storyloom HTTP API.

FastAPI-based REST surface over a single StoryEngine session.
"""

from .server import create_app, StoryAPI
from .schemas import (
    ChoiceView,
    ChooseRequest,
    ChooseResponse,
    ErrorResponse,
    NodeView,
    SaveInfo,
    SaveResponse,
    SavesResponse,
    SkillCheckView,
    SlotRequest,
    StateResponse,
)

__all__ = [
    "create_app",
    "StoryAPI",
    "ChoiceView",
    "ChooseRequest",
    "ChooseResponse",
    "ErrorResponse",
    "NodeView",
    "SaveInfo",
    "SaveResponse",
    "SavesResponse",
    "SkillCheckView",
    "SlotRequest",
    "StateResponse",
]
