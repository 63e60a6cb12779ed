"""Story documents, game state, notifications and persistence."""

from .schema import (
    NARRATOR,
    AddItem,
    Choice,
    Effect,
    GameState,
    ModifyState,
    RemoveItem,
    SaveRecord,
    Session,
    SetFlag,
    SkillCheck,
    StoryDocument,
    StoryNode,
    UnknownEffect,
)
from .errors import (
    ConditionNotMet,
    CorruptSave,
    DocumentInvalid,
    EffectError,
    GuardSyntaxError,
    InvalidChoiceIndex,
    NodeNotFound,
    StoryError,
)
from .converter import ConversionReport, convert_document, load_story_file, location_hint
from .event_bus import EventBus, EventType, GameEvent
from .store import (
    JsonSaveStore,
    MemorySaveStore,
    SaveStore,
    decode_record,
    decode_session,
    encode_session,
)

__all__ = [
    # Schema
    "NARRATOR",
    "AddItem",
    "Choice",
    "Effect",
    "GameState",
    "ModifyState",
    "RemoveItem",
    "SaveRecord",
    "Session",
    "SetFlag",
    "SkillCheck",
    "StoryDocument",
    "StoryNode",
    "UnknownEffect",
    # Errors
    "ConditionNotMet",
    "CorruptSave",
    "DocumentInvalid",
    "EffectError",
    "GuardSyntaxError",
    "InvalidChoiceIndex",
    "NodeNotFound",
    "StoryError",
    # Converter
    "ConversionReport",
    "convert_document",
    "load_story_file",
    "location_hint",
    # Event Bus
    "EventBus",
    "EventType",
    "GameEvent",
    # Store
    "JsonSaveStore",
    "MemorySaveStore",
    "SaveStore",
    "decode_record",
    "decode_session",
    "encode_session",
]
