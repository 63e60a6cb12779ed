"""
Story document conversion.

Turns an externally authored story document (JSON or YAML) into the
frozen StoryDocument graph. Conversion is total: missing or malformed
fields fall back to defaults and problems are collected as warnings
instead of raised.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import DocumentInvalid
from .schema import (
    NARRATOR,
    STATE_CATEGORIES,
    AddItem,
    Choice,
    Effect,
    GameState,
    ModifyState,
    RemoveItem,
    SetFlag,
    SkillCheck,
    StoryDocument,
    StoryNode,
    UnknownEffect,
)


logger = logging.getLogger(__name__)


SPEAKER_TITLE_LIMIT = 30
SECOND_PERSON_MARKERS = ("You ", "Your ")

# [Strength >= 12] or [Strength > 12] embedded in choice text
SKILL_MARKER_PATTERN = re.compile(r"\[(\w+)\s*>=?\s*(\d+)\]", re.IGNORECASE)
# stats.strength >= 12 in a guard condition
SKILL_CONDITION_PATTERN = re.compile(r"stats\.(\w+)\s*>=\s*(\d+)")

LOCATION_KEYWORDS = (
    "forest", "cave", "castle", "village", "town", "city", "tavern", "inn",
    "temple", "church", "dungeon", "tower", "mountain", "river", "lake",
    "sea", "beach", "desert", "swamp", "library", "palace", "ruins",
    "market", "road", "bridge", "camp", "ship", "house",
)


@dataclass
class ConversionReport:
    """Warnings collected during conversion."""
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    @property
    def clean(self) -> bool:
        return not self.warnings


# -----------------------------------------------------------------------------
# Heuristics
# -----------------------------------------------------------------------------

def resolve_speaker(title: str, text: str) -> str:
    """
    Derive a speaker label from node text and title.

    Second-person narration belongs to the narrator. Otherwise a short
    title is taken as a character name.
    """
    if text.startswith(SECOND_PERSON_MARKERS):
        return NARRATOR
    if title and len(title) < SPEAKER_TITLE_LIMIT:
        return title.upper()
    return NARRATOR


def extract_skill_check(text: str, condition: str | None) -> SkillCheck | None:
    """Marker in choice text wins over a stats.<skill> >= N condition."""
    match = SKILL_MARKER_PATTERN.search(text or "")
    if match is None and condition:
        match = SKILL_CONDITION_PATTERN.search(condition)
    if match is None:
        return None
    return SkillCheck(skill=match.group(1).lower(), difficulty=int(match.group(2)))


def location_hint(title: str) -> str:
    """First location keyword found in a node title, or empty string."""
    words = re.findall(r"[a-z]+", (title or "").lower())
    for keyword in LOCATION_KEYWORDS:
        if keyword in words:
            return keyword
    return ""


# -----------------------------------------------------------------------------
# Field coercion
# -----------------------------------------------------------------------------

def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list:
    return value if isinstance(value, list) else []


def _condition(value: Any) -> str | None:
    text = _text(value).strip()
    return text or None


def _flag_value(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "on")
    return bool(value)


def convert_effect(raw: Any) -> Effect:
    """Normalize one raw effect. Never raises."""
    raw = _mapping(raw)
    etype = _text(raw.get("type")).strip().lower()

    if etype == "modify_state":
        target = raw.get("target", raw.get("path"))
        operation = raw.get("operation", raw.get("op", "set"))
        return ModifyState(
            target=_text(target),
            operation=_text(operation).lower(),
            value=raw.get("value", 0),
        )
    if etype == "set_flag":
        name = raw.get("flag", raw.get("name"))
        return SetFlag(name=_text(name), value=_flag_value(raw.get("value", True)))
    if etype == "add_item":
        return AddItem(name=_text(raw.get("item", raw.get("name"))))
    if etype == "remove_item":
        return RemoveItem(name=_text(raw.get("item", raw.get("name"))))

    return UnknownEffect(type=etype or "<missing>", raw=raw)


def _effects(value: Any) -> tuple[Effect, ...]:
    return tuple(convert_effect(raw) for raw in _sequence(value))


def convert_choice(raw: Any) -> Choice:
    raw = _mapping(raw)
    text = _text(raw.get("text"))
    condition = _condition(raw.get("condition"))
    return Choice(
        text=text,
        next=_text(raw.get("next")).strip(),
        condition=condition,
        effects=_effects(raw.get("effects")),
        skill_check=extract_skill_check(text, condition),
    )


def convert_node(node_id: str, raw: Any) -> StoryNode:
    raw = _mapping(raw)
    title = _text(raw.get("title"))
    text = _text(raw.get("text"))
    return StoryNode(
        id=node_id,
        kind=_text(raw.get("type")) or "story",
        title=title,
        text=text,
        speaker=resolve_speaker(title, text),
        choices=tuple(convert_choice(c) for c in _sequence(raw.get("choices"))),
        effects=_effects(raw.get("effects")),
        condition=_condition(raw.get("condition")),
    )


def convert_initial_state(raw: Any, report: ConversionReport | None = None) -> GameState:
    """Build a GameState, dropping only the sub-fields that fail validation."""
    raw = _mapping(raw)
    data = {}
    for name in STATE_CATEGORIES:
        if name in raw:
            data[name] = raw[name]

    try:
        return GameState.model_validate(data)
    except ValidationError:
        pass

    state = GameState()
    for name, value in data.items():
        try:
            setattr(state, name, getattr(GameState.model_validate({name: value}), name))
        except ValidationError:
            if report is not None:
                report.warn(f"Initial state '{name}' is malformed; using empty default")
    return state


# -----------------------------------------------------------------------------
# Document
# -----------------------------------------------------------------------------

def _node_entries(raw_nodes: Any, report: ConversionReport) -> list[tuple[str, Any]]:
    """Accept either {id: node} or [{id: ..., ...}] node tables."""
    if isinstance(raw_nodes, dict):
        return [(_text(k), v) for k, v in raw_nodes.items()]

    entries = []
    for i, raw in enumerate(_sequence(raw_nodes)):
        node_id = _text(_mapping(raw).get("id")).strip()
        if not node_id:
            report.warn(f"Node at position {i} has no id; skipped")
            continue
        entries.append((node_id, raw))
    return entries


def convert_document(raw: Any) -> tuple[StoryDocument, ConversionReport]:
    """
    Convert a raw story document.

    Args:
        raw: Parsed JSON/YAML mapping

    Returns:
        Tuple of (StoryDocument, ConversionReport)
    """
    report = ConversionReport()
    raw = _mapping(raw)

    nodes: dict[str, StoryNode] = {}
    for node_id, raw_node in _node_entries(raw.get("nodes"), report):
        if node_id in nodes:
            report.warn(f"Duplicate node id {node_id!r}; later definition wins")
        nodes[node_id] = convert_node(node_id, raw_node)

    start_node = _text(raw.get("startNode", raw.get("start_node"))).strip()
    if not start_node:
        report.warn("Document has no startNode")
    elif start_node not in nodes:
        report.warn(f"startNode {start_node!r} is not in the node table")

    for node in nodes.values():
        for i, choice in enumerate(node.choices):
            if choice.next and choice.next not in nodes:
                report.warn(f"Choice {i} of node {node.id!r} leads to missing node {choice.next!r}")

    document = StoryDocument(
        title=_text(raw.get("title")),
        author=_text(raw.get("author")),
        description=_text(raw.get("description")),
        start_node=start_node,
        initial_state=convert_initial_state(raw.get("initialState", raw.get("initial_state")), report),
        nodes=nodes,
    )
    return document, report


def load_story_file(path: Path | str) -> dict:
    """
    Read a raw story document from a .json, .yaml or .yml file.

    Raises:
        DocumentInvalid: If the file can't be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentInvalid(f"Cannot read story file {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DocumentInvalid(f"Cannot parse story file {path}: {e}") from e

    if not isinstance(data, dict):
        raise DocumentInvalid(f"Story file {path} does not contain an object")
    return data
