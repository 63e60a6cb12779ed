"""
Pytest fixtures for storyloom tests.

Provides sample story documents, a deterministic roll source, an
in-memory save store and a mock LLM client for isolated testing.
"""

import pytest

from storyloom.engine import StoryEngine
from storyloom.llm import MockLLMClient
from storyloom.state import MemorySaveStore, convert_document


class FixedRoll:
    """Random source that always rolls the same value."""

    def __init__(self, value: int = 10):
        self.value = value
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        return self.value


LONG_TEXT = (
    "You stand at the edge of the village as the evening bell rings out "
    "across the fields. The road north disappears into the trees."
)


@pytest.fixture
def raw_story():
    """Minimal story: start -> forest, leaving sets a flag."""
    return {
        "title": "Into the Woods",
        "author": "Test Author",
        "description": "A short walk.",
        "startNode": "start",
        "initialState": {
            "stats": {"strength": 5},
            "inventory": ["lantern"],
        },
        "nodes": {
            "start": {
                "type": "story",
                "title": "Village Gate",
                "text": LONG_TEXT,
                "choices": [
                    {
                        "text": "go",
                        "next": "forest",
                        "effects": [{"type": "set_flag", "flag": "left_start", "value": True}],
                    },
                ],
            },
            "forest": {
                "type": "story",
                "title": "Dark Forest",
                "text": "You are in the forest. The path ends here among the old oaks.",
                "choices": [],
            },
        },
    }


@pytest.fixture
def raw_branching_story():
    """Story exercising guards, skill checks, entry effects and a dangling target."""
    return {
        "title": "The Tower",
        "startNode": "gate",
        "initialState": {
            "stats": {"strength": 5, "wisdom": 10},
            "inventory": [],
            "flags": {},
        },
        "nodes": {
            "gate": {
                "title": "Tower Gate",
                "text": LONG_TEXT,
                "choices": [
                    {
                        "text": "Force the door [Strength >= 19]",
                        "next": "hall",
                        "effects": [{"type": "modify_state", "target": "stats.strength", "operation": "add", "value": 1}],
                    },
                    {
                        "text": "Use the key",
                        "next": "hall",
                        "condition": "inventory.has(\"key\")",
                    },
                    {
                        "text": "Step into the void",
                        "next": "nowhere",
                        "effects": [{"type": "set_flag", "flag": "fell"}],
                    },
                    {
                        "text": "Pick up the key",
                        "next": "gate",
                        "effects": [{"type": "add_item", "item": "key"}],
                    },
                ],
            },
            "hall": {
                "title": "Great Hall",
                "text": LONG_TEXT,
                "effects": [
                    {"type": "modify_state", "target": "variables.visits", "operation": "add", "value": 1},
                ],
                "choices": [
                    {"text": "Read the runes", "next": "library", "condition": "stats.wisdom >= 10"},
                    {"text": "Back out", "next": "gate"},
                ],
            },
            "library": {
                "title": "Library",
                "text": "Dust.",
                "choices": [],
            },
        },
    }


@pytest.fixture
def document(raw_story):
    """Converted sample document."""
    doc, _ = convert_document(raw_story)
    return doc


@pytest.fixture
def branching_document(raw_branching_story):
    doc, _ = convert_document(raw_branching_story)
    return doc


@pytest.fixture
def fixed_roll():
    """Roll source that always rolls 15."""
    return FixedRoll(15)


@pytest.fixture
def engine(fixed_roll):
    """Engine with a deterministic roll source, nothing loaded."""
    return StoryEngine(rng=fixed_roll)


@pytest.fixture
def loaded_engine(engine, document):
    """Engine at the start node of the sample story."""
    engine.load(document)
    return engine


@pytest.fixture
def memory_store():
    """In-memory save store for testing."""
    return MemorySaveStore()


@pytest.fixture
def mock_llm():
    """Mock LLM client with a single canned response."""
    return MockLLMClient(responses=["The trees close in around you, whispering."])


@pytest.fixture
def make_roll():
    """Factory for fixed roll sources."""
    return FixedRoll
