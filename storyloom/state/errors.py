"""
Engine error taxonomy.

Every error here is locally recoverable: the engine stays at its last
valid node after raising any of them.
"""


class StoryError(Exception):
    """Base class for all engine errors."""


class DocumentInvalid(StoryError):
    """Raised when a story document has no node table or an unknown start node."""


class NodeNotFound(StoryError):
    """Raised when navigation or a save record references an unknown node id."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id!r}")


class InvalidChoiceIndex(StoryError):
    """Raised when a selected choice index is out of range."""

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(f"Choice index {index} out of range (node has {count} choices)")


class ConditionNotMet(StoryError):
    """Raised when a choice's guard evaluates false. The choice stays selectable."""

    def __init__(self, index: int, condition: str):
        self.index = index
        self.condition = condition
        super().__init__(f"Choice {index} is locked: {condition}")


class CorruptSave(StoryError):
    """Raised when a save payload cannot be decoded."""


class GuardSyntaxError(StoryError):
    """Strict mode only: a condition matched none of the guard forms."""


class EffectError(StoryError):
    """Strict mode only: an effect could not be applied."""
