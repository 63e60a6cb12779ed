"""
Event bus for engine notifications.

Decouples the navigation engine from presentation, audio and media
listeners. Each engine owns its own bus; there is no global instance.

Usage:
    bus = EventBus()
    bus.on(EventType.NODE_CHANGED, view.on_node_changed)

    bus.emit(EventType.NODE_CHANGED, node_id="forest", node=node)

    def on_node_changed(event: GameEvent):
        print(f"Now at {event.data['node_id']}")

Listeners are held by weak reference: the bus never keeps a listener
alive on its own. Bound methods and plain functions are supported.
"""

import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Engine events that can be published."""

    # Lifecycle
    STORY_LOADED = "story.loaded"

    # Navigation
    NODE_CHANGED = "node.changed"
    STATE_CHANGED = "state.changed"
    CHOICE_REJECTED = "choice.rejected"
    SKILL_CHECK_RESOLVED = "skill_check.resolved"

    # Text enhancement
    ENHANCEMENT_REQUESTED = "enhancement.requested"
    ENHANCEMENT_APPLIED = "enhancement.applied"
    ENHANCEMENT_DISCARDED = "enhancement.discarded"

    # Persistence
    SESSION_SAVED = "session.saved"
    SESSION_RESTORED = "session.restored"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        story_title: Title of the story this event belongs to
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    story_title: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


def _make_ref(handler: EventHandler) -> Callable[[], EventHandler | None]:
    """Weak reference to a handler; builtins that can't be weakly referenced are kept strongly."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return weakref.WeakMethod(handler)
    try:
        return weakref.ref(handler)
    except TypeError:
        return lambda: handler


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    A listener that raises is logged and skipped; the rest still run.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[EventType, list[Callable[[], EventHandler | None]]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The type of event to listen for
            handler: Callback function that receives GameEvent
        """
        refs = self._listeners.setdefault(event_type, [])
        if handler not in self._live(event_type):
            refs.append(_make_ref(handler))

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe a handler from an event type."""
        refs = self._listeners.get(event_type, [])
        self._listeners[event_type] = [r for r in refs if r() is not None and r() != handler]

    def emit(self, event_type: EventType, story_title: str = "", **data) -> GameEvent:
        """
        Emit an event to all live subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, story_title=story_title)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        for handler in self._live(event_type):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in handler for %s", event_type.value)

        return event

    def _live(self, event_type: EventType) -> list[EventHandler]:
        """Resolve weak refs, pruning listeners that have been collected."""
        refs = self._listeners.get(event_type, [])
        live = []
        kept = []
        for ref in refs:
            handler = ref()
            if handler is not None:
                live.append(handler)
                kept.append(ref)
        if len(kept) != len(refs):
            self._listeners[event_type] = kept
        return live

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._live(event_type))
