"""
Story navigation engine.

StoryEngine is the navigation state machine: Unloaded until a document
is loaded, then AtNode(node_id) for the rest of its life. It composes
the guard evaluator, effect applicator and skill check resolver, and
publishes node/state notifications on its EventBus.

Every failure leaves the engine at its last valid node with GameState
untouched.
"""

import logging
import random
from dataclasses import dataclass
from typing import Any

from .state.converter import convert_document, location_hint
from .state.errors import ConditionNotMet, DocumentInvalid, InvalidChoiceIndex, NodeNotFound
from .state.event_bus import EventBus, EventType
from .state.schema import Choice, GameState, Session, StoryDocument, StoryNode
from .state.store import decode_session, encode_session
from .rules.effects import apply_effects
from .rules.guards import evaluate
from .systems.enhancement import (
    ENHANCE_THRESHOLD,
    EnhancementRequest,
    build_prompt_context,
    needs_enhancement,
)
from .tools.dice import RandomSource, SkillCheckResult, resolve_skill_check


logger = logging.getLogger(__name__)


@dataclass
class ChoiceOutcome:
    """What happened when a choice was selected."""
    index: int
    choice: Choice
    node: StoryNode
    check: SkillCheckResult | None = None


class StoryEngine:
    """
    Navigation state machine for one play session.

    Usage:
        engine = StoryEngine(rng=random.Random(7))
        engine.load(document)
        outcome = engine.select_choice(0)
    """

    def __init__(
        self,
        bus: EventBus | None = None,
        rng: RandomSource | None = None,
        strict: bool = False,
        enhance: bool = False,
        enhance_threshold: int = ENHANCE_THRESHOLD,
    ):
        """
        Args:
            bus: Event bus to publish on (a private one is created if omitted)
            rng: Random source for skill checks
            strict: Report unknown conditions/effects instead of failing open
            enhance: Publish text enhancement requests on node entry
            enhance_threshold: Text length below which a node qualifies
        """
        self.bus = bus or EventBus()
        self.rng: RandomSource = rng or random.Random()
        self.strict = strict
        self.enhance = enhance
        self.enhance_threshold = enhance_threshold

        self.session: Session | None = None
        self.pending_enhancement: EnhancementRequest | None = None
        self._text_overrides: dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self.session is not None

    @property
    def document(self) -> StoryDocument | None:
        return self.session.document if self.session else None

    @property
    def state(self) -> GameState | None:
        return self.session.state if self.session else None

    @property
    def current_node_id(self) -> str | None:
        return self.session.node_id if self.session else None

    @property
    def current_node(self) -> StoryNode | None:
        """Current node, with enhanced text if a replacement has been applied."""
        if self.session is None:
            return None
        return self._resolve_node(self.session.node_id)

    @property
    def location_hint(self) -> str:
        node = self.current_node
        return location_hint(node.title) if node else ""

    @property
    def speaker(self) -> str:
        node = self.current_node
        return node.speaker if node else ""

    def choice_is_available(self, choice: Choice, state: GameState | None = None) -> bool:
        """Read-only guard check, for disabling locked choices in a UI."""
        state = state if state is not None else self.state
        if state is None:
            return False
        return evaluate(choice.condition, state, strict=self.strict)

    def available_choices(self) -> list[tuple[int, Choice, bool]]:
        """(index, choice, available) for every choice of the current node."""
        node = self.current_node
        if node is None:
            return []
        return [(i, c, self.choice_is_available(c)) for i, c in enumerate(node.choices)]

    def node_is_available(self, node_id: str) -> bool:
        """Evaluate a node's own guard. Informational; entry is never blocked by it."""
        node = self._require_node(node_id)
        return evaluate(node.condition, self.state, strict=self.strict)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def load(self, document: StoryDocument | dict) -> StoryNode:
        """
        Start a new session at the document's start node.

        Raises:
            DocumentInvalid: No node table, or start node not in it
        """
        if not isinstance(document, StoryDocument):
            document, _ = convert_document(document)

        if not document.nodes:
            raise DocumentInvalid("Story document has no nodes")
        if document.start_node not in document.nodes:
            raise DocumentInvalid(f"Start node {document.start_node!r} is not in the node table")

        start = document.nodes[document.start_node]
        initial = document.new_state()
        entered = self._applied(start.effects, initial)

        self._cancel_enhancement()
        self._text_overrides.clear()
        self.session = Session(
            node_id=document.start_node,
            state=initial,
            document=document,
        )
        logger.info("Loaded story %r (%d nodes)", document.title, len(document.nodes))
        self._emit(EventType.STORY_LOADED, start_node=document.start_node)

        self._arrive(start, entered)
        return self.current_node

    def enter(self, node_id: str) -> StoryNode:
        """
        Move to a node and apply its entry effects.

        Raises:
            NodeNotFound: node_id is not in the node table
            EffectError: strict mode and an entry effect is invalid
        """
        self._require_loaded()
        node = self._require_node(node_id)

        self._arrive(node, self._applied(node.effects, self.session.state))
        return self.current_node

    def select_choice(self, index: int) -> ChoiceOutcome:
        """
        Select a choice of the current node.

        A skill check is resolved and reported but never blocks the choice.

        Raises:
            InvalidChoiceIndex: index outside the node's choices
            ConditionNotMet: the choice's guard is false
            NodeNotFound: the choice leads to a node that doesn't exist
            EffectError: strict mode and a choice or entry effect is invalid
        """
        self._require_loaded()
        node = self._require_node(self.session.node_id)

        if not 0 <= index < len(node.choices):
            raise InvalidChoiceIndex(index, len(node.choices))

        choice = node.choices[index]
        if choice.condition and not evaluate(choice.condition, self.session.state, strict=self.strict):
            self._emit(EventType.CHOICE_REJECTED, index=index, condition=choice.condition)
            raise ConditionNotMet(index, choice.condition)

        target = self._require_node(choice.next) if choice.next else None

        # Both effect lists run on copies; nothing is committed until they all apply
        after_choice = self._applied(choice.effects, self.session.state)
        after_entry = self._applied(target.effects, after_choice) if target else after_choice

        check = None
        if choice.skill_check is not None:
            check = resolve_skill_check(choice.skill_check, self.session.state, self.rng)
            logger.info(
                "Skill check %s: %d + %d = %d vs %d (%s)",
                check.skill, check.skill_value, check.roll, check.total,
                check.difficulty, check.narrative,
            )
            self._emit(EventType.SKILL_CHECK_RESOLVED, index=index, result=check)

        self.session.state = after_choice
        self._emit_state_changed()

        if target is not None:
            self._arrive(target, after_entry)

        return ChoiceOutcome(index=index, choice=choice, node=self.current_node, check=check)

    def restore(self, session: Session) -> StoryNode:
        """
        Install a previously saved session. Entry effects are not re-run.

        Raises:
            NodeNotFound: The session's node isn't in its document
        """
        if session.node_id not in session.document.nodes:
            raise NodeNotFound(session.node_id)

        self._cancel_enhancement()
        self._text_overrides.clear()
        self.session = Session(
            node_id=session.node_id,
            state=session.state.model_copy(deep=True),
            document=session.document,
        )
        self._emit(EventType.SESSION_RESTORED, node_id=session.node_id)
        self._emit_state_changed()
        self._maybe_request_enhancement(self.current_node)
        self._emit_node_changed()
        return self.current_node

    def save(self) -> bytes:
        """Encode the current session as a save record."""
        data = encode_session(self.snapshot())
        self._emit(EventType.SESSION_SAVED, node_id=self.session.node_id)
        return data

    def restore_bytes(self, data: bytes | str) -> StoryNode:
        """
        Decode a save record against the loaded document and restore it.

        Raises:
            CorruptSave: Unreadable payload
            NodeNotFound: Recorded node no longer in the document
        """
        self._require_loaded()
        return self.restore(decode_session(data, self.session.document))

    def snapshot(self) -> Session:
        """Copy of the current session, safe to serialize or hold on to."""
        self._require_loaded()
        return Session(
            node_id=self.session.node_id,
            state=self.session.state.snapshot(),
            document=self.session.document,
        )

    # -------------------------------------------------------------------------
    # Text enhancement
    # -------------------------------------------------------------------------

    def apply_enhancement(self, request: EnhancementRequest, text: str) -> bool:
        """
        Apply replacement text for a node.

        Returns False (and discards the text) if the request was cancelled
        or the player has since moved to another node.
        """
        if (
            request.cancelled
            or self.session is None
            or request.node_id != self.session.node_id
        ):
            logger.debug("Discarding stale enhancement %s for node %s", request.id, request.node_id)
            self._emit(EventType.ENHANCEMENT_DISCARDED, request=request)
            return False

        self._text_overrides[request.node_id] = text
        if self.pending_enhancement is request:
            self.pending_enhancement = None
        self._emit(EventType.ENHANCEMENT_APPLIED, request=request)
        self._emit_node_changed()
        return True

    def _maybe_request_enhancement(self, node: StoryNode) -> None:
        self._cancel_enhancement()
        if not self.enhance or node.id in self._text_overrides:
            return
        if not needs_enhancement(node, self.enhance_threshold):
            return

        request = EnhancementRequest(
            node_id=node.id,
            context=build_prompt_context(node, self.session.state, self.session.document),
        )
        self.pending_enhancement = request
        self._emit(EventType.ENHANCEMENT_REQUESTED, request=request)

    def _cancel_enhancement(self) -> None:
        if self.pending_enhancement is not None:
            self.pending_enhancement.cancel()
            self.pending_enhancement = None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _applied(self, effects, state: GameState) -> GameState:
        """Copy of state with effects applied; state itself is never touched."""
        if not effects:
            return state
        return apply_effects(effects, state.snapshot(), strict=self.strict)

    def _arrive(self, node: StoryNode, state: GameState) -> None:
        self.session.node_id = node.id
        if node.effects:
            self.session.state = state
            self._emit_state_changed()

        self._maybe_request_enhancement(node)
        self._emit_node_changed()

    def _require_loaded(self) -> None:
        if self.session is None:
            raise DocumentInvalid("No story loaded")

    def _require_node(self, node_id: str) -> StoryNode:
        node = self.session.document.get_node(node_id) if self.session else None
        if node is None:
            raise NodeNotFound(node_id)
        return node

    def _resolve_node(self, node_id: str) -> StoryNode:
        node = self._require_node(node_id)
        override = self._text_overrides.get(node_id)
        if override is None:
            return node
        return node.model_copy(update={"text": override})

    def _emit(self, event_type: EventType, **data: Any) -> None:
        title = self.session.document.title if self.session else ""
        self.bus.emit(event_type, story_title=title, **data)

    def _emit_state_changed(self) -> None:
        self._emit(EventType.STATE_CHANGED, state=self.session.state.snapshot())

    def _emit_node_changed(self) -> None:
        node = self.current_node
        self._emit(EventType.NODE_CHANGED, node_id=node.id, node=node)
