"""
Node text enhancement.

Short or explicitly marked node text can be regenerated by a text
generation backend. The engine decides *whether* a node qualifies and
publishes an EnhancementRequest keyed by node id; NarrativeEnhancer is
the collaborator that produces replacement text and hands it back.

A response is only applied if its request was not cancelled and the
node it targets is still current. Anything else is stale and dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from ..llm.base import LLMClient, Message
from ..state.converter import location_hint
from ..state.schema import GameState, StoryDocument, StoryNode

if TYPE_CHECKING:
    from ..engine import StoryEngine


logger = logging.getLogger(__name__)


ENHANCE_THRESHOLD = 50
REGENERATE_MARKER = "[REGENERATE]"

SYSTEM_PROMPT = (
    "You are the narrator of an interactive story. Rewrite the passage you are "
    "given into vivid prose of two to four paragraphs. Keep every fact, name and "
    "consequence in the passage. Do not offer choices and do not address the "
    "player about game mechanics. Reply with the passage text only."
)


def needs_enhancement(node: StoryNode, threshold: int = ENHANCE_THRESHOLD) -> bool:
    """Short text or an explicit regeneration marker qualifies a node."""
    text = node.text.strip()
    return len(text) < threshold or REGENERATE_MARKER in node.text


def strip_markers(text: str) -> str:
    return text.replace(REGENERATE_MARKER, "").strip()


def build_prompt_context(node: StoryNode, state: GameState, document: StoryDocument) -> dict:
    """Everything the generator needs to know about the node, as plain data."""
    return {
        "story_title": document.title,
        "story_description": document.description,
        "node_id": node.id,
        "title": node.title,
        "speaker": node.speaker,
        "location": location_hint(node.title),
        "text": strip_markers(node.text),
        "choices": [c.text for c in node.choices],
        "stats": dict(state.stats),
        "inventory": list(state.inventory),
        "flags": {k: v for k, v in state.flags.items() if v},
    }


@dataclass
class EnhancementRequest:
    """A pending text replacement for one node."""
    node_id: str
    context: dict
    id: str = field(default_factory=lambda: str(uuid4())[:8])
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class NarrativeEnhancer:
    """
    Produces replacement node text with an LLM backend.

    Usage:
        enhancer = NarrativeEnhancer(client)
        request = engine.pending_enhancement
        if request:
            enhancer.fulfil(engine, request)          # blocking
            await enhancer.fulfil_async(engine, request)  # from an event loop
    """

    def __init__(
        self,
        client: LLMClient,
        temperature: float = 0.8,
        max_tokens: int = 600,
    ):
        self.client = client
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_messages(self, request: EnhancementRequest) -> list[Message]:
        ctx = request.context
        lines = [f"Story: {ctx.get('story_title') or 'Untitled'}"]
        if ctx.get("story_description"):
            lines.append(f"Premise: {ctx['story_description']}")
        if ctx.get("title"):
            lines.append(f"Scene: {ctx['title']}")
        if ctx.get("location"):
            lines.append(f"Location: {ctx['location']}")
        lines.append(f"Speaker: {ctx.get('speaker', '')}")
        if ctx.get("inventory"):
            lines.append(f"Player carries: {', '.join(ctx['inventory'])}")
        if ctx.get("choices"):
            lines.append("The scene must lead naturally to these options:")
            lines.extend(f"- {choice}" for choice in ctx["choices"])
        lines.append("")
        lines.append("Passage:")
        lines.append(ctx.get("text") or "(empty)")
        return [Message(role="user", content="\n".join(lines))]

    def generate(self, request: EnhancementRequest) -> str | None:
        """Blocking generation. Returns None if the backend fails or returns nothing."""
        try:
            response = self.client.chat(
                self.build_messages(request),
                system=SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.warning("Enhancement for node %s failed: %s", request.node_id, e)
            return None

        text = response.content.strip()
        return text or None

    async def generate_async(self, request: EnhancementRequest) -> str | None:
        return await asyncio.to_thread(self.generate, request)

    def fulfil(self, engine: "StoryEngine", request: EnhancementRequest) -> bool:
        """Generate and apply. Returns True if the engine accepted the text."""
        text = self.generate(request)
        if text is None:
            return False
        return engine.apply_enhancement(request, text)

    async def fulfil_async(self, engine: "StoryEngine", request: EnhancementRequest) -> bool:
        text = await self.generate_async(request)
        if text is None:
            return False
        return engine.apply_enhancement(request, text)
