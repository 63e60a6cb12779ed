"""
Command-line interface for storyloom.

Main entry point and play loop. The loop is a presentation listener:
it reacts to engine events and feeds player input back as choice
selections and slash commands.
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from rich.prompt import Prompt

from ..engine import StoryEngine
from ..llm import create_llm_client
from ..state.converter import convert_document, load_story_file
from ..state.errors import StoryError
from ..state.event_bus import EventType, GameEvent
from ..state.store import JsonSaveStore, SaveStore
from ..systems.enhancement import NarrativeEnhancer
from .config import Config, load_config
from .renderer import (
    THEME,
    console,
    render_check,
    render_choices,
    render_error,
    render_node,
    render_saves,
    render_state,
    render_system,
    show_help,
    show_title,
)


logger = logging.getLogger(__name__)

DEFAULT_SLOT = "quick"


class PlaySession:
    """
    Glue between the engine, a save store and the terminal.

    handle() takes one line of player input and returns False when the
    player wants to quit.
    """

    def __init__(
        self,
        engine: StoryEngine,
        store: SaveStore,
        enhancer: NarrativeEnhancer | None = None,
    ):
        self.engine = engine
        self.store = store
        self.enhancer = enhancer
        self._node_dirty = False

        engine.bus.on(EventType.NODE_CHANGED, self._on_node_changed)
        engine.bus.on(EventType.SKILL_CHECK_RESOLVED, self._on_skill_check)

    # -------------------------------------------------------------------------
    # Event listeners
    # -------------------------------------------------------------------------

    def _on_node_changed(self, event: GameEvent) -> None:
        self._node_dirty = True

    def _on_skill_check(self, event: GameEvent) -> None:
        render_check(event.data["result"])

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    def handle(self, line: str) -> bool:
        """Process one line of input. Returns False to quit."""
        line = line.strip()
        if not line:
            return True

        if line.startswith("/"):
            keep_going = self._command(line)
        elif line.isdigit():
            self._choose(int(line) - 1)
            keep_going = True
        else:
            render_error("Enter a choice number or a /command (try /help)")
            keep_going = True

        self.refresh()
        return keep_going

    def refresh(self) -> None:
        """Fulfil any pending enhancement, then redraw the node if it changed."""
        request = self.engine.pending_enhancement
        if request is not None and self.enhancer is not None:
            with console.status(f"[{THEME['dim']}]The narrator gathers their thoughts...[/{THEME['dim']}]"):
                self.enhancer.fulfil(self.engine, request)

        if self._node_dirty:
            self._node_dirty = False
            render_node(self.engine.current_node, self.engine.location_hint)
            render_choices(self.engine.available_choices())

    def _choose(self, index: int) -> None:
        try:
            self.engine.select_choice(index)
        except StoryError as e:
            render_error(str(e))

    def _command(self, line: str) -> bool:
        parts = line.split()
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else DEFAULT_SLOT

        if cmd in ("/quit", "/exit"):
            return False
        if cmd == "/help":
            show_help()
        elif cmd == "/state":
            render_state(self.engine.state)
        elif cmd == "/saves":
            render_saves(self.store.list_all())
        elif cmd == "/save":
            self.save(arg)
        elif cmd == "/load":
            self.load(arg)
        else:
            render_error(f"Unknown command: {cmd}")
        return True

    def save(self, slot: str) -> bool:
        try:
            self.store.save(slot, self.engine.save())
        except (OSError, ValueError) as e:
            render_error(f"Save failed: {e}")
            return False
        render_system(f"Saved to slot '{slot}'")
        return True

    def load(self, slot: str) -> bool:
        try:
            data = self.store.load(slot)
        except (OSError, ValueError) as e:
            render_error(f"Load failed: {e}")
            return False
        if data is None:
            render_error(f"No save in slot '{slot}'")
            return False

        try:
            self.engine.restore_bytes(data)
        except StoryError as e:
            render_error(f"Load failed: {e}")
            return False
        render_system(f"Loaded slot '{slot}'")
        return True


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="storyloom - branching story engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    play = subparsers.add_parser("play", help="Play a story in the terminal")
    play.add_argument("story", help="Story document (.json, .yaml or .yml)")
    play.add_argument("--saves", default="saves", help="Saves directory (default: saves)")
    play.add_argument("--load", metavar="SLOT", help="Resume from a save slot")
    play.add_argument("--seed", type=int, help="Seed for skill check rolls")
    play.add_argument("--strict", action="store_true", help="Report unknown conditions and effects")
    play.add_argument(
        "--backend",
        choices=["none", "lmstudio", "ollama", "openai"],
        help="Text enhancement backend",
    )
    play.add_argument("--model", help="Model for the enhancement backend")
    play.add_argument("--base-url", help="Override the backend URL")
    play.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def merge_args(config: Config, args: argparse.Namespace) -> Config:
    """Command-line flags win over the saved config."""
    merged = dict(config)
    if args.seed is not None:
        merged["seed"] = args.seed
    if args.strict:
        merged["strict"] = True
    if args.backend:
        merged["backend"] = args.backend
        merged["enhance"] = args.backend != "none"
    if args.model:
        merged["model"] = args.model
    if args.base_url:
        merged["base_url"] = args.base_url
    return merged


def build_session(story_path: Path | str, config: Config, saves_dir: Path | str) -> PlaySession:
    """Load the story and wire engine, store and enhancer together."""
    document, report = convert_document(load_story_file(story_path))
    for warning in report.warnings:
        logger.debug("conversion: %s", warning)

    enhancer = None
    if config.get("enhance"):
        name, client = create_llm_client(
            config.get("backend", "none"),
            base_url=config.get("base_url"),
            model=config.get("model"),
        )
        if client is not None:
            enhancer = NarrativeEnhancer(client)

    engine = StoryEngine(
        rng=random.Random(config.get("seed")),
        strict=config.get("strict", False),
        enhance=enhancer is not None,
    )
    session = PlaySession(engine, JsonSaveStore(saves_dir), enhancer)
    engine.load(document)
    return session


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    config = merge_args(load_config(args.saves), args)

    try:
        session = build_session(args.story, config, args.saves)
    except StoryError as e:
        render_error(str(e))
        return 1

    document = session.engine.document
    show_title(document.title, document.author, document.description)

    if args.load:
        session.load(args.load)
    session.refresh()

    while True:
        try:
            line = Prompt.ask(f"[{THEME['accent']}]>[/{THEME['accent']}]", console=console)
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not session.handle(line):
            break

    return 0


if __name__ == "__main__":
    sys.exit(main())
