"""
storyloom FastAPI server.

Wraps one StoryEngine and exposes it as a stateful REST service.

Endpoints:
- GET  /health  - Liveness check
- GET  /state   - Current node, choices and game state
- POST /choose  - Select a choice by index
- POST /save    - Save to a slot
- POST /load    - Restore from a slot
- GET  /saves   - List save slots
"""

import logging
import random
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..engine import StoryEngine
from ..state.converter import convert_document, load_story_file
from ..state.errors import (
    ConditionNotMet,
    CorruptSave,
    DocumentInvalid,
    EffectError,
    GuardSyntaxError,
    InvalidChoiceIndex,
    NodeNotFound,
    StoryError,
)
from ..state.schema import StoryDocument
from ..state.store import JsonSaveStore, SaveStore
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


logger = logging.getLogger(__name__)


# First match wins, so subclasses must precede StoryError
ERROR_STATUS: list[tuple[type[StoryError], int]] = [
    (InvalidChoiceIndex, 400),
    (NodeNotFound, 404),
    (ConditionNotMet, 409),
    (CorruptSave, 422),
    (DocumentInvalid, 422),
    (GuardSyntaxError, 422),
    (EffectError, 422),
    (StoryError, 400),
]


def status_for(error: StoryError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


class StoryAPI:
    """
    API backend for one play session.

    Holds the engine and save store between requests.
    """

    def __init__(
        self,
        story: StoryDocument | dict | Path | str,
        saves_dir: Path | str = "saves",
        seed: int | None = None,
        strict: bool = False,
        store: SaveStore | None = None,
    ):
        if isinstance(story, (str, Path)):
            story = load_story_file(story)
        if isinstance(story, dict):
            story, report = convert_document(story)
            for warning in report.warnings:
                logger.warning("conversion: %s", warning)

        self.engine = StoryEngine(rng=random.Random(seed), strict=strict)
        self.store = store if store is not None else JsonSaveStore(saves_dir)
        self.engine.load(story)

    # -------------------------------------------------------------------------
    # State Serialization
    # -------------------------------------------------------------------------

    def get_state(self) -> StateResponse:
        engine = self.engine
        node = engine.current_node

        choices = []
        for index, choice, available in engine.available_choices():
            check = choice.skill_check
            choices.append(ChoiceView(
                index=index,
                text=choice.text,
                available=available,
                condition=choice.condition,
                skill=check.skill if check else None,
                difficulty=check.difficulty if check else None,
            ))

        return StateResponse(
            story_title=engine.document.title,
            node=NodeView(
                id=node.id,
                kind=node.kind,
                title=node.title,
                text=node.text,
                speaker=node.speaker,
                location=engine.location_hint,
                is_ending=node.is_ending,
            ),
            choices=choices,
            game_state=engine.state.model_dump(mode="json"),
        )

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------

    def choose(self, index: int) -> ChooseResponse:
        outcome = self.engine.select_choice(index)
        check = None
        if outcome.check is not None:
            check = SkillCheckView(**outcome.check.to_dict())
        return ChooseResponse(check=check, state=self.get_state())

    def save(self, slot: str) -> SaveResponse:
        self.store.save(slot, self.engine.save())
        return SaveResponse(slot=slot)

    def load(self, slot: str) -> StateResponse | None:
        """Restore a slot. Returns None if the slot is empty."""
        data = self.store.load(slot)
        if data is None:
            return None
        self.engine.restore_bytes(data)
        return self.get_state()

    def list_saves(self) -> SavesResponse:
        return SavesResponse(saves=[SaveInfo(**meta) for meta in self.store.list_all()])


def create_app(
    story: StoryDocument | dict | Path | str,
    saves_dir: Path | str = "saves",
    seed: int | None = None,
    strict: bool = False,
    store: SaveStore | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Raises:
        DocumentInvalid: The story can't be read or has no usable start node
    """
    api = StoryAPI(story, saves_dir=saves_dir, seed=seed, strict=strict, store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Serving story %r", api.engine.document.title)
        yield
        logger.info("Shutting down at node %s", api.engine.current_node_id)

    app = FastAPI(
        title="storyloom API",
        description="REST API for playing a branching story",
        version="0.3.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store API instance for dependency injection
    app.state.api = api

    def get_api() -> StoryAPI:
        return app.state.api

    @app.exception_handler(StoryError)
    async def story_error_handler(request: Request, exc: StoryError):
        error = ErrorResponse(error=str(exc), code=type(exc).__name__)
        return JSONResponse(status_code=status_for(exc), content=error.model_dump())

    # -------------------------------------------------------------------------
    # REST Endpoints
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"ok": True, "service": "storyloom-api"}

    @app.get("/state", response_model=StateResponse)
    async def get_state(api: StoryAPI = Depends(get_api)):
        """Current node, its choices and the game state."""
        return api.get_state()

    @app.post("/choose", response_model=ChooseResponse)
    async def choose(request: ChooseRequest, api: StoryAPI = Depends(get_api)):
        """Select a choice of the current node."""
        return api.choose(request.index)

    @app.post("/save", response_model=SaveResponse)
    async def save(request: SlotRequest, api: StoryAPI = Depends(get_api)):
        """Save the session to a slot."""
        try:
            return api.save(request.slot)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @app.post("/load", response_model=StateResponse)
    async def load(request: SlotRequest, api: StoryAPI = Depends(get_api)):
        """Restore the session from a slot."""
        try:
            state = api.load(request.slot)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        if state is None:
            raise HTTPException(status_code=404, detail=f"No save in slot {request.slot!r}")
        return state

    @app.get("/saves", response_model=SavesResponse)
    async def list_saves(api: StoryAPI = Depends(get_api)):
        """List save slots, newest first."""
        return api.list_saves()

    return app
