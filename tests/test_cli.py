"""Tests for the terminal play loop."""

import json

import pytest

from storyloom.engine import StoryEngine
from storyloom.interface.cli import PlaySession, build_parser, build_session, merge_args
from storyloom.interface.config import DEFAULT_CONFIG
from storyloom.systems.enhancement import NarrativeEnhancer


@pytest.fixture
def session(loaded_engine, memory_store):
    return PlaySession(loaded_engine, memory_store)


class TestPlaySession:
    """Test input handling."""

    def test_number_selects_choice(self, session):
        assert session.handle("1")
        assert session.engine.current_node_id == "forest"

    def test_bad_number_keeps_playing(self, session):
        assert session.handle("9")
        assert session.engine.current_node_id == "start"

    def test_text_is_rejected(self, session):
        assert session.handle("go north")
        assert session.engine.current_node_id == "start"

    def test_blank_line(self, session):
        assert session.handle("   ")

    def test_quit(self, session):
        assert session.handle("/quit") is False
        assert session.handle("/exit") is False

    def test_save_and_load(self, session, memory_store):
        session.handle("/save")
        assert memory_store.exists("quick")
        session.handle("1")
        session.handle("/load quick")
        assert session.engine.current_node_id == "start"

    def test_named_slot(self, session, memory_store):
        session.handle("/save checkpoint")
        assert memory_store.exists("checkpoint")

    def test_load_empty_slot(self, session):
        assert not session.load("missing")
        assert session.engine.current_node_id == "start"

    def test_load_corrupt_slot(self, session, memory_store):
        memory_store.save("bad", b"garbage")
        assert not session.load("bad")

    def test_info_commands(self, session):
        for command in ("/help", "/state", "/saves", "/bogus"):
            assert session.handle(command)

    def test_enhancement_fulfilled_on_refresh(self, memory_store, mock_llm):
        engine = StoryEngine(enhance=True)
        play = PlaySession(engine, memory_store, NarrativeEnhancer(mock_llm))
        engine.load({"startNode": "a", "nodes": {"a": {"text": "Short."}}})
        play.refresh()
        assert engine.current_node.text == "The trees close in around you, whispering."


class TestSetup:
    """Test argument parsing and wiring."""

    def test_play_arguments(self):
        args = build_parser().parse_args(["play", "story.json", "--seed", "7", "--strict"])
        assert args.command == "play"
        assert args.story == "story.json"
        assert args.seed == 7
        assert args.strict is True

    def test_merge_args(self):
        args = build_parser().parse_args(["play", "s.json", "--backend", "ollama", "--model", "m"])
        config = merge_args(DEFAULT_CONFIG.copy(), args)
        assert config["backend"] == "ollama"
        assert config["enhance"] is True
        assert config["model"] == "m"
        assert config["strict"] is False

    def test_build_session(self, tmp_path, raw_story):
        story = tmp_path / "story.json"
        story.write_text(json.dumps(raw_story), encoding="utf-8")
        config = DEFAULT_CONFIG.copy()
        config["seed"] = 3

        play = build_session(story, config, tmp_path / "saves")
        assert play.engine.current_node_id == "start"
        assert play.enhancer is None
        play.handle("1")
        play.handle("/save")
        assert (tmp_path / "saves" / "quick.json").exists()
