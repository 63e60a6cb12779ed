"""Tests for session persistence."""

import json
from datetime import datetime

import pytest

from storyloom.state import (
    CorruptSave,
    EventType,
    GameState,
    JsonSaveStore,
    NodeNotFound,
    SaveStore,
    Session,
    decode_record,
    decode_session,
    encode_session,
)


class TestCodec:
    """Test encode/decode of save records."""

    def test_round_trip(self, loaded_engine, document):
        loaded_engine.select_choice(0)
        session = loaded_engine.snapshot()
        restored = decode_session(encode_session(session), document)
        assert restored.node_id == session.node_id
        assert restored.state == session.state
        assert restored.document is document

    def test_record_fields(self, loaded_engine):
        when = datetime(2024, 5, 1, 12, 0, 0)
        data = json.loads(encode_session(loaded_engine.snapshot(), timestamp=when))
        assert set(data) == {"story_title", "current_node", "game_state", "timestamp"}
        assert data["story_title"] == "Into the Woods"
        assert data["current_node"] == "start"
        assert data["game_state"]["inventory"] == ["lantern"]
        assert data["timestamp"].startswith("2024-05-01T12:00:00")

    def test_extra_categories_round_trip(self, document):
        state = GameState(stats={"hp": 1})
        state.category("reputation")["guild"] = 3
        session = Session(node_id="start", state=state, document=document)
        restored = decode_session(encode_session(session), document)
        assert restored.state.category("reputation", create=False) == {"guild": 3}

    @pytest.mark.parametrize("payload", [
        b"not json at all",
        b"{}",
        b'{"story_title": "x"}',
        b'{"story_title": "x", "current_node": "start", "game_state": []}',
        b"\xff\xfe\x00",
        b"[]",
    ])
    def test_corrupt_payloads(self, payload):
        with pytest.raises(CorruptSave):
            decode_record(payload)

    def test_missing_node(self, document):
        payload = json.dumps({
            "story_title": "Into the Woods",
            "current_node": "deleted_node",
            "game_state": {},
            "timestamp": "2024-01-01T00:00:00",
        })
        with pytest.raises(NodeNotFound):
            decode_session(payload, document)

    def test_title_mismatch_still_restores(self, document):
        payload = json.dumps({
            "story_title": "Another Story",
            "current_node": "forest",
            "game_state": {"flags": {"x": True}},
            "timestamp": "2024-01-01T00:00:00",
        })
        session = decode_session(payload, document)
        assert session.node_id == "forest"
        assert session.state.flags == {"x": True}


class TestEngineSaveRestore:
    """Test save/restore through the engine."""

    def test_save_and_restore(self, loaded_engine):
        data = loaded_engine.save()
        loaded_engine.select_choice(0)
        assert loaded_engine.current_node_id == "forest"

        loaded_engine.restore_bytes(data)
        assert loaded_engine.current_node_id == "start"
        assert "left_start" not in loaded_engine.state.flags

    def test_restore_does_not_rerun_entry_effects(self, engine, branching_document):
        engine.load(branching_document)
        engine.select_choice(0)
        assert engine.state.variables["visits"] == 1
        data = engine.save()
        engine.restore_bytes(data)
        assert engine.current_node_id == "hall"
        assert engine.state.variables["visits"] == 1

    def test_corrupt_restore_keeps_position(self, loaded_engine):
        loaded_engine.select_choice(0)
        with pytest.raises(CorruptSave):
            loaded_engine.restore_bytes(b"garbage")
        assert loaded_engine.current_node_id == "forest"
        assert loaded_engine.state.flags["left_start"] is True

    def test_mistyped_effects_do_not_poison_save(self, engine):
        engine.load({
            "startNode": "a",
            "nodes": {
                "a": {"choices": [{
                    "text": "brood",
                    "next": "b",
                    "effects": [
                        {"type": "modify_state", "target": "stats.mood", "operation": "set", "value": "grim"},
                        {"type": "modify_state", "target": "flags.count", "operation": "add", "value": 2},
                        {"type": "modify_state", "target": "variables.mood", "operation": "set", "value": "grim"},
                    ],
                }]},
                "b": {},
            },
        })
        engine.select_choice(0)
        session = engine.snapshot()

        engine.restore_bytes(engine.save())
        assert engine.current_node_id == "b"
        assert engine.state == session.state
        assert engine.state.variables == {"mood": "grim"}
        assert "mood" not in engine.state.stats

    def test_save_and_restore_events(self, loaded_engine):
        data = loaded_engine.save()
        loaded_engine.restore_bytes(data)
        bus = loaded_engine.bus
        assert bus.get_history(EventType.SESSION_SAVED)
        restored = bus.get_history(EventType.SESSION_RESTORED)
        assert restored[-1].data["node_id"] == "start"
        assert bus.get_history()[-1].type == EventType.NODE_CHANGED


class TestMemorySaveStore:
    """Test in-memory slot storage."""

    def test_is_save_store(self, memory_store):
        assert isinstance(memory_store, SaveStore)

    def test_save_load_delete(self, memory_store, loaded_engine):
        data = loaded_engine.save()
        memory_store.save("quick", data)
        assert memory_store.exists("quick")
        assert memory_store.load("quick") == data
        assert memory_store.delete("quick")
        assert memory_store.load("quick") is None
        assert not memory_store.delete("quick")

    def test_list_newest_first(self, memory_store, loaded_engine):
        memory_store.save("old", encode_session(loaded_engine.snapshot(), timestamp=datetime(2020, 1, 1)))
        memory_store.save("new", encode_session(loaded_engine.snapshot(), timestamp=datetime(2024, 1, 1)))
        memory_store.save("junk", b"not a save")
        slots = [s["slot"] for s in memory_store.list_all()]
        assert slots == ["new", "old"]

    def test_list_mixes_offset_and_naive_timestamps(self, memory_store, loaded_engine):
        memory_store.save("naive", encode_session(loaded_engine.snapshot(), timestamp=datetime(2020, 1, 1)))
        record = json.loads(encode_session(loaded_engine.snapshot()))
        record["timestamp"] = "2030-06-01T12:00:00Z"
        memory_store.save("zulu", json.dumps(record).encode("utf-8"))
        record["timestamp"] = "2025-06-01T12:00:00+02:00"
        memory_store.save("offset", json.dumps(record).encode("utf-8"))
        slots = [s["slot"] for s in memory_store.list_all()]
        assert slots == ["zulu", "offset", "naive"]


class TestJsonSaveStore:
    """Test file-based slot storage."""

    def test_save_and_load(self, tmp_path, loaded_engine):
        store = JsonSaveStore(tmp_path / "saves")
        data = loaded_engine.save()
        store.save("slot1", data)
        assert (tmp_path / "saves" / "slot1.json").exists()
        assert store.load("slot1") == data

    def test_backup_on_overwrite(self, tmp_path, loaded_engine):
        store = JsonSaveStore(tmp_path)
        first = loaded_engine.save()
        store.save("slot1", first)
        loaded_engine.select_choice(0)
        store.save("slot1", loaded_engine.save())
        assert (tmp_path / "slot1.json.bak").read_bytes() == first

    def test_missing_slot(self, tmp_path):
        assert JsonSaveStore(tmp_path).load("nothing") is None

    @pytest.mark.parametrize("slot", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_slot_names(self, tmp_path, slot):
        with pytest.raises(ValueError):
            JsonSaveStore(tmp_path).save(slot, b"{}")

    def test_list_skips_config_and_junk(self, tmp_path, loaded_engine):
        store = JsonSaveStore(tmp_path)
        store.save("quick", loaded_engine.save())
        (tmp_path / ".storyloom_config.json").write_text("{}", encoding="utf-8")
        (tmp_path / "junk.json").write_text("[not valid", encoding="utf-8")
        saves = store.list_all()
        assert [s["slot"] for s in saves] == ["quick"]
        assert saves[0]["current_node"] == "start"

    def test_delete(self, tmp_path, loaded_engine):
        store = JsonSaveStore(tmp_path)
        store.save("quick", loaded_engine.save())
        assert store.delete("quick")
        assert not store.exists("quick")
