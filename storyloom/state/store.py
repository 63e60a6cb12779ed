"""
Session persistence.

The codec turns a Session into a self-describing JSON save record and
back. Slot storage is separated from the codec for testability.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from .errors import CorruptSave, NodeNotFound
from .schema import SaveRecord, Session, StoryDocument


logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Codec
# -----------------------------------------------------------------------------

def encode_session(session: Session, timestamp: datetime | None = None) -> bytes:
    """Serialize a session to UTF-8 JSON bytes."""
    record = SaveRecord(
        story_title=session.document.title,
        current_node=session.node_id,
        game_state=session.state,
        timestamp=timestamp or datetime.now(),
    )
    return record.model_dump_json(indent=2).encode("utf-8")


def decode_record(data: bytes | str) -> SaveRecord:
    """
    Parse a save record.

    Raises:
        CorruptSave: Payload is not a structurally valid save record
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return SaveRecord.model_validate_json(data)
    except (UnicodeDecodeError, ValidationError) as e:
        raise CorruptSave(f"Unreadable save data: {e}") from e


def decode_session(data: bytes | str, document: StoryDocument) -> Session:
    """
    Rebuild a session against the currently loaded document.

    Raises:
        CorruptSave: Payload is not a structurally valid save record
        NodeNotFound: Recorded node no longer exists in the document
    """
    record = decode_record(data)

    if record.story_title != document.title:
        logger.warning(
            "Save was made for %r but %r is loaded; restoring anyway",
            record.story_title, document.title,
        )
    if record.current_node not in document.nodes:
        raise NodeNotFound(record.current_node)

    return Session(
        node_id=record.current_node,
        state=record.game_state,
        document=document,
    )


# -----------------------------------------------------------------------------
# Slot storage
# -----------------------------------------------------------------------------

@runtime_checkable
class SaveStore(Protocol):
    """
    Storage interface for encoded saves.

    Implementations:
    - JsonSaveStore: File-based persistence (production)
    - MemorySaveStore: In-memory storage (testing)
    """

    def save(self, slot: str, data: bytes) -> None:
        """Persist a save under a slot name."""
        ...

    def load(self, slot: str) -> bytes | None:
        """Load a save. Returns None if the slot is empty."""
        ...

    def delete(self, slot: str) -> bool:
        """Delete a slot. Returns True if deleted."""
        ...

    def list_all(self) -> list[dict]:
        """List slots with metadata, newest first."""
        ...

    def exists(self, slot: str) -> bool:
        ...


def _parse_timestamp(value) -> datetime:
    """Naive local time, so hand-edited offsets sort alongside our own saves."""
    if isinstance(value, str) and value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        timestamp = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return datetime(2000, 1, 1)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone().replace(tzinfo=None)
    return timestamp


def _slot_metadata(slot: str, data: bytes) -> dict | None:
    try:
        record = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(record, dict):
        return None

    timestamp = _parse_timestamp(record.get("timestamp"))

    return {
        "slot": slot,
        "story_title": record.get("story_title", ""),
        "current_node": record.get("current_node", ""),
        "timestamp": timestamp,
    }


class JsonSaveStore:
    """
    File-based save storage, one <slot>.json per slot.

    The previous save in a slot is kept as <slot>.json.bak.
    """

    def __init__(self, saves_dir: Path | str = "saves"):
        self.saves_dir = Path(saves_dir)
        self.saves_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        if not slot or any(c in slot for c in "/\\") or slot.startswith("."):
            raise ValueError(f"Invalid save slot name: {slot!r}")
        return self.saves_dir / f"{slot}.json"

    def save(self, slot: str, data: bytes) -> None:
        save_file = self._path(slot)

        if save_file.exists():
            backup = save_file.with_suffix(".json.bak")
            backup.write_bytes(save_file.read_bytes())

        save_file.write_bytes(data)
        logger.info("Saved slot %s to %s", slot, save_file)

    def load(self, slot: str) -> bytes | None:
        save_file = self._path(slot)
        if not save_file.exists():
            return None
        return save_file.read_bytes()

    def delete(self, slot: str) -> bool:
        save_file = self._path(slot)
        if save_file.exists():
            save_file.unlink()
            return True
        return False

    def list_all(self) -> list[dict]:
        saves = []
        for f in self.saves_dir.glob("*.json"):
            if f.name.startswith("."):
                continue
            meta = _slot_metadata(f.stem, f.read_bytes())
            if meta is not None:
                saves.append(meta)

        saves.sort(key=lambda x: x["timestamp"], reverse=True)
        return saves

    def exists(self, slot: str) -> bool:
        return self._path(slot).exists()


class MemorySaveStore:
    """
    In-memory save storage for testing.

    No file I/O - all data lives in memory.
    """

    def __init__(self):
        self.saves: dict[str, bytes] = {}

    def save(self, slot: str, data: bytes) -> None:
        self.saves[slot] = data

    def load(self, slot: str) -> bytes | None:
        return self.saves.get(slot)

    def delete(self, slot: str) -> bool:
        if slot in self.saves:
            del self.saves[slot]
            return True
        return False

    def list_all(self) -> list[dict]:
        saves = [
            meta
            for slot, data in self.saves.items()
            if (meta := _slot_metadata(slot, data)) is not None
        ]
        saves.sort(key=lambda x: x["timestamp"], reverse=True)
        return saves

    def exists(self, slot: str) -> bool:
        return slot in self.saves
