"""Save slots: one SaveFile per character name, kept in a single JSON blob.

The blob lives in a namespaced key-value store (`BlobStore`) under a fixed
key. Its value is a JSON object mapping character name → SaveFile:

    {
      "Jon": {"character": {...}, "history": [...], "currentScene": {...},
              "turnCount": 4, "lastSaved": 1760000000000},
      ...
    }

Persistence is best effort. A missing or malformed blob reads as an empty
store, malformed entries are skipped, and failed writes are logged and
reported through the return value instead of raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from throne_saga.models import SaveFile

logger = logging.getLogger(__name__)

SAVES_KEY = "got_saves_v2"


# ---------------------------------------------------------------------------
# Blob stores
# ---------------------------------------------------------------------------

class BlobStore(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class MemoryBlobStore:
    """In-process blob store. Contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._blobs: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._blobs.get(key)

    def write(self, key: str, value: str) -> None:
        self._blobs[key] = value


class JsonFileBlobStore:
    """One file per key under a base directory: `{base}/{key}.json`."""

    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._base / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        self._path(key).write_text(value, encoding="utf-8")


# ---------------------------------------------------------------------------
# Save store
# ---------------------------------------------------------------------------

class SaveStore:
    def __init__(self, blobs: BlobStore, key: str = SAVES_KEY) -> None:
        self._blobs = blobs
        self._key = key

    def _read_raw(self) -> dict[str, Any]:
        try:
            text = self._blobs.read(self._key)
        except Exception as e:
            logger.warning("Failed to read saves from %r: %s", self._key, e)
            return {}
        if not text:
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Saves blob %r is not valid JSON, treating as empty: %s", self._key, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Saves blob %r is not an object, treating as empty", self._key)
            return {}
        return data

    def _write_raw(self, data: dict[str, Any]) -> None:
        self._blobs.write(self._key, json.dumps(data, indent=2, ensure_ascii=False))

    @staticmethod
    def _parse(name: str, raw: Any) -> SaveFile | None:
        try:
            return SaveFile.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed save %r: %s", name, e)
            return None

    def load_all(self) -> list[SaveFile]:
        """All valid saves, in stored order."""
        saves = []
        for name, raw in self._read_raw().items():
            save = self._parse(name, raw)
            if save is not None:
                saves.append(save)
        return saves

    def names(self) -> list[str]:
        return [s.character.name for s in self.load_all()]

    def get(self, name: str) -> SaveFile | None:
        raw = self._read_raw().get(name)
        if raw is None:
            return None
        return self._parse(name, raw)

    def save(self, save_file: SaveFile) -> bool:
        """Upsert by character name. Returns False if the write failed."""
        name = save_file.character.name
        data = self._read_raw()
        data[name] = save_file.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            self._write_raw(data)
        except Exception as e:
            logger.warning("Failed to save game for %r: %s", name, e)
            return False
        logger.info("Saved game for %r at turn %d", name, save_file.turn_count)
        return True

    def delete(self, name: str) -> bool:
        """Remove one save. Returns False when absent or the write failed."""
        data = self._read_raw()
        if name not in data:
            return False
        del data[name]
        try:
            self._write_raw(data)
        except Exception as e:
            logger.warning("Failed to delete save %r: %s", name, e)
            return False
        logger.info("Deleted save for %r", name)
        return True
