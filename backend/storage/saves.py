"""Save slot access for the API and MCP layers (JSON-ready dicts)."""

from typing import Any

from throne_saga.models import SaveFile

from .core import save_store


def _dump(save: SaveFile) -> dict[str, Any]:
    return save.model_dump(mode="json", by_alias=True, exclude_none=True)


def summarize(save: SaveFile) -> dict[str, Any]:
    """Short listing entry for a save slot."""
    return {
        "name": save.character.name,
        "house": save.character.house.value,
        "health": save.character.health,
        "influence": save.character.influence,
        "turnCount": save.turn_count,
        "lastSaved": save.last_saved,
    }


def list_saves() -> list[dict[str, Any]]:
    return [_dump(s) for s in save_store().load_all()]


def list_save_summaries() -> list[dict[str, Any]]:
    return [summarize(s) for s in save_store().load_all()]


def get_save(name: str) -> dict[str, Any] | None:
    save = save_store().get(name)
    return _dump(save) if save is not None else None


def put_save(save: SaveFile) -> bool:
    """Upsert a save slot. Returns False if the write failed."""
    return save_store().save(save)


def delete_save(name: str) -> bool:
    return save_store().delete(name)
