"""Save slot endpoints (one slot per character name)."""

from fastapi import APIRouter, HTTPException

from backend import storage
from throne_saga.models import SaveFile

router = APIRouter()


@router.get("/saves")
async def list_saves():
    """List all save slots."""
    return storage.list_saves()


@router.get("/saves/{name}")
async def get_save(name: str):
    """Get a single save slot by character name."""
    save = storage.get_save(name)
    if save is None:
        raise HTTPException(404, "Save not found")
    return save


@router.put("/saves/{name}")
async def put_save(name: str, body: SaveFile):
    """Create or overwrite the save slot of a character."""
    if body.character.name != name:
        raise HTTPException(400, "Character name does not match the save slot")
    if body.current_scene.is_game_over or body.character.health <= 0:
        raise HTTPException(400, "Finished games cannot be saved")
    if not storage.put_save(body):
        raise HTTPException(500, "Failed to write save")
    return {"ok": True}


@router.delete("/saves/{name}")
async def delete_save(name: str):
    """Delete a save slot."""
    if not storage.delete_save(name):
        raise HTTPException(404, "Save not found")
    return {"ok": True}
