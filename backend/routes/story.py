"""Story generation endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from backend import services
from throne_saga.story import fallback_node

from .models import StartBody, TurnBody

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/story/start")
async def story_start(body: StartBody):
    """Generate the opening scene for a new character."""
    try:
        node = await services.story_teller().generate_start(body.character)
    except Exception as e:
        logger.warning("Failed to generate starting scene: %s", e)
        raise HTTPException(500, "Failed to generate starting scene")
    return node.model_dump(mode="json")


@router.post("/story/turn")
async def story_turn(body: TurnBody):
    """Generate the next scene after the player's choice.

    Collaborator failures come back as the fallback node, not as errors.
    """
    max_turns = body.max_turns or services.settings().game.max_turns
    try:
        node = await services.story_teller().generate_turn(
            body.history, body.character, body.last_choice, body.turn_count, max_turns,
        )
    except Exception:
        logger.exception("Failed to generate next scene, using fallback")
        node = fallback_node()
    return node.model_dump(mode="json")
