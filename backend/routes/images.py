"""Scene image and NPC portrait endpoints.

Images are optional: once the body validates, these endpoints always answer
200, with {"image": null} when nothing could be generated.
"""

import logging

from fastapi import APIRouter

from backend import services

from .models import ImageResponse, PortraitBody, SceneImageBody

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/images/scene", response_model=ImageResponse)
async def scene_image(body: SceneImageBody):
    """Illustrate a scene from its visual description."""
    try:
        image = await services.illustrator().scene_image(body.visual_description)
    except Exception as e:
        logger.warning("Scene image generation failed (non-fatal): %s", e)
        image = None
    return ImageResponse(image=image)


@router.post("/images/portrait", response_model=ImageResponse)
async def portrait(body: PortraitBody):
    """Paint a portrait of a named NPC."""
    try:
        image = await services.illustrator().portrait(body.name)
    except Exception as e:
        logger.warning("Portrait generation failed (non-fatal): %s", e)
        image = None
    return ImageResponse(image=image)
