"""FastAPI API endpoints.

Endpoint groups under /api: story (start, turn), images (scene, portrait),
saves (list, get, put, delete). The health check lives at the root
(/healthz) and is exported separately as `health_router`.
"""

from fastapi import APIRouter

from .health import router as health_router  # noqa: F401
from .images import router as images_router
from .saves import router as saves_router
from .story import router as story_router

router = APIRouter()
router.include_router(story_router)
router.include_router(images_router)
router.include_router(saves_router)
