"""Health check endpoint."""

from fastapi import APIRouter

from backend import services

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Health check with the configured model names."""
    settings = services.settings()
    return {"status": "ok", "textModel": settings.text_model, "imageModel": settings.image_model}
