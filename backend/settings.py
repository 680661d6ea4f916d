"""Service settings read from the environment (.env is loaded by the app)."""

import os

from pydantic import BaseModel, Field

from throne_saga.config import GameConfig, load_game_config


class Settings(BaseModel):
    text_provider: str = "gemini"
    text_provider_url: str = ""
    text_model: str = "gemini-2.5-flash"
    image_provider: str = "gemini"
    image_provider_url: str = ""
    image_model: str = "gemini-2.5-flash-image"
    api_key: str = ""
    timeout: float = 120.0
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    game: GameConfig = Field(default_factory=GameConfig)


def load_settings() -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    origins = os.getenv("ALLOWED_ORIGINS", "*")
    return Settings(
        text_provider=os.getenv("TEXT_PROVIDER", "gemini"),
        text_provider_url=os.getenv("TEXT_PROVIDER_URL", ""),
        text_model=os.getenv("TEXT_MODEL", "gemini-2.5-flash"),
        image_provider=os.getenv("IMAGE_PROVIDER", "gemini"),
        image_provider_url=os.getenv("IMAGE_PROVIDER_URL", ""),
        image_model=os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image"),
        api_key=os.getenv("LLM_API_KEY") or os.getenv("GEMINI_API_KEY", ""),
        timeout=float(os.getenv("LLM_TIMEOUT", "120")),
        allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
        game=load_game_config(),
    )
