"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from throne_saga.models import Character, HistoryEntry


class StartBody(BaseModel):
    character: Character


class TurnBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    character: Character
    history: list[HistoryEntry]
    last_choice: str = Field(alias="lastChoice", min_length=1)
    turn_count: int = Field(alias="turnCount", ge=0)
    max_turns: int | None = Field(default=None, alias="maxTurns", gt=0)


class SceneImageBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    visual_description: str = Field(alias="visualDescription", min_length=1)


class PortraitBody(BaseModel):
    name: str = Field(min_length=1)


class ImageResponse(BaseModel):
    image: str | None = None
