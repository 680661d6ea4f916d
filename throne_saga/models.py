"""Core domain models.

The state machine, the save store and the HTTP layer all operate on these
types. Pydantic validates every value that crosses a boundary: story nodes
come from an LLM and are untrusted, saves come from disk.

Wire names follow the browser client (`currentScene`, `turnCount`, ...);
Python code uses the snake_case attribute names. Dump with `by_alias=True`
when writing JSON for a client or for the save blob.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class House(str, Enum):
    STARK = "Stark"
    LANNISTER = "Lannister"
    TARGARYEN = "Targaryen"
    BARATHEON = "Baratheon"
    GREYJOY = "Greyjoy"
    TYRELL = "Tyrell"


class GameStage(str, Enum):
    MENU = "menu"
    CREATION = "creation"
    PLAYING = "playing"
    GAME_OVER = "game_over"  # the character died
    VICTORY = "victory"  # the story ended with the character alive


TERMINAL_STAGES = frozenset({GameStage.GAME_OVER, GameStage.VICTORY})


class Character(BaseModel):
    """The player character."""

    name: str = Field(min_length=1)
    house: House
    bio: str = ""
    health: int = Field(default=100, ge=0, le=100)
    influence: int = Field(default=0, ge=0, le=100)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class GameOption(BaseModel):
    """One choice offered to the player."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    text: str


class StoryNode(BaseModel):
    """One generated scene: narrative, optional dialogue line, options, stat deltas."""

    narrative: str
    visual_description: str
    speaker: str | None = None
    dialogue: str | None = None
    options: list[GameOption]
    health_change: int = 0
    influence_change: int = 0
    is_game_over: bool = False
    game_over_reason: str | None = None

    @field_validator("speaker", "dialogue", "game_over_reason", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def dialogue_line(self) -> tuple[str, str] | None:
        """(speaker, text) when the node carries a complete dialogue line."""
        if self.speaker and self.dialogue:
            return self.speaker, self.dialogue
        return None


HistoryType = Literal["narrative", "dialogue", "choice"]


class HistoryEntry(BaseModel):
    """A single entry in the append-only story transcript."""

    type: HistoryType
    text: str
    speaker: str | None = None  # present on dialogue entries only

    @model_validator(mode="after")
    def _speaker_matches_type(self) -> "HistoryEntry":
        if self.type == "dialogue" and not self.speaker:
            raise ValueError("dialogue entries need a speaker")
        if self.type != "dialogue":
            self.speaker = None
        return self

    @classmethod
    def narrative(cls, text: str) -> "HistoryEntry":
        return cls(type="narrative", text=text)

    @classmethod
    def line(cls, speaker: str, text: str) -> "HistoryEntry":
        return cls(type="dialogue", speaker=speaker, text=text)

    @classmethod
    def choice(cls, text: str) -> "HistoryEntry":
        return cls(type="choice", text=text)


class GameState(BaseModel):
    """The live session aggregate. Never persisted directly; see SaveFile."""

    stage: GameStage = GameStage.MENU
    character: Character | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    current_scene: StoryNode | None = None
    turn_count: int = Field(default=0, ge=0)
    max_turns: int = Field(default=15, gt=0)
    current_act: str = "Prologue"
    npc_portraits: dict[str, str] = Field(default_factory=dict)
    scene_image: str | None = None


class SaveFile(BaseModel):
    """Resumable projection of a GameState, keyed by character name."""

    model_config = ConfigDict(populate_by_name=True)

    character: Character
    history: list[HistoryEntry]
    current_scene: StoryNode = Field(alias="currentScene")
    turn_count: int = Field(alias="turnCount", ge=0)
    last_saved: int = Field(alias="lastSaved")  # epoch milliseconds
