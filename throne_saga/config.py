"""Game configuration: pacing constants and the house table.

Defaults can be overridden through environment variables:

    MAX_TURNS        total turns in a game            (default 15)
    ACT_1_END        last turn of Act I                (default 5)
    ACT_2_END        last turn of Act II               (default 10)
    AUTOSAVE_EVERY   milestone auto-save interval      (default 5)
    CONTEXT_WINDOW   history entries sent to the LLM   (default 12)
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, model_validator

from throne_saga.acts import ActBoundaries
from throne_saga.models import House

DEFAULT_BIO = "An ambitious heir who seeks glory."

HOUSE_DATA: dict[House, dict] = {
    House.STARK: {
        "motto": "Winter is Coming",
        "starting_influence": 30,
        "npcs": ["Eddard Stark", "Catelyn Stark", "Robb Stark", "Jon Snow"],
    },
    House.LANNISTER: {
        "motto": "Hear Me Roar!",
        "starting_influence": 60,
        "npcs": ["Tywin Lannister", "Cersei Lannister", "Tyrion Lannister", "Jaime Lannister"],
    },
    House.TARGARYEN: {
        "motto": "Fire and Blood",
        "starting_influence": 40,
        "npcs": ["Daenerys Targaryen", "Viserys Targaryen", "Jorah Mormont"],
    },
    House.BARATHEON: {
        "motto": "Ours is the Fury",
        "starting_influence": 50,
        "npcs": ["Robert Baratheon", "Stannis Baratheon", "Renly Baratheon"],
    },
    House.GREYJOY: {
        "motto": "We Do Not Sow",
        "starting_influence": 25,
        "npcs": ["Balon Greyjoy", "Theon Greyjoy", "Yara Greyjoy"],
    },
    House.TYRELL: {
        "motto": "Growing Strong",
        "starting_influence": 45,
        "npcs": ["Olenna Tyrell", "Margaery Tyrell", "Loras Tyrell"],
    },
}


def starting_influence(house: House) -> int:
    return HOUSE_DATA[house]["starting_influence"]


def house_npcs(house: House) -> list[str]:
    return list(HOUSE_DATA[house]["npcs"])


class GameConfig(BaseModel):
    """Pacing knobs shared by the state machine, the session and the prompts."""

    max_turns: int = Field(default=15, gt=0)
    act_1_end: int = Field(default=5, ge=0)
    act_2_end: int = Field(default=10, ge=0)
    autosave_every: int = Field(default=5, gt=0)
    context_window: int = Field(default=12, gt=0)

    @model_validator(mode="after")
    def _check_acts(self) -> "GameConfig":
        if self.act_1_end > self.act_2_end:
            raise ValueError("act_1_end must not be greater than act_2_end")
        return self

    @property
    def act_boundaries(self) -> ActBoundaries:
        return ActBoundaries(self.act_1_end, self.act_2_end)


def load_game_config() -> GameConfig:
    """Build a GameConfig from defaults merged with environment overrides."""
    env_keys = {
        "max_turns": "MAX_TURNS",
        "act_1_end": "ACT_1_END",
        "act_2_end": "ACT_2_END",
        "autosave_every": "AUTOSAVE_EVERY",
        "context_window": "CONTEXT_WINDOW",
    }
    fields = {}
    for field, env in env_keys.items():
        value = os.getenv(env)
        if value:
            fields[field] = int(value)
    return GameConfig(**fields)
