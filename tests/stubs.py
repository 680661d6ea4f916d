"""Stub story and image collaborators plus model builders for the tests."""

from __future__ import annotations

import asyncio
from typing import Any

from throne_saga.models import Character, GameOption, HistoryEntry, House, StoryNode


def make_node(**overrides: Any) -> StoryNode:
    fields: dict[str, Any] = {
        "narrative": "Rain lashes the walls of Winterfell.",
        "visual_description": "A grey castle in the rain",
        "speaker": None,
        "dialogue": None,
        "options": [
            GameOption(id="1", text="Confront the guard"),
            GameOption(id="2", text="Slip away"),
        ],
        "health_change": 0,
        "influence_change": 0,
        "is_game_over": False,
        "game_over_reason": None,
    }
    fields.update(overrides)
    return StoryNode(**fields)


def make_character(**overrides: Any) -> Character:
    fields: dict[str, Any] = {
        "name": "Jon",
        "house": House.STARK,
        "bio": "A bastard of the north.",
        "health": 100,
        "influence": 30,
    }
    fields.update(overrides)
    return Character(**fields)


class StubLLM:
    """Text LLM returning canned replies in order; exceptions are raised."""

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, stage: str, prompt: str, system: str | None = None) -> str:
        self.calls.append({"stage": stage, "prompt": prompt, "system": system})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class StubImageLLM:
    def __init__(self, result: str | None | Exception = "data:image/png;base64,AAAA") -> None:
        self.result = result
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class StubStory:
    """StoryCollaborator returning canned nodes; exceptions are raised."""

    def __init__(self, start: StoryNode | Exception | None = None, turns: list | None = None) -> None:
        self.start = start if start is not None else make_node()
        self.turns: list[StoryNode | Exception] = list(turns or [])
        self.start_calls: list[Character] = []
        self.turn_calls: list[dict[str, Any]] = []

    async def generate_start(self, character: Character) -> StoryNode:
        self.start_calls.append(character)
        if isinstance(self.start, Exception):
            raise self.start
        return self.start

    async def generate_turn(
        self,
        history: list[HistoryEntry],
        character: Character,
        last_choice: str,
        turn_count: int,
        max_turns: int,
    ) -> StoryNode:
        self.turn_calls.append({
            "history": list(history),
            "character": character,
            "last_choice": last_choice,
            "turn_count": turn_count,
            "max_turns": max_turns,
        })
        node = self.turns.pop(0)
        if isinstance(node, Exception):
            raise node
        return node


class StubImages:
    """ImageCollaborator with optional gates to control when requests resolve."""

    def __init__(self, scene: str | None = "data:image/png;base64,SCENE",
                 portrait: str | None | Exception = "data:image/png;base64,FACE") -> None:
        self.scene = scene
        self.portrait_result = portrait
        self.scene_requests: list[str] = []
        self.portrait_requests: list[str] = []
        self.scene_gates: list[asyncio.Event] = []

    async def scene_image(self, visual_description: str) -> str | None:
        self.scene_requests.append(visual_description)
        if self.scene_gates:
            gate = self.scene_gates.pop(0)
            await gate.wait()
        return f"{self.scene}#{visual_description}" if self.scene else None

    async def portrait(self, name: str) -> str | None:
        self.portrait_requests.append(name)
        if isinstance(self.portrait_result, Exception):
            raise self.portrait_result
        return self.portrait_result
