"""Story and image collaborators.

StoryTeller turns a text LLM into StoryNodes:

  - the start of a game must succeed; any failure raises StoryGenerationError
    so the caller can keep the player in character creation.
  - follow-up turns never fail: an LLM error, an empty body, invalid JSON or a
    node that does not match the schema is replaced by the fixed fallback
    node, which always offers a single "retry" option.

Illustrator wraps an image LLM and never raises; a failed request is logged
and reported as "no image" (None).

GameSession depends only on the StoryCollaborator / ImageCollaborator
protocols, so a remote implementation (throne_saga.client.ApiClient) can
stand in for these local ones.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

from pydantic import ValidationError

from throne_saga.acts import ActBoundaries
from throne_saga.config import GameConfig
from throne_saga.errors import StoryGenerationError
from throne_saga.history import DEFAULT_CONTEXT_WINDOW
from throne_saga.llm import LLM, ImageLLM
from throne_saga.models import Character, GameOption, HistoryEntry, StoryNode
from throne_saga.prompts import (
    SYSTEM_PROMPT,
    PromptError,
    portrait_prompt,
    scene_image_prompt,
    start_prompt,
    turn_prompt,
)

logger = logging.getLogger(__name__)

FALLBACK_NARRATIVE = (
    "The fog of war is too thick... The ancient magic of Valyria has failed "
    "(the storyteller did not answer). Try again."
)
RETRY_OPTION_ID = "retry"
RETRY_OPTION_TEXT = "Try again"


class StoryCollaborator(Protocol):
    async def generate_start(self, character: Character) -> StoryNode: ...

    async def generate_turn(
        self,
        history: list[HistoryEntry],
        character: Character,
        last_choice: str,
        turn_count: int,
        max_turns: int,
    ) -> StoryNode: ...


class ImageCollaborator(Protocol):
    async def scene_image(self, visual_description: str) -> str | None: ...

    async def portrait(self, name: str) -> str | None: ...


def fallback_node() -> StoryNode:
    """The node substituted for any failed follow-up turn."""
    return StoryNode(
        narrative=FALLBACK_NARRATIVE,
        visual_description="Heavy fog over a dark battlefield",
        speaker=None,
        dialogue=None,
        options=[GameOption(id=RETRY_OPTION_ID, text=RETRY_OPTION_TEXT)],
        health_change=0,
        influence_change=0,
        is_game_over=False,
    )


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_story_node(text: str) -> StoryNode:
    """Parse and validate an LLM reply into a StoryNode.

    Raises ValueError for empty replies, invalid JSON, schema mismatches and
    playable nodes without options.
    """
    if not text or not text.strip():
        raise ValueError("Story LLM returned an empty reply")
    body = _strip_code_fence(text)
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ValueError(f"Story LLM returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Story node must be a JSON object, got {type(data).__name__}")
    try:
        node = StoryNode.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Story node does not match the schema: {e}") from e
    if not node.options and not node.is_game_over:
        raise ValueError("Story node offers no options")
    return node


class StoryTeller:
    """Local story collaborator backed by a text LLM."""

    def __init__(self, llm: LLM, config: GameConfig | None = None) -> None:
        self._llm = llm
        self._config = config or GameConfig()

    @property
    def boundaries(self) -> ActBoundaries:
        return self._config.act_boundaries

    @property
    def window(self) -> int:
        return self._config.context_window or DEFAULT_CONTEXT_WINDOW

    async def _fetch_node(self, stage: str, prompt: str) -> StoryNode:
        text = await self._llm(stage, prompt, SYSTEM_PROMPT)
        return parse_story_node(text)

    async def generate_start(self, character: Character) -> StoryNode:
        try:
            prompt = start_prompt(character)
            return await self._fetch_node("story_start", prompt)
        except Exception as e:
            logger.warning("Start scene generation failed for %r: %s", character.name, e)
            raise StoryGenerationError("Failed to generate the starting scene", cause=e)

    async def generate_turn(
        self,
        history: list[HistoryEntry],
        character: Character,
        last_choice: str,
        turn_count: int,
        max_turns: int,
    ) -> StoryNode:
        try:
            prompt = turn_prompt(
                history, character, last_choice, turn_count, max_turns,
                self.boundaries, self.window,
            )
            return await self._fetch_node("story_turn", prompt)
        except Exception as e:
            logger.warning("Story generation failed on turn %d, using fallback: %s", turn_count, e)
            return fallback_node()


class Illustrator:
    """Local image collaborator. Never raises; failures mean "no image"."""

    def __init__(self, image_llm: ImageLLM) -> None:
        self._image_llm = image_llm

    async def _generate(self, kind: str, prompt: str) -> str | None:
        try:
            return await self._image_llm(prompt)
        except Exception as e:
            logger.warning("%s generation failed: %s", kind, e)
            return None

    async def scene_image(self, visual_description: str) -> str | None:
        if not visual_description.strip():
            return None
        try:
            prompt = scene_image_prompt(visual_description)
        except PromptError as e:
            logger.warning("Scene image prompt failed: %s", e)
            return None
        return await self._generate("Scene image", prompt)

    async def portrait(self, name: str) -> str | None:
        if not name.strip():
            return None
        try:
            prompt = portrait_prompt(name)
        except PromptError as e:
            logger.warning("Portrait prompt failed: %s", e)
            return None
        return await self._generate("Portrait", prompt)
