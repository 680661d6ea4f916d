"""HTTP client for the game service (backend/), usable as a GameSession collaborator.

ApiClient implements both the StoryCollaborator and ImageCollaborator
protocols by calling the service endpoints:

    POST /api/story/start      {character}
    POST /api/story/turn       {character, history, lastChoice, turnCount, maxTurns}
    POST /api/images/scene     {visualDescription}
    POST /api/images/portrait  {name}
    GET  /healthz

Failure policy matches the local collaborators: a failed start raises
StoryGenerationError, a failed turn yields the fallback node, and failed
image requests return None.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from throne_saga.errors import StoryGenerationError
from throne_saga.models import Character, HistoryEntry, StoryNode
from throne_saga.story import fallback_node

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised when the game service cannot be reached or answers with an error."""


class ApiClient:
    def __init__(self, base_url: str, timeout: float = 120.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                if method == "GET":
                    resp = await client.get(url)
                else:
                    resp = await client.post(url, json=body)
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise ApiError(f"Cannot connect to game service at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise ApiError(f"Game service returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise ApiError(f"Game service timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise ApiError(f"Game service request failed: {e!r}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError("Game service returned a non-JSON body") from e

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/healthz")

    async def generate_start(self, character: Character) -> StoryNode:
        try:
            data = await self._request(
                "POST", "/api/story/start", {"character": character.model_dump(mode="json")},
            )
            return StoryNode.model_validate(data)
        except (ApiError, ValidationError) as e:
            logger.warning("Start scene request failed: %s", e)
            raise StoryGenerationError("Failed to generate the starting scene", cause=e)

    async def generate_turn(
        self,
        history: list[HistoryEntry],
        character: Character,
        last_choice: str,
        turn_count: int,
        max_turns: int,
    ) -> StoryNode:
        body = {
            "character": character.model_dump(mode="json"),
            "history": [e.model_dump(mode="json", exclude_none=True) for e in history],
            "lastChoice": last_choice,
            "turnCount": turn_count,
            "maxTurns": max_turns,
        }
        try:
            data = await self._request("POST", "/api/story/turn", body)
            return StoryNode.model_validate(data)
        except (ApiError, ValidationError) as e:
            logger.warning("Turn %d request failed, using fallback: %s", turn_count, e)
            return fallback_node()

    async def _image(self, path: str, body: dict[str, Any]) -> str | None:
        try:
            data = await self._request("POST", path, body)
        except ApiError as e:
            logger.warning("Image request %s failed: %s", path, e)
            return None
        if not isinstance(data, dict):
            return None
        image = data.get("image")
        return image if isinstance(image, str) and image else None

    async def scene_image(self, visual_description: str) -> str | None:
        return await self._image("/api/images/scene", {"visualDescription": visual_description})

    async def portrait(self, name: str) -> str | None:
        return await self._image("/api/images/portrait", {"name": name})
