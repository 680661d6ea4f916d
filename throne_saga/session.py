"""GameSession - owns one live GameState and runs the turn flow.

Turn flow (advance_turn):
  1. Reject if another turn is outstanding or the game is not being played.
  2. Append the player's choice to the history (optimistic, never rolled back).
  3. Ask the story collaborator for the next node with the last N history
     entries, the character, the choice text, the next turn number and the
     turn limit.
  4. Apply the node: clamped stat deltas, act, history, scene, turn count,
     terminal stage. The cached scene image is cleared.
  5. Save once if any trigger fired (turn, milestone, act change); terminal
     states are never saved.
  6. Schedule the scene image and, for a new speaker, a portrait.

If step 3 raises, the choice entry stays, nothing else changes and the error
is re-raised as StoryGenerationError; the player may pick again.

Images and portraits are background asyncio tasks. Each scene-image request
carries the scene sequence number it was issued for and each portrait
request carries the session epoch (bumped on start, load and exit to menu);
results that arrive for an outdated sequence or epoch are dropped. Media
failures are logged and never reach the turn flow.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from throne_saga import state as sm
from throne_saga.config import GameConfig
from throne_saga.errors import (
    InvalidTransitionError,
    StoryGenerationError,
    TurnInProgressError,
)
from throne_saga.history import context_window
from throne_saga.models import Character, GameOption, GameStage, GameState, SaveFile
from throne_saga.saves import SaveStore
from throne_saga.story import ImageCollaborator, StoryCollaborator

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        story: StoryCollaborator,
        images: ImageCollaborator | None = None,
        saves: SaveStore | None = None,
        config: GameConfig | None = None,
        clock: Callable[[], int] = sm.now_ms,
    ) -> None:
        self._story = story
        self._images = images
        self._saves = saves
        self._config = config or GameConfig()
        self._clock = clock
        self._state = sm.initial_state(self._config)
        self._turn_in_flight = False
        self._scene_seq = 0
        self._epoch = 0
        self._pending_portraits: set[str] = set()
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def is_loading(self) -> bool:
        """True while a story request is outstanding; choice input must be disabled."""
        return self._turn_in_flight

    def options(self) -> list[GameOption]:
        scene = self._state.current_scene
        if scene is None or self._state.stage is not GameStage.PLAYING:
            return []
        return list(scene.options)

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self._turn_in_flight:
            raise TurnInProgressError("A story request is already in progress")

    def _new_epoch(self) -> None:
        self._epoch += 1
        self._scene_seq += 1
        self._pending_portraits.clear()

    def new_game(self) -> GameState:
        self._ensure_idle()
        self._state = sm.begin_creation(self._state)
        return self._state

    async def start_game(self, character: Character) -> GameState:
        """Request the opening scene and enter play.

        On failure the stage stays at character creation and
        StoryGenerationError is raised.
        """
        self._ensure_idle()
        if self._state.stage is not GameStage.CREATION:
            raise InvalidTransitionError(
                f"Cannot start a game in stage {self._state.stage.value!r}"
            )
        self._turn_in_flight = True
        try:
            node = await self._story.generate_start(character)
        except StoryGenerationError:
            raise
        except Exception as e:
            logger.warning("Start scene request failed for %r: %s", character.name, e)
            raise StoryGenerationError("Failed to generate the starting scene", cause=e)
        finally:
            self._turn_in_flight = False

        self._new_epoch()
        self._state, save = sm.start_game(
            self._state, character, node, self._config, self._clock(),
        )
        if save is not None:
            self._persist(save, {"start"})
        self._refresh_media()
        return self._state

    async def advance_turn(self, option_id: str, option_text: str | None = None) -> GameState:
        """Play the option with `option_id` from the current scene."""
        self._ensure_idle()
        current = self._state
        if current.stage is not GameStage.PLAYING or current.character is None:
            raise InvalidTransitionError(
                f"Cannot choose an option in stage {current.stage.value!r}"
            )
        option = next((o for o in self.options() if o.id == option_id), None)
        if option is None:
            raise InvalidTransitionError(f"Unknown option {option_id!r}")
        text = option_text or option.text

        before = sm.record_choice(current, text)
        self._state = before
        self._turn_in_flight = True
        try:
            node = await self._story.generate_turn(
                context_window(before.history, self._config.context_window),
                before.character,
                text,
                before.turn_count + 1,
                before.max_turns,
            )
        except StoryGenerationError:
            raise
        except Exception as e:
            logger.warning("Turn %d request failed: %s", before.turn_count + 1, e)
            raise StoryGenerationError("Failed to generate the next scene", cause=e)
        finally:
            self._turn_in_flight = False

        after = sm.apply_turn(self._state, node, self._config)
        self._state = after
        reasons = sm.save_triggers(before, after, self._config)
        if reasons:
            self._persist(sm.to_save_file(after, self._clock()), reasons)
        self._refresh_media()
        return after

    def save(self) -> bool:
        """Manual save. Raises NotResumableError for finished or unstarted games."""
        save = sm.to_save_file(self._state, self._clock())
        return self._persist(save, {"manual"})

    async def load_game(self, save: SaveFile | str) -> GameState:
        """Resume a save (or the save stored under a character name)."""
        self._ensure_idle()
        if isinstance(save, str):
            found = self._saves.get(save) if self._saves is not None else None
            if found is None:
                raise KeyError(save)
            save = found
        self._new_epoch()
        self._state = sm.load_save(save, self._config)
        logger.info("Loaded save for %r at turn %d", save.character.name, save.turn_count)
        self._refresh_media()
        return self._state

    def list_saves(self) -> list[SaveFile]:
        return self._saves.load_all() if self._saves is not None else []

    def delete_save(self, name: str) -> bool:
        return self._saves.delete(name) if self._saves is not None else False

    def exit_to_menu(self) -> GameState:
        self._ensure_idle()
        self._new_epoch()
        self._state = sm.exit_to_menu(self._state)
        return self._state

    def play_again(self) -> GameState:
        self._ensure_idle()
        self._new_epoch()
        self._state = sm.play_again(self._config)
        return self._state

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, save: SaveFile, reasons: set[str]) -> bool:
        if self._saves is None:
            return False
        logger.debug("Saving %r (%s)", save.character.name, ", ".join(sorted(reasons)))
        return self._saves.save(save)

    # ------------------------------------------------------------------
    # Background media
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _refresh_media(self) -> None:
        self._scene_seq += 1
        scene = self._state.current_scene
        if self._images is None or scene is None:
            return
        if scene.visual_description.strip():
            self._spawn(self._fetch_scene_image(scene.visual_description, self._scene_seq))
        speaker = scene.speaker
        if (
            speaker
            and speaker not in self._state.npc_portraits
            and speaker not in self._pending_portraits
        ):
            self._pending_portraits.add(speaker)
            self._spawn(self._fetch_portrait(speaker, self._epoch))

    async def _fetch_scene_image(self, description: str, seq: int) -> None:
        try:
            image = await self._images.scene_image(description)
        except Exception as e:
            logger.warning("Scene image request failed: %s", e)
            return
        if seq != self._scene_seq:
            logger.debug("Dropping stale scene image (request %d, current %d)", seq, self._scene_seq)
            return
        if image:
            self._state = sm.with_scene_image(self._state, image)

    async def _fetch_portrait(self, speaker: str, epoch: int) -> None:
        try:
            image = await self._images.portrait(speaker)
        except Exception as e:
            logger.warning("Portrait request for %r failed: %s", speaker, e)
            image = None
        if epoch != self._epoch:
            logger.debug("Dropping portrait of %r from a previous session", speaker)
            return
        self._pending_portraits.discard(speaker)
        if image:
            self._state = sm.with_portrait(self._state, speaker, image)

    async def wait_for_media(self) -> None:
        """Wait until every scheduled image and portrait request has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
