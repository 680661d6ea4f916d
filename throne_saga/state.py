"""Turn state machine: pure transitions over GameState.

Stages:

    menu ──► creation ──► playing ──► game_over   (health reached 0)
      ▲                      │   └──► victory     (story ended, character alive)
      └──────────────────────┘ exit_to_menu

Every function returns a new GameState (or SaveFile) and leaves its inputs
untouched; GameSession owns the live value and is the only caller that
replaces it. Terminal stages are resolved once, when a story node is
applied, instead of being re-derived from health and the scene flag.
"""

from __future__ import annotations

import logging
import time

from throne_saga import history as hist
from throne_saga.acts import ACT_I, PROLOGUE, resolve_act
from throne_saga.config import GameConfig
from throne_saga.errors import InvalidTransitionError, NotResumableError
from throne_saga.models import (
    TERMINAL_STAGES,
    Character,
    GameStage,
    GameState,
    HistoryEntry,
    SaveFile,
    StoryNode,
)
from throne_saga.stats import apply_delta, is_dead

logger = logging.getLogger(__name__)

TRIGGER_TURN = "turn"
TRIGGER_MILESTONE = "milestone"
TRIGGER_ACT_CHANGE = "act_change"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_terminal(state: GameState) -> bool:
    return state.stage in TERMINAL_STAGES


def resolve_stage(character: Character, node: StoryNode) -> GameStage:
    """Stage implied by the character's health and the scene's game-over flag."""
    if is_dead(character):
        return GameStage.GAME_OVER
    if node.is_game_over:
        return GameStage.VICTORY
    return GameStage.PLAYING


def _require_stage(state: GameState, *allowed: GameStage, action: str) -> None:
    if state.stage not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise InvalidTransitionError(
            f"Cannot {action} in stage {state.stage.value!r} (expected {names})"
        )


def initial_state(config: GameConfig | None = None) -> GameState:
    config = config or GameConfig()
    return GameState(stage=GameStage.MENU, max_turns=config.max_turns, current_act=PROLOGUE)


def begin_creation(state: GameState) -> GameState:
    _require_stage(state, GameStage.MENU, *TERMINAL_STAGES, action="create a character")
    return state.model_copy(update={"stage": GameStage.CREATION})


def start_game(
    state: GameState,
    character: Character,
    start_node: StoryNode,
    config: GameConfig | None = None,
    saved_at: int | None = None,
) -> tuple[GameState, SaveFile | None]:
    """Enter play with the opening scene.

    Returns the new state and the save file for it, or None when the opening
    scene is already terminal.
    """
    config = config or GameConfig()
    _require_stage(state, GameStage.CREATION, action="start a game")
    new_state = GameState(
        stage=resolve_stage(character, start_node),
        character=character,
        history=hist.entries_from_node(start_node),
        current_scene=start_node,
        turn_count=1,
        max_turns=config.max_turns,
        current_act=ACT_I,
        npc_portraits={},
        scene_image=None,
    )
    logger.info("Game started for %r (house %s)", character.name, character.house.value)
    if is_terminal(new_state):
        return new_state, None
    return new_state, to_save_file(new_state, saved_at)


def record_choice(state: GameState, option_text: str) -> GameState:
    """Append the player's choice before the story collaborator answers."""
    _require_stage(state, GameStage.PLAYING, action="choose an option")
    return state.model_copy(update={
        "history": hist.append(state.history, HistoryEntry.choice(option_text)),
    })


def apply_turn(state: GameState, node: StoryNode, config: GameConfig | None = None) -> GameState:
    """Fold the collaborator's answer into the state and advance the turn."""
    config = config or GameConfig()
    _require_stage(state, GameStage.PLAYING, action="apply a turn")
    if state.character is None:
        raise InvalidTransitionError("Cannot apply a turn without a character")

    next_turn = state.turn_count + 1
    character = apply_delta(state.character, node.health_change, node.influence_change)
    stage = resolve_stage(character, node)
    if stage is not GameStage.PLAYING:
        logger.info("Game ended for %r on turn %d: %s", character.name, next_turn, stage.value)
    return state.model_copy(update={
        "stage": stage,
        "character": character,
        "history": hist.append(state.history, *hist.entries_from_node(node)),
        "current_scene": node,
        "turn_count": next_turn,
        "current_act": resolve_act(next_turn, config.act_boundaries),
        "scene_image": None,
    })


def to_save_file(state: GameState, saved_at: int | None = None) -> SaveFile:
    """Project the resumable part of the state. Terminal games are not resumable."""
    if state.character is None or state.current_scene is None:
        raise NotResumableError("No game in progress")
    if is_terminal(state) or is_dead(state.character) or state.current_scene.is_game_over:
        raise NotResumableError("Finished games cannot be saved")
    return SaveFile(
        character=state.character,
        history=list(state.history),
        current_scene=state.current_scene,
        turn_count=state.turn_count,
        last_saved=saved_at if saved_at is not None else now_ms(),
    )


def load_save(save: SaveFile, config: GameConfig | None = None) -> GameState:
    """Resume a saved game. The act is recomputed and portraits start empty.

    Saves written by other clients may hold a finished game; those load
    straight into their terminal stage.
    """
    config = config or GameConfig()
    return GameState(
        stage=resolve_stage(save.character, save.current_scene),
        character=save.character,
        history=list(save.history),
        current_scene=save.current_scene,
        turn_count=save.turn_count,
        max_turns=config.max_turns,
        current_act=resolve_act(save.turn_count, config.act_boundaries),
        npc_portraits={},
        scene_image=None,
    )


def exit_to_menu(state: GameState) -> GameState:
    return state.model_copy(update={
        "stage": GameStage.MENU,
        "character": None,
        "current_scene": None,
        "npc_portraits": {},
        "scene_image": None,
    })


def play_again(config: GameConfig | None = None) -> GameState:
    return initial_state(config).model_copy(update={"stage": GameStage.CREATION})


def with_scene_image(state: GameState, image: str | None) -> GameState:
    return state.model_copy(update={"scene_image": image})


def with_portrait(state: GameState, speaker: str, image: str) -> GameState:
    return state.model_copy(update={"npc_portraits": {**state.npc_portraits, speaker: image}})


def save_triggers(previous: GameState, current: GameState, config: GameConfig | None = None) -> set[str]:
    """Reasons to auto-save after moving from `previous` to `current`.

    Several reasons may fire on the same turn; callers write once. Terminal
    states never trigger a save.
    """
    config = config or GameConfig()
    if current.stage is not GameStage.PLAYING or current.current_scene is None:
        return set()
    reasons: set[str] = set()
    if current.turn_count != previous.turn_count:
        reasons.add(TRIGGER_TURN)
        if current.turn_count > 1 and current.turn_count % config.autosave_every == 0:
            reasons.add(TRIGGER_MILESTONE)
    if current.current_act != previous.current_act:
        reasons.add(TRIGGER_ACT_CHANGE)
    return reasons
