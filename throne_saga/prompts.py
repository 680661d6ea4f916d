"""Handlebars prompt rendering for the story and image collaborators.

Templates are plain Handlebars strings rendered with pybars. Values that may
contain quotes or markup use triple-stash (`{{{x}}}`) so they reach the model
unescaped.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from throne_saga.acts import ACT_I, ACT_II, ActBoundaries, resolve_act
from throne_saga.config import HOUSE_DATA, house_npcs
from throne_saga.history import DEFAULT_CONTEXT_WINDOW, format_context
from throne_saga.models import Character, HistoryEntry

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


SYSTEM_PROMPT = """\
You are the narrator of a dark political drama set in Westeros.
Every reply is a single JSON object and nothing else:
{
  "narrative": "<scene prose, second person>",
  "visual_description": "<one sentence for an illustrator, no names>",
  "speaker": "<NPC name or null>",
  "dialogue": "<the NPC's spoken line or null>",
  "options": [{"id": "1", "text": "<choice>"}, ...],
  "health_change": <integer>,
  "influence_change": <integer>,
  "is_game_over": <true|false>,
  "game_over_reason": "<why the story ended, or null>"
}
Offer two to four options unless the game is over. Keep stat changes between
-30 and +30 except for fatal outcomes."""

START_TEMPLATE = """\
GAME START ({{act}}).
Character: {{{character.name}}}, House {{character.house}} ("{{motto}}").
Biography: {{{character.bio}}}

Bring one of these characters into the scene for dialogue or interaction: {{{npcs}}}.

Open the story as the character arrives at an important place or receives an
important letter. Create intrigue."""

TURN_TEMPLATE = """\
HISTORY SO FAR:
{{{context}}}

---
TURN: {{turn_count}} of {{max_turns}}. STAGE: {{act}} ({{act_theme}}).
Character: {{{character.name}}} (House {{character.house}}).
Health: {{character.health}}, Influence: {{character.influence}}.
The player just chose: "{{{last_choice}}}".

{{pacing}}{{#if final_turn}} THIS IS THE LAST TURN. End the story with a fitting finale (triumph or tragedy) based on the player's choice and set is_game_over to true.{{/if}}

Continue the story, taking the consequences into account."""

SCENE_IMAGE_TEMPLATE = (
    "Cinematic shot, dark fantasy, Game of Thrones style, realistic, detailed "
    "textures. No text. Scene description: {{{description}}}"
)

PORTRAIT_TEMPLATE = (
    "Character portrait of {{{name}}} from the Game of Thrones universe. Close-up "
    "face shot, oil painting style, dark fantasy, neutral background, dramatic "
    "lighting. No text."
)

_ACT_PACING = {
    ACT_I: ("Setup", "We are still at the beginning. Build the world and the intrigues."),
    ACT_II: ("Conflict", "Raise the stakes. The situation is becoming dangerous."),
}
_FINAL_ACT_PACING = (
    "Climax",
    "We are approaching the finale. Steer towards the resolution; these are decisive moments.",
)


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def _character_ctx(character: Character) -> dict[str, Any]:
    return {
        "name": character.name,
        "house": character.house.value,
        "bio": character.bio,
        "health": character.health,
        "influence": character.influence,
    }


def build_start_context(character: Character) -> dict[str, Any]:
    return {
        "act": ACT_I,
        "character": _character_ctx(character),
        "motto": HOUSE_DATA[character.house]["motto"],
        "npcs": ", ".join(house_npcs(character.house)),
    }


def build_turn_context(
    history: list[HistoryEntry],
    character: Character,
    last_choice: str,
    turn_count: int,
    max_turns: int,
    boundaries: ActBoundaries,
    window: int = DEFAULT_CONTEXT_WINDOW,
) -> dict[str, Any]:
    """Assemble template variables for a follow-up turn.

    `turn_count` is the number of the turn being generated.
    """
    act = resolve_act(turn_count, boundaries)
    theme, pacing = _ACT_PACING.get(act, _FINAL_ACT_PACING)
    return {
        "context": format_context(history, window),
        "character": _character_ctx(character),
        "last_choice": last_choice,
        "turn_count": turn_count,
        "max_turns": max_turns,
        "act": act,
        "act_theme": theme,
        "pacing": pacing,
        "final_turn": turn_count >= max_turns - 1,
    }


def start_prompt(character: Character) -> str:
    return render_prompt(START_TEMPLATE, build_start_context(character))


def turn_prompt(
    history: list[HistoryEntry],
    character: Character,
    last_choice: str,
    turn_count: int,
    max_turns: int,
    boundaries: ActBoundaries,
    window: int = DEFAULT_CONTEXT_WINDOW,
) -> str:
    ctx = build_turn_context(
        history, character, last_choice, turn_count, max_turns, boundaries, window,
    )
    return render_prompt(TURN_TEMPLATE, ctx)


def scene_image_prompt(description: str) -> str:
    return render_prompt(SCENE_IMAGE_TEMPLATE, {"description": description})


def portrait_prompt(name: str) -> str:
    return render_prompt(PORTRAIT_TEMPLATE, {"name": name})
