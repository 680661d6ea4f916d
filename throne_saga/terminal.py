"""Text front end over GameSession: menu, character creation and the turn loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import ValidationError

from throne_saga.acts import progress_percent
from throne_saga.config import HOUSE_DATA
from throne_saga.errors import NotResumableError, StoryGenerationError
from throne_saga.models import GameStage, House
from throne_saga.session import GameSession
from throne_saga.stats import new_character

logger = logging.getLogger(__name__)

ReadLine = Callable[[str], Awaitable[str]]
Write = Callable[[str], None]

HOUSES = list(House)


async def _stdin_read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


class TerminalGame:
    def __init__(
        self,
        session: GameSession,
        read_line: ReadLine = _stdin_read_line,
        write: Write = print,
    ) -> None:
        self._session = session
        self._read = read_line
        self._write = write

    async def _ask(self, prompt: str) -> str:
        try:
            return (await self._read(prompt)).strip()
        except EOFError:
            return "q"

    async def run(self) -> None:
        try:
            while await self._menu():
                pass
        finally:
            await self._session.close()

    # ------------------------------------------------------------------
    # Menu
    # ------------------------------------------------------------------

    async def _menu(self) -> bool:
        """One pass through the main menu. Returns False to quit."""
        saves = self._session.list_saves()
        self._write("\n=== THRONE SAGA ===")
        for i, save in enumerate(saves, 1):
            when = datetime.fromtimestamp(save.last_saved / 1000).strftime("%Y-%m-%d %H:%M")
            self._write(
                f"  {i}. {save.character.name} of House {save.character.house.value}"
                f", turn {save.turn_count} ({when})"
            )
        if not saves:
            self._write("  (no saved games)")
        choice = (await self._ask("[n]ew game, [l N] load, [d N] delete, [q]uit > ")).lower()

        if choice in ("q", "quit"):
            return False
        if choice in ("n", "new"):
            self._session.new_game()
            if await self._create():
                await self._play()
            return True
        command, _, arg = choice.partition(" ")
        if command in ("l", "d") and arg.isdigit() and 1 <= int(arg) <= len(saves):
            save = saves[int(arg) - 1]
            if command == "l":
                await self._session.load_game(save)
                await self._play()
            elif (await self._ask(f"Delete the story of {save.character.name}? [y/N] ")).lower() == "y":
                self._session.delete_save(save.character.name)
            return True
        self._write("Unknown command.")
        return True

    # ------------------------------------------------------------------
    # Character creation
    # ------------------------------------------------------------------

    async def _create(self) -> bool:
        name = await self._ask("Name of your lord or lady: ")
        for i, house in enumerate(HOUSES, 1):
            data = HOUSE_DATA[house]
            self._write(
                f"  {i}. {house.value}: \"{data['motto']}\""
                f" (starting influence {data['starting_influence']}%)"
            )
        picked = await self._ask("House [1-6]: ")
        house = HOUSES[int(picked) - 1] if picked.isdigit() and 1 <= int(picked) <= len(HOUSES) else House.STARK
        bio = await self._ask("Biography (optional): ")
        try:
            character = new_character(name, house, bio)
        except ValidationError:
            self._write("A character needs a name.")
            self._session.exit_to_menu()
            return False

        self._write("The ravens are flying...")
        try:
            await self._session.start_game(character)
        except StoryGenerationError:
            self._write("Could not start the game. Check the story service and the API key.")
            self._session.exit_to_menu()
            return False
        return True

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    def _render(self) -> None:
        state = self._session.state
        scene = state.current_scene
        character = state.character
        if scene is None or character is None:
            return
        percent = progress_percent(state.turn_count, state.max_turns)
        self._write(
            f"\n--- {state.current_act} · turn {state.turn_count}/{state.max_turns} ({percent}%) ---"
        )
        self._write(f"{character.name} · health {character.health} · influence {character.influence}")
        if scene.narrative:
            self._write(f"\n{scene.narrative}")
        line = scene.dialogue_line
        if line is not None:
            speaker, text = line
            portrait = " [portrait]" if speaker in state.npc_portraits else ""
            self._write(f'\n{speaker}{portrait}: "{text}"')
        for i, option in enumerate(self._session.options(), 1):
            self._write(f"  {i}. {option.text}")

    def _render_ending(self) -> None:
        state = self._session.state
        scene = state.current_scene
        if state.stage is GameStage.GAME_OVER:
            self._write("\nVALAR MORGHULIS. All men must die.")
        else:
            self._write("\nA LEGEND OF WESTEROS.")
        if scene is not None and scene.game_over_reason:
            self._write(f'"{scene.game_over_reason}"')
        if state.character is not None:
            self._write(
                f"Turns survived: {state.turn_count}. Final influence: {state.character.influence}."
            )

    async def _play(self) -> None:
        while self._session.state.stage is GameStage.PLAYING:
            self._render()
            options = self._session.options()
            choice = (await self._ask("Choose, [s]ave or [q]uit to menu > ")).lower()
            if choice in ("q", "quit"):
                break
            if choice in ("s", "save"):
                try:
                    saved = self._session.save()
                except NotResumableError as e:
                    self._write(str(e))
                    continue
                self._write("Game saved." if saved else "Saving failed.")
                continue
            if not (choice.isdigit() and 1 <= int(choice) <= len(options)):
                self._write("Pick one of the numbered options.")
                continue
            option = options[int(choice) - 1]
            try:
                await self._session.advance_turn(option.id, option.text)
            except StoryGenerationError:
                self._write("The story stalls. Choose again.")

        if self._session.state.stage in (GameStage.GAME_OVER, GameStage.VICTORY):
            self._render()
            self._render_ending()
        await self._session.wait_for_media()
        self._session.exit_to_menu()
