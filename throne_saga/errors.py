"""Exceptions raised by the game core."""

from __future__ import annotations


class ThroneSagaError(Exception):
    """Base class for game-core errors."""


class StoryGenerationError(ThroneSagaError):
    """The story collaborator could not produce a usable story node."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause


class InvalidTransitionError(ThroneSagaError):
    """A state-machine operation was called from a stage that does not allow it."""


class TurnInProgressError(ThroneSagaError):
    """A turn was requested while the previous one is still outstanding."""


class NotResumableError(ThroneSagaError):
    """The game state cannot be saved (terminal or not started)."""
