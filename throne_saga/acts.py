"""Act resolution: a coarse narrative phase derived purely from the turn count.

    turn_count <= act_1_end   → "Act I"
    turn_count <= act_2_end   → "Act II"
    otherwise                 → "Act III"

The same function runs when a save is loaded and after every live turn, so
both paths always agree for the same turn count.
"""

from __future__ import annotations

from typing import NamedTuple

PROLOGUE = "Prologue"
ACT_I = "Act I"
ACT_II = "Act II"
ACT_III = "Act III"


class ActBoundaries(NamedTuple):
    act_1_end: int
    act_2_end: int


def resolve_act(turn_count: int, boundaries: ActBoundaries) -> str:
    if turn_count <= boundaries.act_1_end:
        return ACT_I
    if turn_count <= boundaries.act_2_end:
        return ACT_II
    return ACT_III


def progress_percent(turn_count: int, max_turns: int) -> int:
    """Share of the game played, for progress bars. Capped at 100."""
    if max_turns <= 0:
        return 100
    return min(100, round(turn_count * 100 / max_turns))
