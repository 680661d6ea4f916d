"""History log helpers: building entries from story nodes and the LLM context window."""

from __future__ import annotations

from throne_saga.models import HistoryEntry, StoryNode

DEFAULT_CONTEXT_WINDOW = 12


def entries_from_node(node: StoryNode) -> list[HistoryEntry]:
    """Entries a story node contributes to the transcript, in display order.

    A narrative entry only when the narrative is non-empty; a dialogue entry
    only when both speaker and dialogue are present.
    """
    entries: list[HistoryEntry] = []
    if node.narrative.strip():
        entries.append(HistoryEntry.narrative(node.narrative))
    line = node.dialogue_line
    if line is not None:
        speaker, text = line
        entries.append(HistoryEntry.line(speaker, text))
    return entries


def append(history: list[HistoryEntry], *entries: HistoryEntry) -> list[HistoryEntry]:
    """Return a new list with the entries appended; the input is left untouched."""
    return [*history, *entries]


def context_window(
    history: list[HistoryEntry], size: int = DEFAULT_CONTEXT_WINDOW
) -> list[HistoryEntry]:
    if size <= 0:
        return []
    return list(history[-size:])


def format_entry(entry: HistoryEntry) -> str:
    if entry.type == "dialogue":
        return f'{entry.speaker or "NPC"}: "{entry.text}"'
    if entry.type == "choice":
        return f"> Player: {entry.text}"
    return entry.text


def format_context(history: list[HistoryEntry], size: int = DEFAULT_CONTEXT_WINDOW) -> str:
    """Script-like rendering of the last `size` entries for the story prompt."""
    return "\n".join(format_entry(e) for e in context_window(history, size))
