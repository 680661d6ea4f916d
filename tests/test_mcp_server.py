"""Tests for backend.mcp_server - save slot tools over an in-memory MCP session."""

import json

from mcp.shared.memory import create_connected_server_and_client_session

from backend import storage
from backend.mcp_server import mcp
from throne_saga.models import HistoryEntry, SaveFile

from stubs import make_character, make_node


def _put(name: str, turn: int = 3) -> None:
    storage.put_save(SaveFile(
        character=make_character(name=name),
        history=[HistoryEntry.narrative("Snow.")],
        current_scene=make_node(),
        turn_count=turn,
        last_saved=1000,
    ))


def _payload(result) -> object:
    assert not result.isError
    return json.loads(result.content[0].text)


async def test_tools_are_listed():
    async with create_connected_server_and_client_session(mcp) as client:
        tools = await client.list_tools()
    assert {t.name for t in tools.tools} == {"list_saves", "get_save", "delete_save"}


async def test_list_saves_summaries():
    _put("Jon", turn=4)
    async with create_connected_server_and_client_session(mcp) as client:
        result = await client.call_tool("list_saves", {})
    summary = _payload(result)
    assert summary == {
        "name": "Jon",
        "house": "Stark",
        "health": 100,
        "influence": 30,
        "turnCount": 4,
        "lastSaved": 1000,
    }


async def test_get_save():
    _put("Jon")
    async with create_connected_server_and_client_session(mcp) as client:
        result = await client.call_tool("get_save", {"name": "Jon"})
    save = _payload(result)
    assert save["character"]["name"] == "Jon"
    assert save["turnCount"] == 3


async def test_delete_save():
    _put("Jon")
    async with create_connected_server_and_client_session(mcp) as client:
        result = await client.call_tool("delete_save", {"name": "Jon"})
    assert not result.isError
    assert storage.get_save("Jon") is None
