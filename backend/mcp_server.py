"""FastMCP server exposing the save slots as MCP tools.

Tools:
  - list_saves()        - one summary per save slot
  - get_save(name)      - the full save of a character, or null
  - delete_save(name)   - remove a save slot

Storage must be initialised with backend.storage.init_storage() first; when
run as __main__ the DATA_DIR environment variable (default ./data) is used.

Usage:
    python -m backend.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from backend import storage

mcp = FastMCP("throne-saga-saves")


@mcp.tool()
def list_saves() -> list[dict]:
    """List save slots: name, house, health, influence, turnCount, lastSaved."""
    return storage.list_save_summaries()


@mcp.tool()
def get_save(name: str) -> dict | None:
    """Return the full save of the character with this name, or null if absent."""
    return storage.get_save(name)


@mcp.tool()
def delete_save(name: str) -> bool:
    """Delete the save slot of a character. Returns false if there was none."""
    return storage.delete_save(name)


if __name__ == "__main__":
    import os
    from pathlib import Path

    from dotenv import load_dotenv

    load_dotenv()
    storage.init_storage(Path(os.getenv("DATA_DIR", "data")))
    mcp.run()
