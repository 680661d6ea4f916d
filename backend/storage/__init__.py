"""File-based JSON storage for save slots.

Data layout:
  data/
    got_saves_v2.json    Save slots: {character name: SaveFile}

The file is the server-side counterpart of the browser's local save blob and
uses the same shape, so saves can be moved between the two unchanged.
Malformed content reads as an empty store; see throne_saga.saves.
"""

# Re-export all public symbols so `from backend import storage` keeps working.

from .core import (  # noqa: F401
    data_dir,
    init_storage,
    save_store,
)

from .saves import (  # noqa: F401
    delete_save,
    get_save,
    list_save_summaries,
    list_saves,
    put_save,
    summarize,
)
