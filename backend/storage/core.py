"""Storage initialization and path helpers."""

from pathlib import Path

from throne_saga.saves import JsonFileBlobStore, SaveStore

_data_dir: Path | None = None
_save_store: SaveStore | None = None


def init_storage(data_dir: Path) -> None:
    global _data_dir, _save_store
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    _save_store = SaveStore(JsonFileBlobStore(_data_dir))


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def save_store() -> SaveStore:
    assert _save_store is not None, "Call init_storage() before using storage"
    return _save_store
