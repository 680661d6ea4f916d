import pytest

from throne_saga.saves import MemoryBlobStore, SaveStore


@pytest.fixture
def save_store() -> SaveStore:
    return SaveStore(MemoryBlobStore())
