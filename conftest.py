import pytest

from backend import storage


@pytest.fixture(autouse=True)
def clean_storage(tmp_path):
    """Point the service storage at a fresh directory before every test."""
    storage.init_storage(tmp_path / "data")
    yield
