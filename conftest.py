from datetime import date

import pytest

from booktracker.database import MemoryKeyValueStore
from booktracker.library import Library
from booktracker.main import LibraryManager
from booktracker.storage import PersistenceAdapter
from booktracker.ui_helpers import OUTPUT_MODE_ENV

BORROW_DAY = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # CLI output mode lives in the environment; restore it after every test
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    yield
    LibraryManager.reset()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def lib(store):
    return Library(PersistenceAdapter(store), today=lambda: BORROW_DAY)


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file per test
    return str(tmp_path / f"test_{request.node.name}.db")
