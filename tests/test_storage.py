import json
import logging
import os

import pytest

from booktracker.book import Book, BorrowEvent
from booktracker.database import MemoryKeyValueStore, SQLiteKeyValueStore, StorageUnavailableError
from booktracker.storage import BOOKS_KEY, HISTORY_KEY, PersistenceAdapter


@pytest.fixture
def adapter(store):
    return PersistenceAdapter(store)


def test_round_trip(adapter, store):
    books = [Book(1, "Dune", "Sci-Fi"), Book(2, "Emma", "Classic", is_borrowed=True)]
    history = [BorrowEvent(10, "Emma", "10/19/2026")]

    assert adapter.save_books(books) is True
    assert adapter.save_history(history) is True

    assert adapter.load_books() == books
    assert adapter.load_history() == history


def test_persisted_field_names(adapter, store):
    adapter.save_books([Book(1, "Dune", "Sci-Fi")])
    adapter.save_history([BorrowEvent(2, "Dune", "1/2/2025")])

    assert json.loads(store.get_item("books")) == [
        {"id": 1, "title": "Dune", "category": "Sci-Fi", "isBorrowed": False}
    ]
    assert json.loads(store.get_item("borrowHistory")) == [{"id": 2, "title": "Dune", "date": "1/2/2025"}]


def test_reads_existing_browser_data(store, adapter):
    # Data as written by the browser version, with millisecond ids
    store.set_item(
        BOOKS_KEY,
        '[{"id":1729339200000,"title":"Dune","category":"Sci-Fi","isBorrowed":true}]',
    )
    store.set_item(HISTORY_KEY, '[{"id":1729339200001,"title":"Dune","date":"10/19/2024"}]')

    books = adapter.load_books()
    assert books == [Book(1729339200000, "Dune", "Sci-Fi", is_borrowed=True)]
    assert adapter.load_history()[0].date == "10/19/2024"


def test_load_absent_slot(adapter):
    assert adapter.load_books() == []
    assert adapter.load_history() == []


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "",
        '{"id": 1}',
        "null",
        '[{"title": "no id", "category": "x"}]',
        '[{"id": "abc", "title": "Dune", "category": "x", "isBorrowed": false}]',
        '[{"id": 1, "title": 5, "category": "x", "isBorrowed": false}]',
        '[{"id": 1, "title": "Dune", "category": "x", "isBorrowed": "yes"}]',
        '["Dune"]',
        '[{"id": 1, "title": "   ", "category": "x", "isBorrowed": false}]',
        '[{"id": 1, "title": "Dune", "category": "", "isBorrowed": false}]',
    ],
)
def test_load_corrupted_data_is_empty(adapter, store, raw, caplog):
    store.set_item(BOOKS_KEY, raw)
    with caplog.at_level(logging.WARNING):
        assert adapter.load_books() == []
    assert "books" in caplog.text


def test_load_from_unavailable_store(adapter, store):
    store.available = False
    assert adapter.load_books() == []


def test_save_to_unavailable_store(adapter, store, caplog):
    store.available = False
    with caplog.at_level(logging.WARNING):
        assert adapter.save_books([Book(1, "Dune", "Sci-Fi")]) is False
    assert "Could not save 'books'" in caplog.text


def test_memory_store_basics():
    store = MemoryKeyValueStore({"a": "1"})
    assert store.get_item("a") == "1"
    store.set_item("a", "2")
    store.remove_item("a")
    store.remove_item("missing")
    assert store.get_item("a") is None


def test_sqlite_store(db_file):
    store = SQLiteKeyValueStore(db_file)
    assert store.get_item("books") is None

    store.set_item("books", "[]")
    store.set_item("books", '[{"id": 1}]')
    assert store.get_item("books") == '[{"id": 1}]'

    # Values survive a new store over the same file
    assert SQLiteKeyValueStore(db_file).get_item("books") == '[{"id": 1}]'

    store.remove_item("books")
    assert store.get_item("books") is None
    assert os.path.exists(db_file)


def test_sqlite_store_bad_path(tmp_path):
    store = SQLiteKeyValueStore(str(tmp_path / "missing-dir" / "library.db"))
    with pytest.raises(StorageUnavailableError):
        store.set_item("books", "[]")

    # The adapter turns the failure into an empty load and a failed save
    adapter = PersistenceAdapter(store)
    assert adapter.load_books() == []
    assert adapter.save_books([]) is False


def test_book_from_dict_accepts_integral_float_ids():
    book = Book.from_dict({"id": 3.0, "title": " Dune ", "category": "Sci-Fi", "isBorrowed": False})
    assert book.id == 3
    assert book.title == "Dune"


def test_borrow_event_is_immutable():
    event = BorrowEvent(1, "Dune", "1/1/2025")
    with pytest.raises(AttributeError):
        event.title = "Other"


def test_load_deeply_nested_data_is_empty(adapter, store, caplog):
    store.set_item(BOOKS_KEY, "[" * 200000 + "]" * 200000)
    with caplog.at_level(logging.WARNING):
        assert adapter.load_books() == []
    assert "Ignoring unparseable data in 'books'" in caplog.text


def test_sqlite_store_rejects_unencodable_text(db_file):
    store = SQLiteKeyValueStore(db_file)
    with pytest.raises(StorageUnavailableError):
        store.set_item("books", "Dune \udcff")

    # Lone surrogates come from non UTF-8 command-line arguments
    adapter = PersistenceAdapter(store)
    assert adapter.save_books([Book(1, "Dune \udcff", "Sci-Fi")]) is False
    assert adapter.load_books() == []
