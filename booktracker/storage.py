"""Persistence adapter between the in-memory collections and a key-value store.

Collections are stored as JSON arrays under fixed slot names. Loading fails
soft: an absent slot, unparseable JSON or a malformed record all read back as
an empty collection. Saving never raises for an unavailable store; it logs a
warning and reports ``False`` so the caller can surface it.
"""

import json
import logging
from typing import Callable, Iterable, List, TypeVar

from booktracker.book import Book, BorrowEvent
from booktracker.database import KeyValueStore, StorageUnavailableError

logger = logging.getLogger(__name__)

BOOKS_KEY = "books"
HISTORY_KEY = "borrowHistory"

T = TypeVar("T")


class PersistenceAdapter:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def load(self, key: str, factory: Callable[[dict], T]) -> List[T]:
        try:
            raw = self.store.get_item(key)
        except StorageUnavailableError as exc:
            logger.warning("Could not read '%s' from storage: %s", key, exc)
            return []
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.warning("Ignoring unparseable data in '%s': %s", key, exc)
            return []
        if not isinstance(data, list):
            logger.warning("Ignoring '%s': expected a list, got %s", key, type(data).__name__)
            return []

        try:
            return [factory(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError, RecursionError) as exc:
            logger.warning("Ignoring malformed record in '%s': %s", key, exc)
            return []

    def save(self, key: str, items: Iterable) -> bool:
        payload = json.dumps([item.to_dict() for item in items], ensure_ascii=False)
        try:
            self.store.set_item(key, payload)
        except StorageUnavailableError as exc:
            logger.warning("Could not save '%s'; changes are kept in memory only: %s", key, exc)
            return False
        return True

    def load_books(self) -> List[Book]:
        return self.load(BOOKS_KEY, Book.from_dict)

    def load_history(self) -> List[BorrowEvent]:
        return self.load(HISTORY_KEY, BorrowEvent.from_dict)

    def save_books(self, books: Iterable[Book]) -> bool:
        return self.save(BOOKS_KEY, books)

    def save_history(self, history: Iterable[BorrowEvent]) -> bool:
        return self.save(HISTORY_KEY, history)
