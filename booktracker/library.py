import logging
import time
from datetime import date
from threading import RLock
from typing import Callable, Iterable, List, Optional

from booktracker.book import Book, BorrowEvent
from booktracker.database import SQLiteKeyValueStore
from booktracker.storage import PersistenceAdapter

logger = logging.getLogger(__name__)

Listener = Callable[["Library"], None]


class TimestampIdFactory:
    """Issues millisecond wall-clock ids that are strictly increasing.

    When the clock has not advanced since the last id (or went backwards),
    the previous id plus one is issued instead.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = RLock()

    def seed(self, ids: Iterable[int]) -> None:
        with self._lock:
            self._last = max([self._last, *ids])

    def __call__(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            self._last = max(candidate, self._last + 1)
            return self._last


def format_borrow_date(day: date) -> str:
    """Format a date the way the browser's en-US ``toLocaleDateString`` does (M/D/YYYY)."""
    return f"{day.month}/{day.day}/{day.year}"


class Library:
    """Owns the book collection and the borrow history and persists every change.

    Each mutation, its save and its change notification run under one lock, so
    callers on several threads (the API's worker pool) never interleave.
    """

    def __init__(
        self,
        storage: PersistenceAdapter,
        *,
        book_ids: Optional[Callable[[], int]] = None,
        event_ids: Optional[Callable[[], int]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.storage = storage
        self._today = today
        self._listeners: List[Listener] = []
        self._lock = RLock()
        self.last_save_ok = True

        self.books: List[Book] = storage.load_books()
        self.history: List[BorrowEvent] = storage.load_history()

        self._book_ids = book_ids or TimestampIdFactory()
        self._event_ids = event_ids or TimestampIdFactory()
        # Keep new ids clear of anything already persisted
        if isinstance(self._book_ids, TimestampIdFactory):
            self._book_ids.seed(book.id for book in self.books)
        if isinstance(self._event_ids, TimestampIdFactory):
            self._event_ids.seed(event.id for event in self.history)

    @classmethod
    def open(cls, db_file: str, **kwargs) -> "Library":
        """Build a library persisted to a SQLite key-value file."""
        return cls(PersistenceAdapter(SQLiteKeyValueStore(db_file)), **kwargs)

    # ------------------------- Core operations ------------------------- #
    def add_book(self, title: str, category: str) -> Optional[Book]:
        """Add a book; blank title or category is silently ignored."""
        title = (title or "").strip()
        category = (category or "").strip()
        if not title or not category:
            logger.debug("Rejected book with blank title or category")
            return None

        with self._lock:
            book = Book(id=self._book_ids(), title=title, category=category)
            self.books.append(book)
            logger.debug("Added book %s (%s)", book.id, book.title)
            self._persist_books()
            self._notify()
            return book.copy()

    def delete_book(self, book_id: int) -> None:
        """Remove a book by id. History entries for it are kept."""
        with self._lock:
            remaining = [b for b in self.books if b.id != book_id]
            if len(remaining) == len(self.books):
                return
            self.books = remaining
            logger.debug("Deleted book %s", book_id)
            self._persist_books()
            self._notify()

    def toggle_borrow(self, book_id: int) -> Optional[Book]:
        """Flip a book between borrowed and returned.

        Only the borrow transition is logged to history; returns are not.
        Returns the updated book, or None when no book has this id.
        """
        with self._lock:
            book = self._find(book_id)
            if book is None:
                return None

            book.is_borrowed = not book.is_borrowed
            if book.is_borrowed:
                event = BorrowEvent(
                    id=self._event_ids(),
                    title=book.title,
                    date=format_borrow_date(self._today()),
                )
                self.history.append(event)
                logger.debug("Borrowed book %s", book_id)
            else:
                logger.debug("Returned book %s", book_id)

            books_ok = self.storage.save_books(self.books)
            history_ok = self.storage.save_history(self.history)
            self.last_save_ok = books_ok and history_ok
            self._notify()
            return book.copy()

    def delete_history_entry(self, event_id: int) -> None:
        with self._lock:
            remaining = [e for e in self.history if e.id != event_id]
            if len(remaining) == len(self.history):
                return
            self.history = remaining
            logger.debug("Deleted history entry %s", event_id)
            self.last_save_ok = self.storage.save_history(self.history)
            self._notify()

    # ------------------------- Queries ------------------------- #
    def list_books(self) -> List[Book]:
        """Copies of the books in insertion order; changing them does not touch the library."""
        with self._lock:
            return [book.copy() for book in self.books]

    def list_history(self) -> List[BorrowEvent]:
        with self._lock:
            return list(self.history)

    def find_book(self, book_id: int) -> Optional[Book]:
        with self._lock:
            book = self._find(book_id)
            return book.copy() if book else None

    def _find(self, book_id: int) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    # ------------------------- Change notification ------------------------- #
    def subscribe(self, listener: Listener) -> None:
        """Call ``listener(library)`` after every change to books or history."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------- Persistence ------------------------- #
    def _persist_books(self) -> None:
        self.last_save_ok = self.storage.save_books(self.books)
