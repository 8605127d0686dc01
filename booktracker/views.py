"""Search and pagination over the library's books.

The functions here are pure. ``LibraryView`` keeps the search query and the
current page for a presentation layer and recomputes its page whenever the
library reports a change.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from booktracker.book import Book, BorrowEvent
from booktracker.library import Library

DEFAULT_PAGE_SIZE = 6


def filter_books(books: Sequence[Book], query: str) -> List[Book]:
    """Case-insensitive substring match on title. Category is not searched."""
    needle = (query or "").lower()
    return [book for book in books if needle in book.title.lower()]


def paginate(books: Sequence[Book], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> List[Book]:
    """Return the 1-based ``page``; pages outside the range are empty."""
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(books[start:start + page_size])


def total_pages(count: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def page_numbers(pages: int) -> List[int]:
    return list(range(1, pages + 1))


@dataclass
class PageView:
    books: List[Book]
    query: str
    page: int
    total_pages: int
    total_matches: int
    page_numbers: List[int] = field(default_factory=list)
    history: List[BorrowEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "books": [book.to_dict() for book in self.books],
            "query": self.query,
            "page": self.page,
            "totalPages": self.total_pages,
            "totalMatches": self.total_matches,
            "pageNumbers": self.page_numbers,
            "history": [event.to_dict() for event in self.history],
        }


class LibraryView:
    """Query and page state over a library, kept current through its change notifications.

    Changing the query leaves the current page alone, and ``go_to_page`` does
    not clamp, so a narrowed search can land on an empty page.
    """

    def __init__(self, library: Library, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.library = library
        self.page_size = page_size
        self.query = ""
        self.current_page = 1
        self._snapshot: Optional[PageView] = None
        library.subscribe(self._on_change)

    def close(self) -> None:
        self.library.unsubscribe(self._on_change)

    def set_query(self, query: str) -> PageView:
        self.query = query or ""
        return self.refresh()

    def go_to_page(self, page: int) -> PageView:
        self.current_page = page
        return self.refresh()

    def snapshot(self) -> PageView:
        if self._snapshot is None:
            return self.refresh()
        return self._snapshot

    def refresh(self) -> PageView:
        matches = filter_books(self.library.list_books(), self.query)
        pages = total_pages(len(matches), self.page_size)
        self._snapshot = PageView(
            books=paginate(matches, self.current_page, self.page_size),
            query=self.query,
            page=self.current_page,
            total_pages=pages,
            total_matches=len(matches),
            page_numbers=page_numbers(pages),
            history=self.library.list_history(),
        )
        return self._snapshot

    def _on_change(self, library: Library) -> None:
        self.refresh()
