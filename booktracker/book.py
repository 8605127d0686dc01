from __future__ import annotations

from dataclasses import dataclass


def _coerce_id(value) -> int:
    # Persisted ids are JSON numbers; bool is an int subclass and is rejected.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Invalid id: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Invalid id: {value!r}")
        value = int(value)
    return value


def _require_str(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


class Book:
    """A single book in the personal library."""

    def __init__(self, id: int, title: str, category: str, is_borrowed: bool = False) -> None:
        self.id = id
        self.title = title.strip()
        self.category = category.strip()
        self.is_borrowed = is_borrowed

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        status = "borrowed" if self.is_borrowed else "available"
        return f"{self.title} [{self.category}] ({status})"

    def __repr__(self) -> str:
        return (
            f"Book(id={self.id!r}, title={self.title!r}, "
            f"category={self.category!r}, is_borrowed={self.is_borrowed!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def copy(self) -> "Book":
        return Book(self.id, self.title, self.category, self.is_borrowed)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "isBorrowed": self.is_borrowed,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        is_borrowed = data.get("isBorrowed", False)
        if not isinstance(is_borrowed, bool):
            raise TypeError("Field 'isBorrowed' must be a boolean")
        book = Book(
            id=_coerce_id(data["id"]),
            title=_require_str(data, "title"),
            category=_require_str(data, "category"),
            is_borrowed=is_borrowed,
        )
        if not book.title or not book.category:
            raise ValueError(f"Book {book.id} has a blank title or category")
        return book


@dataclass(frozen=True)
class BorrowEvent:
    """Append-only record of one borrow: a title snapshot and the date it happened."""

    id: int
    title: str
    date: str

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} - {self.date}"

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "date": self.date}

    @staticmethod
    def from_dict(data: dict) -> "BorrowEvent":
        return BorrowEvent(
            id=_coerce_id(data["id"]),
            title=_require_str(data, "title"),
            date=_require_str(data, "date"),
        )
