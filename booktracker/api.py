import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from booktracker.config import settings
from booktracker.library import Library
from booktracker.views import LibraryView

logger = logging.getLogger(__name__)


# --- Schemas ---
class BookCreate(BaseModel):
    title: str = Field(..., description="Book title")
    category: str = Field(..., description="Book category")


class BookOut(BaseModel):
    id: int
    title: str
    category: str
    isBorrowed: bool


class BorrowEventOut(BaseModel):
    id: int
    title: str
    date: str


class BookPage(BaseModel):
    books: List[BookOut]
    query: str
    page: int
    totalPages: int
    totalMatches: int
    pageNumbers: List[int]


def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(library: Optional[Library] = None) -> FastAPI:
    """Build the API around ``library``; without one, the configured SQLite file is opened at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.library is None:
            app.state.library = Library.open(settings.db_file)
            logger.info("Library loaded from %s", settings.db_file)
        yield

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.library = library

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health(lib: Library = Depends(get_library)):
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "total_books": len(lib.list_books()),
            "storage_ok": lib.last_save_ok,
        }

    @app.get("/books", response_model=BookPage)
    def list_books(
        q: str = Query("", description="Case-insensitive title search"),
        page: int = Query(1, description="1-based page number"),
        lib: Library = Depends(get_library),
    ):
        view = LibraryView(lib, page_size=settings.page_size)
        view.query = q
        result = view.go_to_page(page).to_dict()
        view.close()
        result.pop("history")
        return result

    @app.post("/books", response_model=BookOut, status_code=201)
    def add_book(payload: BookCreate, lib: Library = Depends(get_library)):
        book = lib.add_book(payload.title, payload.category)
        if book is None:
            raise HTTPException(status_code=422, detail="Title and category are required.")
        return book.to_dict()

    @app.get("/books/{book_id}", response_model=BookOut)
    def get_book(book_id: int, lib: Library = Depends(get_library)):
        book = lib.find_book(book_id)
        if book is None:
            raise HTTPException(status_code=404, detail="Book not found.")
        return book.to_dict()

    @app.post("/books/{book_id}/toggle", response_model=BookOut)
    def toggle_borrow(book_id: int, lib: Library = Depends(get_library)):
        book = lib.toggle_borrow(book_id)
        if book is None:
            raise HTTPException(status_code=404, detail="Book not found.")
        return book.to_dict()

    @app.delete("/books/{book_id}", status_code=204)
    def delete_book(book_id: int, lib: Library = Depends(get_library)):
        lib.delete_book(book_id)
        return Response(status_code=204)

    @app.get("/history", response_model=List[BorrowEventOut])
    def list_history(lib: Library = Depends(get_library)):
        return [event.to_dict() for event in lib.list_history()]

    @app.delete("/history/{entry_id}", status_code=204)
    def delete_history_entry(entry_id: int, lib: Library = Depends(get_library)):
        lib.delete_history_entry(entry_id)
        return Response(status_code=204)

    return app


app = create_app()
