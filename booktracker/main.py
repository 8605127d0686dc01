import logging
import os
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from booktracker.config import settings
from booktracker.library import Library
from booktracker.ui_helpers import print_history_result, print_page_result, set_output_mode
from booktracker.views import LibraryView

APP_NAME = "Library CLI"

console = Console()
logger = logging.getLogger(__name__)


class LibraryManager:
    """Holds the Library for the database file selected on the command line."""

    _instance: Optional[Library] = None
    _db_file: Optional[str] = None
    db_file: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Library:
        path = cls.db_file or settings.db_file
        # Rebuild when a different database file is selected
        if cls._instance is None or path != cls._db_file:
            cls._instance = Library.open(path)
            cls._db_file = path
            logger.debug("Library opened from %s", path)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._db_file = None
        cls.db_file = None


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _warn_if_unsaved(lib: Library) -> None:
    if not lib.last_save_ok:
        print(f"Warning: changes could not be saved to {LibraryManager._db_file}.")


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite file holding the library (default: LIBRARY_DB_FILE or library.db)",
    ),
):
    """Global options (output mode, database file)."""
    _configure_logging()
    if output:
        set_output_mode(output)
    LibraryManager.db_file = db


@app.command("list")
def cli_list(
    query: str = typer.Option("", "--query", "-q", help="Filter by title (case-insensitive)"),
    page: int = typer.Option(1, "--page", "-p", help="Page number, starting at 1"),
):
    """List one page of books, optionally filtered by title."""
    view = LibraryView(LibraryManager.get_instance(), page_size=settings.page_size)
    view.query = query
    print_page_result(view.go_to_page(page))
    view.close()


@app.command("add")
def cli_add(title: str, category: str):
    """Add a book with a title and a category."""
    lib = LibraryManager.get_instance()
    book = lib.add_book(title, category)
    if book is None:
        print("Title and category are required.")
        return
    print(f"Added: {book.title} [{book.category}] (id {book.id})")
    _warn_if_unsaved(lib)


@app.command("borrow")
def cli_borrow(book_id: int):
    """Borrow a book, or return it if it is already borrowed."""
    lib = LibraryManager.get_instance()
    book = lib.toggle_borrow(book_id)
    if book is None:
        print(f"Book with id {book_id} not found.")
        return
    if book.is_borrowed:
        print(f"Borrowed: {book.title}")
    else:
        print(f"Returned: {book.title}")
    _warn_if_unsaved(lib)


@app.command("delete")
def cli_delete(book_id: int):
    """Delete a book. Its borrow history is kept."""
    lib = LibraryManager.get_instance()
    if lib.find_book(book_id) is None:
        print(f"Book with id {book_id} not found.")
        return
    lib.delete_book(book_id)
    print(f"Book with id {book_id} has been deleted.")
    _warn_if_unsaved(lib)


@app.command("history")
def cli_history():
    """Show the borrow history, oldest first."""
    print_history_result(LibraryManager.get_instance().list_history())


@app.command("history-delete")
def cli_history_delete(entry_id: int):
    """Delete one borrow history entry."""
    lib = LibraryManager.get_instance()
    if not any(e.id == entry_id for e in lib.list_history()):
        print(f"History entry {entry_id} not found.")
        return
    lib.delete_history_entry(entry_id)
    print(f"History entry {entry_id} has been deleted.")
    _warn_if_unsaved(lib)


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, "--host"),
    port: int = typer.Option(settings.api_port, "--port"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Do not open the API docs in a browser"),
):
    """Run the HTTP API with uvicorn."""
    url = f"http://{host}:{port}"
    print(f"Starting API on {url}")
    env = dict(os.environ)
    env["LIBRARY_DB_FILE"] = LibraryManager.db_file or settings.db_file
    if not no_browser:
        webbrowser.open(f"{url}/docs")
    subprocess.run(
        [sys.executable, "-m", "uvicorn", "booktracker.api:app", "--host", host, "--port", str(port)],
        env=env,
    )


if __name__ == "__main__":
    app()
