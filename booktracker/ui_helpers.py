import os
import json
from typing import List
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from booktracker.book import BorrowEvent
from booktracker.views import PageView

# Environment variable controlling CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_page_result(view: PageView) -> None:
    """Print one page of books in the current output mode.
    - plain: 'ID - Title [Category] (status)' lines plus a page footer
    - json: the page view as a JSON object
    - rich: a Rich table with the page footer as caption
    """
    mode = get_output_mode()

    if mode == "json":
        payload = view.to_dict()
        payload.pop("history")
        print(json.dumps(payload, ensure_ascii=False))
        return

    if not view.books:
        print("No books found.")
        if view.total_pages:
            print(f"Page {view.page} of {view.total_pages}")
        return

    footer = f"Page {view.page} of {view.total_pages} ({view.total_matches} books)"
    if mode == "rich":
        table = Table(title="📚 Books", caption=footer, show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Category", style="white")
        table.add_column("Status")
        for b in view.books:
            status = "[red]Borrowed[/]" if b.is_borrowed else "[green]Available[/]"
            table.add_row(str(b.id), b.title, b.category, status)
        _console.print(table)
    else:
        for b in view.books:
            status = "borrowed" if b.is_borrowed else "available"
            print(f"{b.id} - {b.title} [{b.category}] ({status})")
        print(footer)


def print_history_result(history: List[BorrowEvent]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps([e.to_dict() for e in history], ensure_ascii=False))
        return

    if not history:
        print("No borrow history available.")
        return

    if mode == "rich":
        lines = "\n".join(f"[dim]{e.id}[/]  [bold]{e.title}[/] - {e.date}" for e in history)
        _console.print(Panel.fit(lines, title="📖 Borrow History", border_style="blue"))
    else:
        for e in history:
            print(f"{e.id} - {e.title} - {e.date}")
