"""Interactive numbered menu over a spreadsheet."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from sheets_cli.google.exceptions import AuthorizationError, NetworkError, StorageError
from sheets_cli.google.provider import AuthorizedClientProvider
from sheets_cli.sheets.client import (
    DEFAULT_APPEND_RANGE,
    DEFAULT_READ_RANGE,
    DEFAULT_WRITE_RANGE,
    SpreadsheetClient,
)
from sheets_cli.sheets.exceptions import SheetsAPIError

logger = logging.getLogger(__name__)

# Errors after which the menu is shown again
RECOVERABLE_ERRORS = (AuthorizationError, StorageError, NetworkError, SheetsAPIError)

MENU_OPTIONS = [
    ("1", "Read data"),
    ("2", "Write data"),
    ("3", "Append data"),
    ("4", "Search data"),
    ("5", "Clear data"),
    ("6", "Spreadsheet info"),
    ("7", "List sheets"),
    ("8", "Exit"),
]


def parse_rows(text: str) -> list[list[str]]:
    """Parse "a,b,c; d,e,f" into rows of cells."""
    rows = []
    for chunk in text.split(";"):
        if not chunk.strip():
            continue
        rows.append([cell.strip() for cell in chunk.split(",")])
    return rows


def format_rows(rows: list[list[Any]]) -> str:
    """Render rows as an aligned, numbered table."""
    if not rows:
        return "(no data)"

    ncols = max(len(row) for row in rows)
    widths = [
        max((len(str(row[i])) for row in rows if i < len(row)), default=0)
        for i in range(ncols)
    ]
    lines = []
    for num, row in enumerate(rows, start=1):
        cells = [str(cell).ljust(widths[i]) for i, cell in enumerate(row)]
        lines.append(f"{num:>4}  " + "  ".join(cells).rstrip())
    return "\n".join(lines)


class SheetsMenu:
    """Numbered menu loop.

    The client is created on the first command, so the OAuth flow only runs
    once the user actually asks for data.
    """

    def __init__(
        self,
        provider: AuthorizedClientProvider,
        reader: Callable[[str], str] = input,
    ):
        self.provider = provider
        self.reader = reader
        self._client: SpreadsheetClient | None = None
        self._commands = {
            "1": self.read_command,
            "2": self.write_command,
            "3": self.append_command,
            "4": self.search_command,
            "5": self.clear_command,
            "6": self.info_command,
            "7": self.sheets_command,
        }

    @property
    def client(self) -> SpreadsheetClient:
        if self._client is None:
            self._client = asyncio.run(SpreadsheetClient.create(self.provider))
        return self._client

    def show_menu(self) -> None:
        print()
        print("=" * 42)
        print("GOOGLE SHEETS COMMANDS")
        print("=" * 42)
        for key, label in MENU_OPTIONS:
            print(f"  {key}. {label}")
        print("=" * 42)

    def process_selection(self, choice: str) -> bool:
        """Run one menu choice.

        Returns:
            False when the user chose to exit.
        """
        choice = choice.strip()
        if choice == "8":
            print("Goodbye!")
            return False

        command = self._commands.get(choice)
        if command is None:
            print("Invalid option. Choose a number from 1 to 8.")
            return True

        try:
            command()
        except RECOVERABLE_ERRORS as e:
            logger.debug("Menu command failed", exc_info=True)
            print(f"Error: {e}")
        return True

    def start(self) -> int:
        """Run the menu until the user exits."""
        print("Google Sheets interactive commands (OAuth2)")

        running = True
        try:
            while running:
                self.show_menu()
                running = self.process_selection(self.reader("Select an option (1-8): "))
                if running:
                    self.reader("\nPress Enter to continue...")
        except EOFError:
            # Input closed
            print("\nGoodbye!")
        return 0

    def _ask(self, prompt: str, default: str) -> str:
        return self.reader(f"{prompt} [{default}]: ").strip() or default

    def read_command(self) -> None:
        range_notation = self._ask("Range to read", DEFAULT_READ_RANGE)
        print(format_rows(self.client.read_range(range_notation)))

    def write_command(self) -> None:
        range_notation = self._ask("Range to write", DEFAULT_WRITE_RANGE)
        rows = parse_rows(self.reader("Rows (cells separated by ',', rows by ';'): "))
        if not rows:
            print("Nothing to write.")
            return
        updated = self.client.write_range(rows, range_notation)
        print(f"Wrote {updated} rows")

    def append_command(self) -> None:
        range_notation = self._ask("Sheet to append to", DEFAULT_APPEND_RANGE)
        rows = parse_rows(self.reader("Rows (cells separated by ',', rows by ';'): "))
        if not rows:
            print("Nothing to append.")
            return
        appended = self.client.append_rows(rows, range_notation)
        print(f"Appended {appended} rows")

    def search_command(self) -> None:
        term = self.reader("Search term: ").strip()
        if not term:
            print("No search term given.")
            return
        print(format_rows(self.client.search_rows(term)))

    def clear_command(self) -> None:
        range_notation = self._ask("Range to clear", DEFAULT_READ_RANGE)
        print(f"Cleared {self.client.clear_range(range_notation)}")

    def info_command(self) -> None:
        info = self.client.get_spreadsheet_info()
        print(f"Title  : {info.title}")
        print(f"Sheets : {', '.join(sheet.title for sheet in info.sheets or [])}")
        if info.url:
            print(f"URL    : {info.url}")

    def sheets_command(self) -> None:
        for sheet in self.client.list_sheets():
            size = f"{sheet.row_count}x{sheet.column_count}"
            print(f"  [{sheet.index}] {sheet.title} (id {sheet.id}, {size})")
