"""Google Sheets API client implementation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from sheets_cli.google.exceptions import AuthorizationError, ConfigurationError, NetworkError
from sheets_cli.google.oauth import AuthorizedHandle
from sheets_cli.google.provider import AuthorizedClientProvider
from sheets_cli.sheets.exceptions import SheetsAPIError

logger = logging.getLogger(__name__)

DEFAULT_READ_RANGE = "Sheet1!A1:Z1000"
DEFAULT_WRITE_RANGE = "Sheet1!A1"
DEFAULT_APPEND_RANGE = "Sheet1"

_CREATE_KEY = object()


def _missing_spreadsheet_id() -> ConfigurationError:
    return ConfigurationError(
        "SPREADSHEET_ID is not set. Add it to config.env or the environment.",
        step="spreadsheet_id",
    )


@dataclass
class Sheet:
    """Represents a sheet within a spreadsheet."""

    id: int
    title: str
    index: int
    row_count: int = 1000
    column_count: int = 26


@dataclass
class Spreadsheet:
    """Represents a Google Spreadsheet."""

    id: str
    title: str
    sheets: list[Sheet] | None = None
    url: str | None = None

    @property
    def default_sheet(self) -> Sheet | None:
        """Get the first sheet."""
        if self.sheets:
            return self.sheets[0]
        return None


class SpreadsheetClient:
    """Google Sheets client bound to a single spreadsheet.

    Instances come only from :meth:`create`, which waits for OAuth
    authorization before returning.

    Usage:
        client = await SpreadsheetClient.create()

        # Read values
        values = client.read_range("Sheet1!A1:C10")

        # Write values
        client.write_range([["Name", "Age"], ["Alice", 30]], "Sheet1!A1")

        # Append rows
        client.append_rows([["Bob", 25], ["Carol", 35]], "Sheet1")
    """

    def __init__(self, handle: AuthorizedHandle, *, _key: object = None) -> None:
        if _key is not _CREATE_KEY:
            raise TypeError("Use SpreadsheetClient.create() to instantiate this class.")
        if not handle.context:
            raise _missing_spreadsheet_id()
        self._handle = handle
        self.spreadsheet_id: str = handle.context
        self._service: Any = None

    @classmethod
    async def create(
        cls, provider: AuthorizedClientProvider | None = None
    ) -> SpreadsheetClient:
        """Create an authorized client.

        Args:
            provider: Source of the authorized handle. A new provider reading
                the default files is used when omitted.
        """
        provider = provider or AuthorizedClientProvider()
        if not provider.spreadsheet_id:
            raise _missing_spreadsheet_id()
        handle = await provider.get_authorized_handle()
        client = cls(handle, _key=_CREATE_KEY)
        logger.info(f"Sheets client ready for spreadsheet {client.spreadsheet_id}")
        return client

    def _get_service(self) -> Any:
        """Get or create Sheets API service."""
        if self._service is None or self._handle.is_expired():
            self._service = self._handle.build_service("sheets", "v4")
        return self._service

    def _execute(self, action: str, request: Callable[[Any], Any]) -> dict[str, Any]:
        service = self._get_service()
        try:
            return request(service).execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            raise SheetsAPIError(f"Failed to {action}: {e}", status_code=status) from e
        except RefreshError as e:
            raise AuthorizationError(f"Failed to {action}: {e}", step="refresh") from e
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            raise NetworkError(f"Failed to {action}: {e}", step=action) from e

    # =========================================================================
    # Spreadsheet
    # =========================================================================

    def get_spreadsheet_info(self) -> Spreadsheet:
        """Get the spreadsheet title, URL and sheets."""
        result = self._execute(
            "get spreadsheet",
            lambda s: s.spreadsheets().get(spreadsheetId=self.spreadsheet_id),
        )
        spreadsheet = self._parse_spreadsheet(result)
        logger.info(f"Spreadsheet '{spreadsheet.title}' has {len(spreadsheet.sheets)} sheets")
        return spreadsheet

    def list_sheets(self) -> list[Sheet]:
        """List the sheets in the spreadsheet."""
        return self.get_spreadsheet_info().sheets or []

    # =========================================================================
    # Reading Data
    # =========================================================================

    def read_range(self, range_notation: str = DEFAULT_READ_RANGE) -> list[list[Any]]:
        """Read values from a range.

        Args:
            range_notation: A1 notation (e.g., "Sheet1!A1:C10").

        Returns:
            2D list of cell values; empty when the range holds no data.
        """
        result = self._execute(
            "read data",
            lambda s: s.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=range_notation),
        )
        values = result.get("values", [])
        logger.info(f"Read {len(values)} rows from {range_notation}")
        return values

    def search_rows(
        self, term: str, range_notation: str = DEFAULT_READ_RANGE
    ) -> list[list[Any]]:
        """Find rows with a cell containing the term (case-insensitive).

        Args:
            term: Text to look for.
            range_notation: Range to search.

        Returns:
            Matching rows in sheet order.
        """
        needle = term.lower()
        results = [
            row
            for row in self.read_range(range_notation)
            if any(cell is not None and needle in str(cell).lower() for cell in row)
        ]
        logger.info(f"Search for '{term}' matched {len(results)} rows")
        return results

    # =========================================================================
    # Writing Data
    # =========================================================================

    def write_range(
        self,
        values: list[list[Any]],
        range_notation: str = DEFAULT_WRITE_RANGE,
        value_input_option: str = "RAW",
    ) -> int:
        """Write values to a range.

        Args:
            values: 2D list of values to write.
            range_notation: A1 notation (e.g., "Sheet1!A1").
            value_input_option: How to interpret input ("RAW" or "USER_ENTERED").

        Returns:
            Number of rows updated.
        """
        result = self._execute(
            "write data",
            lambda s: s.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=range_notation,
                valueInputOption=value_input_option,
                body={"values": values},
            ),
        )
        return result.get("updatedRows", 0)

    def append_rows(
        self,
        values: list[list[Any]],
        range_notation: str = DEFAULT_APPEND_RANGE,
        value_input_option: str = "RAW",
    ) -> int:
        """Append rows after the last row of data.

        Args:
            values: 2D list of rows to append.
            range_notation: Sheet name or range to append to.
            value_input_option: How to interpret input.

        Returns:
            Number of rows appended.
        """
        result = self._execute(
            "append data",
            lambda s: s.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=range_notation,
                valueInputOption=value_input_option,
                insertDataOption="INSERT_ROWS",
                body={"values": values},
            ),
        )
        return result.get("updates", {}).get("updatedRows", 0)

    def clear_range(self, range_notation: str = DEFAULT_READ_RANGE) -> str:
        """Clear values from a range.

        Returns:
            The range that was cleared, as reported by the API.
        """
        result = self._execute(
            "clear data",
            lambda s: s.spreadsheets()
            .values()
            .clear(spreadsheetId=self.spreadsheet_id, range=range_notation, body={}),
        )
        return result.get("clearedRange", range_notation)

    def _parse_spreadsheet(self, data: dict) -> Spreadsheet:
        """Parse spreadsheet from API response."""
        sheets = []
        for sheet_data in data.get("sheets", []):
            props = sheet_data.get("properties", {})
            grid_props = props.get("gridProperties", {})
            sheets.append(
                Sheet(
                    id=props.get("sheetId", 0),
                    title=props.get("title", ""),
                    index=props.get("index", 0),
                    row_count=grid_props.get("rowCount", 1000),
                    column_count=grid_props.get("columnCount", 26),
                )
            )

        return Spreadsheet(
            id=data.get("spreadsheetId", self.spreadsheet_id),
            title=data.get("properties", {}).get("title", ""),
            sheets=sheets,
            url=data.get("spreadsheetUrl"),
        )
