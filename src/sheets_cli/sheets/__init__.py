"""Google Sheets API client with OAuth authentication.

Read and write one spreadsheet (named by SPREADSHEET_ID) with OAuth 2.0.

Usage:
    from sheets_cli.sheets import SpreadsheetClient

    # Authorize (opens a browser the first time) and bind to the spreadsheet
    client = await SpreadsheetClient.create()

    # Read values
    values = client.read_range("Sheet1!A1:C10")

    # Find rows mentioning a name
    rows = client.search_rows("alice")

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Import: sheets-cli auth import ~/Downloads/credentials.json
    3. Authorize: sheets-cli auth login
"""

from __future__ import annotations

from sheets_cli.sheets.client import Sheet, Spreadsheet, SpreadsheetClient
from sheets_cli.sheets.exceptions import SheetsAPIError

__all__ = ["SpreadsheetClient", "Spreadsheet", "Sheet", "SheetsAPIError"]
