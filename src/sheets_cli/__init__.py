"""sheets-cli - Google Sheets from the command line with OAuth2.

Usage:
    import asyncio
    from sheets_cli import SpreadsheetClient

    client = asyncio.run(SpreadsheetClient.create())
    rows = client.read_range("Sheet1!A1:D10")
"""

from sheets_cli.google import AuthorizedClientProvider, CredentialStore
from sheets_cli.sheets import SpreadsheetClient

__version__ = "0.1.0"

__all__ = ["AuthorizedClientProvider", "CredentialStore", "SpreadsheetClient", "__version__"]
