"""CLI for sheets-cli - OAuth setup and spreadsheet commands.

Usage:
    sheets-cli init                          # Create home directory, show setup instructions
    sheets-cli status                        # Show configuration status
    sheets-cli auth login                    # Interactive OAuth login
    sheets-cli auth status                   # Show OAuth token status
    sheets-cli auth revoke                   # Revoke OAuth token
    sheets-cli auth import <path>            # Import OAuth credentials
    sheets-cli info                          # Spreadsheet title and sheets
    sheets-cli sheets                        # List sheets
    sheets-cli read [RANGE]                  # Read a range
    sheets-cli write RANGE --row a,b,c       # Overwrite a range
    sheets-cli append [RANGE] --row a,b,c    # Append rows
    sheets-cli search TERM [--range RANGE]   # Rows containing TERM
    sheets-cli clear [RANGE]                 # Clear a range
    sheets-cli menu                          # Interactive menu
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
import webbrowser
from pathlib import Path

from sheets_cli import config
from sheets_cli.google import (
    AuthorizedClientProvider,
    ConfigurationError,
    CredentialStore,
    SheetsAuthError,
)
from sheets_cli.sheets import SheetsAPIError, SpreadsheetClient
from sheets_cli.sheets.client import (
    DEFAULT_APPEND_RANGE,
    DEFAULT_READ_RANGE,
)


def _make_store() -> CredentialStore:
    return CredentialStore(config.GOOGLE_CREDENTIALS, config.GOOGLE_TOKEN)


def _browser_opener(url: str) -> bool:
    print(f"\nAuthorize this app by visiting:\n{url}\n")
    return webbrowser.open(url)


def _print_only_opener(url: str) -> None:
    print(f"\nAuthorize this app by visiting:\n{url}\n")


def _make_provider(no_browser: bool = False) -> AuthorizedClientProvider:
    return AuthorizedClientProvider(
        store=_make_store(),
        opener=_print_only_opener if no_browser else _browser_opener,
    )


def cmd_init() -> int:
    """Initialize the sheets-cli home directory."""
    print("=" * 60)
    print("SHEETS-CLI SETUP")
    print("=" * 60)
    print()

    config.ensure_home_dir()
    print(f"Home directory: {config.HOME_DIR}/")
    print()

    print("File locations:")
    print()
    print(f"  {config.ENV_FILE}")
    print(f"    {config.SPREADSHEET_ID_VAR}=<id from the spreadsheet URL>")
    print()
    print(f"  {config.GOOGLE_CREDENTIALS}")
    print("    OAuth client credentials from Google Cloud Console")
    print()
    print(f"  {config.GOOGLE_TOKEN}")
    print("    OAuth tokens (created by 'sheets-cli auth login')")
    print()
    print("-" * 60)
    print()

    status = config.get_credential_status()
    if status["google"]["credentials"]:
        print("credentials.json exists")
    else:
        print("For Google OAuth, download credentials from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print(f"  Save as: {config.GOOGLE_CREDENTIALS}")
        print()

    if not status["spreadsheet_id"]:
        print(f"Set {config.SPREADSHEET_ID_VAR} in {config.ENV_FILE}")

    return 0


def cmd_status() -> int:
    """Show configuration status."""
    status = config.get_credential_status()

    print("=" * 60)
    print("SHEETS-CLI STATUS")
    print("=" * 60)
    print()
    print(f"Home directory: {status['home_dir']}")
    print()
    print(f"  config.env:        {'[x]' if status['env_file'] else '[ ]'}")
    print(f"  credentials.json:  {'[x]' if status['google']['credentials'] else '[ ]'}")
    print(f"  token.json:        {'[x]' if status['google']['token'] else '[ ]'}")
    print(f"  SPREADSHEET_ID:    {status['spreadsheet_id'] or '[ ]'}")
    print()
    return 0


def auth_login(no_browser: bool = False) -> int:
    """Interactive Google OAuth login."""
    print("=" * 60)
    print("SHEETS-CLI GOOGLE LOGIN")
    print("=" * 60)

    store = _make_store()
    store.load_client_descriptor()

    if store.load_persisted_token() is None:
        print("\nA browser window will open for Google consent.")
        print("After granting access, paste the code (or the redirect URL) here.")

    provider = _make_provider(no_browser)
    asyncio.run(provider.get_authorized_handle())
    print("\nAuthorized.")
    return auth_status()


def auth_status() -> int:
    """Show Google OAuth token status."""
    token = _make_store().load_persisted_token()
    if token is None:
        print("No token found - run 'sheets-cli auth login'")
        return 1

    info = token.info()
    print(f"Status        : {info['status']}")
    print(f"Scopes        : {', '.join(info['scopes'])}")
    print(f"Expires in    : {info['expires_in']}")
    print(f"Refresh token : {'yes' if info['has_refresh_token'] else 'no'}")
    return 0


def auth_revoke() -> int:
    """Revoke Google OAuth token."""
    from sheets_cli.google import revoke_token

    if revoke_token(_make_store()):
        print("Token revoked and local cache cleared")
    else:
        print("No token to revoke")
    return 0


def auth_import(source_path: str) -> int:
    """Import OAuth credentials from a file."""
    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}")
        return 1

    # Validate JSON format
    try:
        with open(source) as f:
            data = json.load(f)

        if not isinstance(data, dict) or ("installed" not in data and "web" not in data):
            print("Error: Invalid OAuth credentials format")
            print("Expected 'installed' or 'web' key in JSON")
            return 1

        # Get client ID for confirmation
        key = "installed" if "installed" in data else "web"
        if not isinstance(data[key], dict):
            print("Error: Invalid OAuth credentials format")
            print(f"Expected '{key}' to be a JSON object")
            return 1
        client_id = str(data[key].get("client_id", "unknown"))

    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}")
        return 1

    config.ensure_home_dir()
    shutil.copy2(source, config.GOOGLE_CREDENTIALS)

    print("Imported OAuth credentials")
    print(f"  From: {source}")
    print(f"  To:   {config.GOOGLE_CREDENTIALS}")
    print(f"  Client ID: {client_id[:40]}...")
    print()
    print("Next: Run 'sheets-cli auth login' to authorize")
    return 0


def run_sheet_command(args: argparse.Namespace) -> int:
    """Authorize, then run one spreadsheet command."""
    from sheets_cli.menu import format_rows, parse_rows

    client = asyncio.run(SpreadsheetClient.create(_make_provider(args.no_browser)))

    if args.command == "info":
        info = client.get_spreadsheet_info()
        print(f"Title  : {info.title}")
        print(f"Sheets : {', '.join(sheet.title for sheet in info.sheets or [])}")
        if info.url:
            print(f"URL    : {info.url}")
    elif args.command == "sheets":
        for sheet in client.list_sheets():
            print(f"  [{sheet.index}] {sheet.title} (id {sheet.id})")
    elif args.command == "read":
        print(format_rows(client.read_range(args.range)))
    elif args.command == "write":
        rows = parse_rows(";".join(args.row))
        print(f"Wrote {client.write_range(rows, args.range)} rows")
    elif args.command == "append":
        rows = parse_rows(";".join(args.row))
        print(f"Appended {client.append_rows(rows, args.range)} rows")
    elif args.command == "search":
        print(format_rows(client.search_rows(args.term, args.range)))
    elif args.command == "clear":
        print(f"Cleared {client.clear_range(args.range)}")
    return 0


def run_menu(no_browser: bool = False) -> int:
    """Start the interactive menu."""
    from sheets_cli.menu import SheetsMenu

    return SheetsMenu(_make_provider(no_browser)).start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheets-cli",
        description="Read and write a Google Sheets spreadsheet with OAuth2",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Create the home directory")
    subparsers.add_parser("status", help="Show configuration status")

    # auth subcommand
    auth_parser = subparsers.add_parser("auth", help="Google OAuth management")
    auth_parser.set_defaults(print_auth_help=auth_parser.print_help)
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command", help="Command")
    auth_subparsers.add_parser("login", help="Interactive OAuth login")
    auth_subparsers.add_parser("status", help="Show token status")
    auth_subparsers.add_parser("revoke", help="Revoke token")
    import_parser = auth_subparsers.add_parser("import", help="Import OAuth credentials")
    import_parser.add_argument("path", help="Path to credentials.json file")

    # spreadsheet commands
    subparsers.add_parser("info", help="Show spreadsheet information")
    subparsers.add_parser("sheets", help="List sheets")

    read_parser = subparsers.add_parser("read", help="Read a range")
    read_parser.add_argument("range", nargs="?", default=DEFAULT_READ_RANGE)

    write_parser = subparsers.add_parser("write", help="Write rows to a range")
    write_parser.add_argument("range")
    write_parser.add_argument(
        "--row", action="append", required=True, help="Comma-separated cells (repeatable)"
    )

    append_parser = subparsers.add_parser("append", help="Append rows to a sheet")
    append_parser.add_argument("range", nargs="?", default=DEFAULT_APPEND_RANGE)
    append_parser.add_argument(
        "--row", action="append", required=True, help="Comma-separated cells (repeatable)"
    )

    search_parser = subparsers.add_parser("search", help="Find rows containing a term")
    search_parser.add_argument("term")
    search_parser.add_argument("--range", default=DEFAULT_READ_RANGE)

    clear_parser = subparsers.add_parser("clear", help="Clear a range")
    clear_parser.add_argument("range", nargs="?", default=DEFAULT_READ_RANGE)

    subparsers.add_parser("menu", help="Interactive menu")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "init":
            return cmd_init()
        if args.command == "status":
            return cmd_status()
        if args.command == "auth":
            if args.auth_command == "login":
                return auth_login(args.no_browser)
            elif args.auth_command == "status":
                return auth_status()
            elif args.auth_command == "revoke":
                return auth_revoke()
            elif args.auth_command == "import":
                return auth_import(args.path)
            else:
                args.print_auth_help()
                return 0
        if args.command == "menu":
            return run_menu(args.no_browser)
        return run_sheet_command(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Run 'sheets-cli init' for setup instructions", file=sys.stderr)
        return 1
    except (SheetsAuthError, SheetsAPIError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
