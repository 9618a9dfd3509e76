"""Tests for the Google Sheets client."""

import asyncio
import socket
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from sheets_cli.google import (
    AuthorizationError,
    AuthorizedClientProvider,
    ConfigurationError,
    CredentialStore,
    NetworkError,
)
from sheets_cli.sheets import SheetsAPIError, SpreadsheetClient


@pytest.fixture
def authorized_store(mock_credentials, mock_token):
    return CredentialStore(credentials_path=mock_credentials, token_path=mock_token)


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def values(service):
    """The spreadsheets().values() collection of the mock service."""
    return service.spreadsheets.return_value.values.return_value


@pytest.fixture
def client(authorized_store, service):
    provider = AuthorizedClientProvider(store=authorized_store, spreadsheet_id="sheet-123")
    with patch("sheets_cli.google.oauth.build", return_value=service) as build:
        client = asyncio.run(SpreadsheetClient.create(provider))
        client.build = build
        yield client


def http_error(status, message="error"):
    resp = httplib2.Response({"status": status})
    content = f'{{"error": {{"code": {status}, "message": "{message}"}}}}'.encode()
    return HttpError(resp, content)


class TestCreate:
    def test_constructor_is_private(self):
        with pytest.raises(TypeError, match="create"):
            SpreadsheetClient(MagicMock())

    def test_create_binds_spreadsheet(self, client):
        assert client.spreadsheet_id == "sheet-123"

    def test_missing_spreadsheet_id(self, authorized_store):
        provider = AuthorizedClientProvider(store=authorized_store, spreadsheet_id="")
        with pytest.raises(ConfigurationError, match="SPREADSHEET_ID"):
            asyncio.run(SpreadsheetClient.create(provider))

    def test_missing_spreadsheet_id_checked_before_consent(self, store):
        opened, prompts = [], []
        provider = AuthorizedClientProvider(
            store=store, spreadsheet_id="", opener=opened.append, prompt=prompts.append
        )

        with pytest.raises(ConfigurationError):
            asyncio.run(SpreadsheetClient.create(provider))

        assert opened == []
        assert prompts == []
        assert provider.handle is None

    def test_service_built_once(self, client, values):
        values.get.return_value.execute.return_value = {}
        client.read_range()
        client.read_range()
        client.build.assert_called_once()
        assert client.build.call_args.args == ("sheets", "v4")


class TestReading:
    def test_read_range(self, client, values):
        values.get.return_value.execute.return_value = {
            "values": [["ID", "Name"], ["1", "Alice"]]
        }

        rows = client.read_range("Sheet1!A1:B2")

        assert rows == [["ID", "Name"], ["1", "Alice"]]
        values.get.assert_called_with(spreadsheetId="sheet-123", range="Sheet1!A1:B2")

    def test_read_default_range(self, client, values):
        values.get.return_value.execute.return_value = {}
        assert client.read_range() == []
        values.get.assert_called_with(spreadsheetId="sheet-123", range="Sheet1!A1:Z1000")

    def test_search_rows_is_case_insensitive(self, client, values):
        values.get.return_value.execute.return_value = {
            "values": [
                ["ID", "Name", "Email"],
                ["1", "Juan Pérez", "juan@example.com"],
                ["2", "María García", "maria@example.com"],
                ["3", "Carlos López"],
            ]
        }

        assert client.search_rows("JUAN") == [["1", "Juan Pérez", "juan@example.com"]]
        assert client.search_rows("example.com") == [
            ["1", "Juan Pérez", "juan@example.com"],
            ["2", "María García", "maria@example.com"],
        ]
        assert client.search_rows("nobody") == []

    def test_search_matches_numbers(self, client, values):
        values.get.return_value.execute.return_value = {"values": [[42, "x"], [7, "y"]]}
        assert client.search_rows("42") == [[42, "x"]]

    def test_search_uses_given_range(self, client, values):
        values.get.return_value.execute.return_value = {}
        client.search_rows("x", "Data!A:C")
        values.get.assert_called_with(spreadsheetId="sheet-123", range="Data!A:C")


class TestWriting:
    def test_write_range(self, client, values):
        values.update.return_value.execute.return_value = {"updatedRows": 2}
        data = [["ID", "Name"], ["1", "Alice"]]

        assert client.write_range(data, "Sheet1!A1") == 2
        values.update.assert_called_with(
            spreadsheetId="sheet-123",
            range="Sheet1!A1",
            valueInputOption="RAW",
            body={"values": data},
        )

    def test_append_rows(self, client, values):
        values.append.return_value.execute.return_value = {"updates": {"updatedRows": 1}}

        assert client.append_rows([["7", "Ana"]]) == 1
        kwargs = values.append.call_args.kwargs
        assert kwargs["range"] == "Sheet1"
        assert kwargs["insertDataOption"] == "INSERT_ROWS"
        assert kwargs["body"] == {"values": [["7", "Ana"]]}

    def test_clear_range(self, client, values):
        values.clear.return_value.execute.return_value = {"clearedRange": "Sheet1!A1:Z100"}

        assert client.clear_range("Sheet1!A1:Z100") == "Sheet1!A1:Z100"
        assert values.clear.call_args.kwargs["range"] == "Sheet1!A1:Z100"


class TestSpreadsheetInfo:
    RESPONSE = {
        "spreadsheetId": "sheet-123",
        "spreadsheetUrl": "https://docs.google.com/spreadsheets/d/sheet-123/edit",
        "properties": {"title": "Contacts"},
        "sheets": [
            {
                "properties": {
                    "sheetId": 0,
                    "title": "Sheet1",
                    "index": 0,
                    "gridProperties": {"rowCount": 500, "columnCount": 10},
                }
            },
            {"properties": {"sheetId": 99, "title": "Archive", "index": 1}},
        ],
    }

    def test_get_spreadsheet_info(self, client, service):
        service.spreadsheets.return_value.get.return_value.execute.return_value = self.RESPONSE

        info = client.get_spreadsheet_info()

        assert info.title == "Contacts"
        assert info.url.endswith("/edit")
        assert info.default_sheet.title == "Sheet1"
        assert info.sheets[0].row_count == 500
        service.spreadsheets.return_value.get.assert_called_with(spreadsheetId="sheet-123")

    def test_list_sheets(self, client, service):
        service.spreadsheets.return_value.get.return_value.execute.return_value = self.RESPONSE

        sheets = client.list_sheets()

        assert [(s.id, s.title, s.index) for s in sheets] == [(0, "Sheet1", 0), (99, "Archive", 1)]
        assert sheets[1].column_count == 26


class TestErrors:
    def test_http_error(self, client, values):
        values.get.return_value.execute.side_effect = http_error(404, "Not found")

        with pytest.raises(SheetsAPIError) as exc_info:
            client.read_range()

        assert exc_info.value.status_code == 404
        assert isinstance(exc_info.value.__cause__, HttpError)

    def test_network_error(self, client, values):
        values.update.return_value.execute.side_effect = socket.timeout("timed out")

        with pytest.raises(NetworkError):
            client.write_range([["x"]])

    def test_httplib2_error(self, client, values):
        values.clear.return_value.execute.side_effect = httplib2.ServerNotFoundError("no host")

        with pytest.raises(NetworkError):
            client.clear_range()

    def test_revoked_token_raises_authorization_error(self, client, values):
        values.get.return_value.execute.side_effect = RefreshError(
            "invalid_grant: Token has been expired or revoked."
        )

        with pytest.raises(AuthorizationError) as exc_info:
            client.read_range()

        assert exc_info.value.step == "refresh"
        assert isinstance(exc_info.value.__cause__, RefreshError)
