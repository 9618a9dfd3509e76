"""Shared fixtures."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sheets_cli.google import CredentialStore
from sheets_cli.google.oauth import DEFAULT_SCOPES, resolve_scopes


@pytest.fixture
def required_scopes():
    return resolve_scopes(DEFAULT_SCOPES)


@pytest.fixture
def mock_credentials(tmp_path):
    """Create a mock credentials file."""
    creds = {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }
    creds_path = tmp_path / "credentials.json"
    with open(creds_path, "w") as f:
        json.dump(creds, f)
    return creds_path


@pytest.fixture
def mock_token(tmp_path, required_scopes):
    """Create a mock token file with the default scopes."""
    token = {
        "token": "test-access-token",
        "refresh_token": "test-refresh-token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "scopes": required_scopes,
        "type": "Bearer",
        "expiry": "2099-01-01T00:00:00Z",
    }
    token_path = tmp_path / "token.json"
    with open(token_path, "w") as f:
        json.dump(token, f)
    return token_path


@pytest.fixture
def store(mock_credentials, tmp_path):
    """Credential store with client credentials and no token yet."""
    return CredentialStore(
        credentials_path=mock_credentials,
        token_path=tmp_path / "token.json",
    )


@pytest.fixture
def token_response(required_scopes):
    """A successful token endpoint response, as returned by Authlib."""
    expires_at = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    return {
        "access_token": "new-access-token",
        "refresh_token": "new-refresh-token",
        "token_type": "Bearer",
        "expires_in": 3600,
        "expires_at": expires_at,
        "scope": " ".join(required_scopes),
    }
