"""Local storage for OAuth client credentials and tokens.

Two JSON files are involved:
    credentials.json - OAuth client from Google Cloud Console (read-only)
    token.json       - the persisted access/refresh token pair

The token file is written in the google-auth "authorized user" layout.
Token files produced by the Node.js version of this tool (``access_token``,
space-separated ``scope``, ``expiry_date`` in milliseconds) are read too.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from sheets_cli.config import GOOGLE_CREDENTIALS, GOOGLE_TOKEN
from sheets_cli.google.exceptions import (
    ConfigurationError,
    CredentialsNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URI = "http://localhost"


@dataclass(frozen=True)
class ClientDescriptor:
    """OAuth client registration loaded from credentials.json."""

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass
class TokenPair:
    """An access token and the data needed to renew it."""

    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    scopes: list[str] = field(default_factory=list)
    token_type: str = "Bearer"

    def __post_init__(self) -> None:
        # Naive datetimes are taken as UTC
        if self.expiry is not None and self.expiry.tzinfo is None:
            self.expiry = self.expiry.replace(tzinfo=timezone.utc)
        self.scopes = list(self.scopes)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expiry is None:
            return False
        return self.expiry <= (now or datetime.now(timezone.utc))

    def has_scopes(self, required: list[str]) -> bool:
        return set(required).issubset(self.scopes)

    def info(self) -> dict[str, Any]:
        """Get information about the token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if self.expiry is not None:
            expires_in = (self.expiry - datetime.now(timezone.utc)).total_seconds()
            expires_str = str(timedelta(seconds=int(max(0, expires_in))))
        else:
            expires_str = "unknown"

        return {
            "status": "expired" if self.is_expired() else "valid",
            "scopes": list(self.scopes),
            "expires_in": expires_str,
            "has_refresh_token": bool(self.refresh_token),
        }

    @classmethod
    def from_oauth_response(
        cls, token: dict[str, Any], previous: TokenPair | None = None
    ) -> TokenPair:
        """Build a token pair from a token endpoint response (Authlib format).

        Google omits the refresh token when refreshing, so the previous
        one is carried over when given.
        """
        if not token.get("access_token"):
            raise ValueError("Token response has no access_token")

        expires_at = token.get("expires_at")
        expiry = (
            datetime.fromtimestamp(float(expires_at), tz=timezone.utc)
            if expires_at
            else None
        )
        scope = token.get("scope") or ""
        scopes = scope.split() if isinstance(scope, str) else list(scope)
        if not scopes and previous is not None:
            scopes = list(previous.scopes)

        refresh_token = token.get("refresh_token")
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token

        return cls(
            access_token=token["access_token"],
            refresh_token=refresh_token,
            expiry=expiry,
            scopes=scopes,
            token_type=token.get("token_type") or "Bearer",
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenPair:
        """Parse a token file payload."""
        access_token = data.get("token") or data.get("access_token")
        if not access_token:
            raise ValueError("Token file has no access token")

        scopes = data.get("scopes")
        if scopes is None:
            scope = data.get("scope") or []
            scopes = scope.split() if isinstance(scope, str) else scope

        return cls(
            access_token=access_token,
            refresh_token=data.get("refresh_token"),
            expiry=_parse_expiry(data),
            scopes=list(scopes),
            token_type=data.get("type") or data.get("token_type") or "Bearer",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_uri": TOKEN_URI,
            "scopes": list(self.scopes),
            "type": self.token_type,
            "expiry": self.expiry.isoformat() if self.expiry else None,
        }


def _parse_expiry(data: dict[str, Any]) -> datetime | None:
    expiry = data.get("expiry")
    if isinstance(expiry, str) and expiry:
        return datetime.fromisoformat(expiry.replace("Z", "+00:00"))
    if isinstance(expiry, (int, float)):
        return datetime.fromtimestamp(expiry, tz=timezone.utc)

    # Node.js googleapis stores milliseconds since the epoch
    expiry_date = data.get("expiry_date")
    if isinstance(expiry_date, (int, float)):
        return datetime.fromtimestamp(expiry_date / 1000, tz=timezone.utc)
    return None


class CredentialStore:
    """Loads the OAuth client and owns the persisted token file.

    Example:
        >>> store = CredentialStore()
        >>> descriptor = store.load_client_descriptor()
        >>> token = store.load_persisted_token()  # None on first run
    """

    def __init__(
        self,
        credentials_path: str | Path | None = None,
        token_path: str | Path | None = None,
    ):
        """Initialize the store.

        Args:
            credentials_path: Path to OAuth credentials file. Defaults to
                credentials.json in the sheets-cli home directory.
            token_path: Path to store/load tokens. Defaults to token.json in
                the sheets-cli home directory.
        """
        self.credentials_path = Path(credentials_path) if credentials_path else GOOGLE_CREDENTIALS
        self.token_path = Path(token_path) if token_path else GOOGLE_TOKEN
        self._descriptor: ClientDescriptor | None = None

    def load_client_descriptor(self) -> ClientDescriptor:
        """Load OAuth client credentials from file.

        Raises:
            CredentialsNotFoundError: If the file does not exist.
            ConfigurationError: If the file is not a valid client secret file.
        """
        if self._descriptor is not None:
            return self._descriptor

        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read {self.credentials_path}: {e}", step="load_credentials"
            ) from e

        # Handle both web and installed app credential formats
        if not isinstance(creds, dict):
            app_creds = None
        elif "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            app_creds = None

        if not isinstance(app_creds, dict):
            raise ConfigurationError(
                "Invalid credentials.json format. Expected 'installed' or 'web' key.",
                step="load_credentials",
            )

        client_id = app_creds.get("client_id")
        client_secret = app_creds.get("client_secret")
        if not client_id or not client_secret:
            raise ConfigurationError(
                "Invalid credentials.json format. Missing client_id or client_secret.",
                step="load_credentials",
            )

        redirect_uris = app_creds.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
        self._descriptor = ClientDescriptor(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uris[0],
        )
        return self._descriptor

    def load_persisted_token(self) -> TokenPair | None:
        """Load token from storage.

        Returns:
            The stored token pair, or None if no token was ever saved.

        Raises:
            StorageError: If the token file exists but cannot be parsed.
        """
        if not self.token_path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.token_path) as f:
                token = TokenPair.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError, OverflowError) as e:
            raise StorageError(
                f"Failed to load token from {self.token_path}: {e}", step="load_token"
            ) from e

        logger.info(f"Loaded token with scopes: {token.scopes}")
        return token

    def save_persisted_token(self, token: TokenPair) -> None:
        """Save token to storage, replacing any previous token in full.

        Raises:
            StorageError: If the file cannot be written.
        """
        tmp_name = None
        try:
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.token_path.parent, prefix=".token-", suffix=".json"
            )
            with os.fdopen(fd, "w") as f:
                json.dump(token.to_dict(), f, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.token_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(
                f"Failed to save token to {self.token_path}: {e}", step="save_token"
            ) from e

        logger.info(f"Token saved to {self.token_path}")

    def delete_persisted_token(self) -> bool:
        """Remove the token file.

        Returns:
            True if a token file was removed.
        """
        if not self.token_path.exists():
            return False
        try:
            self.token_path.unlink()
        except OSError as e:
            raise StorageError(
                f"Failed to delete {self.token_path}: {e}", step="delete_token"
            ) from e
        return True
