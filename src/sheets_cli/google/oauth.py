"""Google OAuth authorization flow using Authlib.

This module provides OAuth 2.0 authentication for the Sheets API with:
- A persisted-token short circuit (no browser once a token exists)
- Interactive authorization-code flow with a pasted code or redirect URL
- Token refresh with persistence of the renewed token
- Google API service creation

The flow moves through three states:

    NO_TOKEN -> AWAITING_USER_CODE -> AUTHORIZED

Any failure while awaiting or exchanging the code returns it to NO_TOKEN;
the caller retries by running the flow again.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.requests_client import OAuth2Session
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from sheets_cli.google.exceptions import (
    AuthorizationCancelled,
    AuthorizationError,
    NetworkError,
    ScopeMismatchError,
)
from sheets_cli.google.store import ClientDescriptor, CredentialStore, TokenPair

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"

SCOPES = {
    "sheets": "https://www.googleapis.com/auth/spreadsheets",
    "sheets_readonly": "https://www.googleapis.com/auth/spreadsheets.readonly",
    "drive_file": "https://www.googleapis.com/auth/drive.file",
}

DEFAULT_SCOPES = ["sheets", "drive_file"]

CODE_PROMPT = "Enter the authorization code (or paste the redirect URL): "

UrlOpener = Callable[[str], Any]
LineReader = Callable[[str], str]

_ISSUE_KEY = object()


class FlowState(Enum):
    NO_TOKEN = "no_token"
    AWAITING_USER_CODE = "awaiting_user_code"
    AUTHORIZED = "authorized"


def resolve_scopes(scopes: list[str]) -> list[str]:
    """Resolve scope names to full URLs."""
    resolved = []
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.append(scope)
        elif scope in SCOPES:
            resolved.append(SCOPES[scope])
        else:
            raise ValueError(
                f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
            )
    return resolved


def _new_session(
    descriptor: ClientDescriptor,
    scopes: list[str],
    token: dict[str, Any] | None = None,
) -> OAuth2Session:
    return OAuth2Session(
        client_id=descriptor.client_id,
        client_secret=descriptor.client_secret,
        scope=" ".join(scopes),
        redirect_uri=descriptor.redirect_uri,
        token=token,
        token_endpoint=TOKEN_URL,
        token_endpoint_auth_method="client_secret_post",
    )


class AuthorizedHandle:
    """An authorized OAuth client bound to one spreadsheet context.

    Handles are issued by :meth:`AuthorizationFlow.run`; callers get one
    through ``AuthorizedClientProvider.get_authorized_handle()``.
    """

    def __init__(
        self,
        descriptor: ClientDescriptor,
        token: TokenPair,
        store: CredentialStore,
        context: str | None = None,
        *,
        _key: object = None,
    ):
        if _key is not _ISSUE_KEY:
            raise TypeError(
                "AuthorizedHandle cannot be created directly; "
                "use AuthorizedClientProvider.get_authorized_handle()"
            )
        self.descriptor = descriptor
        self._token = token
        self._store = store
        self.context = context
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

    @property
    def token(self) -> TokenPair:
        return self._token

    def is_expired(self) -> bool:
        return self._token.is_expired()

    def refresh(self) -> TokenPair:
        """Renew the access token and persist the new token pair.

        Raises:
            AuthorizationError: If there is no refresh token or Google rejects it.
            NetworkError: If the token endpoint cannot be reached.
            StorageError: If the renewed token cannot be saved.
        """
        if not self._token.refresh_token:
            raise AuthorizationError(
                "Token expired and no refresh token is available", step="refresh"
            )

        session = _new_session(
            self.descriptor,
            self._token.scopes,
            token={
                "access_token": self._token.access_token,
                "refresh_token": self._token.refresh_token,
                "token_type": self._token.token_type,
            },
        )
        try:
            response = session.refresh_token(
                TOKEN_URL, refresh_token=self._token.refresh_token
            )
            token = TokenPair.from_oauth_response(dict(response), previous=self._token)
        except requests.RequestException as e:
            raise NetworkError(f"Token refresh failed: {e}", step="refresh") from e
        except (AuthlibBaseError, ValueError) as e:
            raise AuthorizationError(f"Failed to refresh token: {e}", step="refresh") from e

        self._store.save_persisted_token(token)
        self._token = token
        self.last_refresh = datetime.now(timezone.utc)
        self.refresh_count += 1
        logger.info("Token refreshed")
        return token

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Refreshes the token first if it has expired.
        """
        if self._token.is_expired():
            logger.info("Token expired, refreshing...")
            self.refresh()

        return GoogleCredentials(
            token=self._token.access_token,
            refresh_token=self._token.refresh_token,
            token_uri=TOKEN_URL,
            client_id=self.descriptor.client_id,
            client_secret=self.descriptor.client_secret,
            scopes=self._token.scopes,
        )

    def build_service(self, service_name: str = "sheets", version: str = "v4"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service (e.g., 'sheets', 'drive').
            version: API version (e.g., 'v4').

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds)


class AuthorizationFlow:
    """Drives the OAuth authorization-code flow for an installed app.

    Example:
        >>> flow = AuthorizationFlow(CredentialStore())
        >>> handle = flow.run(context="1BxiMVs0XRA5nFMdKvBd...")
        >>> service = handle.build_service("sheets", "v4")
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        scopes: list[str] | None = None,
        opener: UrlOpener | None = None,
        prompt: LineReader | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """Initialize the flow.

        Args:
            store: Credential store. Defaults to the files in the home directory.
            scopes: Scope names (e.g., ["sheets"]) or full URLs.
                   If None, defaults to ["sheets", "drive_file"].
            opener: Called with the consent URL. Defaults to webbrowser.open.
            prompt: Reads one line from the user. Defaults to input.
            cancel_event: When set, the flow stops before prompting or exchanging.
        """
        self.store = store or CredentialStore()
        self.required_scopes = resolve_scopes(scopes or DEFAULT_SCOPES)
        self.opener = opener or webbrowser.open
        self.prompt = prompt or input
        self.cancel_event = cancel_event
        self.state = FlowState.NO_TOKEN
        self._session: OAuth2Session | None = None
        self._oauth_state: str | None = None

    def run(self, context: str | None = None) -> AuthorizedHandle:
        """Return an authorized handle, prompting the user only if needed.

        Args:
            context: Opaque value attached to the handle (the spreadsheet ID).

        Raises:
            ConfigurationError: If credentials.json is missing or invalid.
            StorageError: If the token file cannot be read or written.
            AuthorizationError: If the code is rejected or the flow is cancelled.
            NetworkError: If the token endpoint cannot be reached.
        """
        descriptor = self.store.load_client_descriptor()

        token = self.store.load_persisted_token()
        if token is not None:
            if not token.has_scopes(self.required_scopes):
                missing = set(self.required_scopes) - set(token.scopes)
                logger.warning(f"Token missing required scopes: {missing}")
            self.state = FlowState.AUTHORIZED
            return self._issue(descriptor, token, context)

        self.state = FlowState.NO_TOKEN
        try:
            url = self.authorization_url()
            self._open(url)

            self._check_cancelled("prompt")
            try:
                response = self.prompt(CODE_PROMPT).strip()
            except EOFError as e:
                raise AuthorizationError("No authorization code provided", step="prompt") from e
            if not response:
                raise AuthorizationError("No authorization code provided", step="prompt")

            self._check_cancelled("exchange_code")
            token = self.exchange_code(response)
            self.store.save_persisted_token(token)
        except Exception:
            self.state = FlowState.NO_TOKEN
            raise

        self.state = FlowState.AUTHORIZED
        return self._issue(descriptor, token, context)

    def authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        descriptor = self.store.load_client_descriptor()
        self._session = _new_session(descriptor, self.required_scopes)
        url, state = self._session.create_authorization_url(
            AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
        )
        self._oauth_state = state
        self.state = FlowState.AWAITING_USER_CODE
        return url

    def exchange_code(self, response: str) -> TokenPair:
        """Exchange an authorization code for a token pair.

        Args:
            response: The bare code, or the full redirect URL containing it.

        Returns:
            The new token pair (not yet persisted).
        """
        if self._session is None or self.state is not FlowState.AWAITING_USER_CODE:
            raise AuthorizationError("Authorization flow not started", step="exchange_code")

        if response.startswith(("http://", "https://")):
            kwargs = {"authorization_response": response, "state": self._oauth_state}
        else:
            kwargs = {"code": response}

        try:
            raw = self._session.fetch_token(
                TOKEN_URL, grant_type="authorization_code", **kwargs
            )
            token = TokenPair.from_oauth_response(dict(raw))
        except requests.RequestException as e:
            raise NetworkError(f"Code exchange failed: {e}", step="exchange_code") from e
        except (AuthlibBaseError, ValueError, KeyError) as e:
            raise AuthorizationError(
                f"Authorization code rejected: {e}", step="exchange_code"
            ) from e

        if not token.scopes:
            token.scopes = list(self.required_scopes)
        if not token.has_scopes(self.required_scopes):
            raise ScopeMismatchError(set(self.required_scopes) - set(token.scopes))

        logger.info(f"Obtained token with scopes: {token.scopes}")
        return token

    def _open(self, url: str) -> None:
        try:
            opened = self.opener(url)
        except Exception as e:
            logger.warning(f"Could not open browser ({e}); visit the URL manually: {url}")
            return
        if opened is False:
            logger.warning(f"Could not open browser; visit the URL manually: {url}")

    def _check_cancelled(self, step: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise AuthorizationCancelled(step)

    def _issue(
        self, descriptor: ClientDescriptor, token: TokenPair, context: str | None
    ) -> AuthorizedHandle:
        return AuthorizedHandle(descriptor, token, self.store, context, _key=_ISSUE_KEY)


def revoke_token(store: CredentialStore | None = None) -> bool:
    """Revoke the stored token and clear local storage.

    Returns:
        True if a token was found and removed.
    """
    store = store or CredentialStore()
    token = store.load_persisted_token()
    if token is None:
        logger.warning("No token to revoke")
        return False

    try:
        requests.post(
            REVOKE_URL,
            params={"token": token.refresh_token or token.access_token},
            timeout=30,
        )
    except requests.RequestException as e:
        logger.warning(f"Failed to revoke token remotely: {e}")

    store.delete_persisted_token()
    logger.info("Token revoked successfully")
    return True
