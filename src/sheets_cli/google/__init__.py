"""Google OAuth authentication and token lifecycle."""

from sheets_cli.google.exceptions import (
    AuthorizationCancelled,
    AuthorizationError,
    ConfigurationError,
    CredentialsNotFoundError,
    NetworkError,
    ScopeMismatchError,
    SheetsAuthError,
    StorageError,
)
from sheets_cli.google.oauth import (
    AuthorizationFlow,
    AuthorizedHandle,
    FlowState,
    revoke_token,
)
from sheets_cli.google.provider import AuthorizedClientProvider
from sheets_cli.google.store import ClientDescriptor, CredentialStore, TokenPair

__all__ = [
    "AuthorizationFlow",
    "AuthorizedClientProvider",
    "AuthorizedHandle",
    "ClientDescriptor",
    "CredentialStore",
    "FlowState",
    "TokenPair",
    "revoke_token",
    "SheetsAuthError",
    "ConfigurationError",
    "CredentialsNotFoundError",
    "StorageError",
    "AuthorizationError",
    "AuthorizationCancelled",
    "ScopeMismatchError",
    "NetworkError",
]
