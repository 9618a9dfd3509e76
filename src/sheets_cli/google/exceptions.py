"""Google authentication exceptions."""


class SheetsAuthError(Exception):
    """Base exception for authentication and token storage errors."""

    def __init__(self, message: str, step: str | None = None):
        self.step = step
        super().__init__(message)


class ConfigurationError(SheetsAuthError):
    """Raised when the local OAuth client configuration is missing or invalid."""

    pass


class CredentialsNotFoundError(ConfigurationError):
    """Raised when OAuth credentials file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console.",
            step="load_credentials",
        )


class StorageError(SheetsAuthError):
    """Raised when the token file cannot be read or written."""

    pass


class AuthorizationError(SheetsAuthError):
    """Raised when the authorization server rejects the code or refresh."""

    pass


class AuthorizationCancelled(AuthorizationError):
    """Raised when the caller cancels an interactive authorization."""

    def __init__(self, step: str):
        super().__init__("Authorization cancelled", step=step)


class ScopeMismatchError(AuthorizationError):
    """Raised when token scopes don't match required scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(
            f"Token missing required scopes: {missing_scopes}", step="exchange_code"
        )


class NetworkError(SheetsAuthError):
    """Raised when the remote service cannot be reached."""

    pass
