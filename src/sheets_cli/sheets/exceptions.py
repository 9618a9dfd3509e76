"""Google Sheets API exceptions."""


class SheetsAPIError(Exception):
    """Raised when the Sheets API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
