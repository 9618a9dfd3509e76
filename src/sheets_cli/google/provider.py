"""Process-wide source of the authorized handle."""

from __future__ import annotations

import asyncio
import logging
import threading

from sheets_cli.config import get_spreadsheet_id
from sheets_cli.google.oauth import (
    AuthorizationFlow,
    AuthorizedHandle,
    LineReader,
    UrlOpener,
)
from sheets_cli.google.store import CredentialStore

logger = logging.getLogger(__name__)


class AuthorizedClientProvider:
    """Hands out one authorized handle per provider.

    The first call runs the authorization flow; every later call, including
    calls made while the flow is still running, receives the same handle.

    Example:
        >>> provider = AuthorizedClientProvider()
        >>> handle = asyncio.run(provider.get_authorized_handle())
    """

    def __init__(
        self,
        flow: AuthorizationFlow | None = None,
        *,
        store: CredentialStore | None = None,
        spreadsheet_id: str | None = None,
        opener: UrlOpener | None = None,
        prompt: LineReader | None = None,
        cancel_event: threading.Event | None = None,
    ):
        """Initialize the provider.

        Args:
            flow: Authorization flow to drive. Built from the other
                arguments when omitted.
            store: Credential store for the default flow.
            spreadsheet_id: Target spreadsheet. Defaults to $SPREADSHEET_ID.
            opener: URL opener for the default flow.
            prompt: Line reader for the default flow.
            cancel_event: Cancellation signal for the default flow.
        """
        self.flow = flow or AuthorizationFlow(
            store=store, opener=opener, prompt=prompt, cancel_event=cancel_event
        )
        self.spreadsheet_id = (
            spreadsheet_id if spreadsheet_id is not None else get_spreadsheet_id()
        )
        self._handle: AuthorizedHandle | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def handle(self) -> AuthorizedHandle | None:
        return self._handle

    async def get_authorized_handle(self) -> AuthorizedHandle:
        """Return the memoized handle, authorizing on first use.

        Raises:
            ConfigurationError, StorageError, AuthorizationError, NetworkError:
                Propagated from the flow; the next call starts a fresh attempt.
        """
        if self._handle is not None:
            return self._handle

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._authorize())
        # A cancelled waiter must not cancel the flow for the others
        return await asyncio.shield(self._inflight)

    async def _authorize(self) -> AuthorizedHandle:
        try:
            handle = await asyncio.to_thread(self.flow.run, self.spreadsheet_id)
            self._handle = handle
            logger.info("Authorized client ready")
            return handle
        finally:
            self._inflight = None

    def reset(self) -> None:
        """Forget the memoized handle."""
        self._handle = None
        self._inflight = None
