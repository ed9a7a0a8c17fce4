"""Debounced scheduling of single-file syncs.

One timer and one token are shared by every file: a new event for any file
supersedes whatever was pending, so a burst of edits across files collapses
into a single action for the most recently changed file once the vault has
been quiet for the configured delay.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from vaultsync.sync.vault import VaultFile

logger = logging.getLogger(__name__)


class ChangeScheduler:
    """Coalesce file-change events into one deferred action."""

    def __init__(
        self,
        action: Callable[[VaultFile], Awaitable[object]],
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize scheduler.

        Args:
            action: Coroutine function run with the file once its quiet
                period elapses (normally ``SyncEngine.sync_file``)
            loop: Event loop for timers (default: the running loop)
        """
        self.action = action
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._token = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def token(self) -> int:
        return self._token

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, file: VaultFile, delay_seconds: float) -> None:
        """Schedule ``action(file)`` after ``delay_seconds`` of quiet."""
        if self._handle is not None:
            self._handle.cancel()
        self._token += 1
        token = self._token
        self._handle = self._get_loop().call_later(
            max(delay_seconds, 0), self._fire, token, file
        )
        logger.debug(f"Scheduled sync of {file.path} in {delay_seconds}s (token {token})")

    def cancel(self) -> None:
        """Drop any pending timer. The token is left unchanged."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, token: int, file: VaultFile) -> None:
        if token != self._token:
            logger.debug(f"Skipping superseded sync of {file.path} (token {token})")
            return
        self._handle = None
        task = self._get_loop().create_task(self.action(file))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for actions that have already fired."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
