"""
Background persistence of the global state.

``request_save`` takes the JSON snapshot immediately, so the saved document
matches the action that asked for it, and hands the write to a worker thread.
Writes never overlap: while one is in flight, later requests collapse into a
single pending snapshot and only the newest one is written next.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog
from anyio import to_thread

from bretton.logic.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.storage import StateStorage

logger = structlog.get_logger()


class PersistenceScheduler:
    def __init__(
        self,
        storage: StateStorage,
        snapshot: Callable[[], dict[str, Any]],
        *,
        autosave_interval: float = 120,
    ) -> None:
        self._storage = storage
        self._snapshot = snapshot
        self._autosave_interval = autosave_interval
        self._pending: dict[str, Any] | None = None
        self._writer: asyncio.Task[None] | None = None
        self._autosave_task: asyncio.Task[None] | None = None
        self.saves = 0
        self.failures = 0

    def request_save(self) -> None:
        """Snapshot now, write in the background. Never raises on write failures."""
        self._pending = self._snapshot()
        if self._writer is None or self._writer.done():
            self._writer = asyncio.create_task(self._drain())

    async def flush(self) -> None:
        """Wait until every requested snapshot has been written (or has failed)."""
        while self._writer is not None and not self._writer.done():
            await self._writer

    def start(self) -> None:
        if self._autosave_task is None:
            self._autosave_task = asyncio.create_task(self._autosave_loop())

    async def shutdown(self) -> None:
        """Stop autosaving and write one final snapshot."""
        if self._autosave_task is not None:
            self._autosave_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._autosave_task
            self._autosave_task = None
        self.request_save()
        await self.flush()

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self._autosave_interval)
            logger.debug("autosave")
            self.request_save()

    async def _drain(self) -> None:
        while self._pending is not None:
            data, self._pending = self._pending, None
            try:
                await self._write(data)
            except PersistenceError:
                self.failures += 1
                logger.exception("state save failed")
            else:
                self.saves += 1

    async def _write(self, data: dict[str, Any]) -> None:
        try:
            await to_thread.run_sync(self._storage.save, data)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"could not write state: {e}") from e
