"""Background task that periodically drops idle users from the history store."""

from __future__ import annotations

import asyncio
from datetime import timedelta

from supportguard.history.history_store import HistoryStore
from supportguard.util.logger import get_logger

logger = get_logger("prune_scheduler")


class PruneScheduler:
    """
    Run ``HistoryStore.prune_idle`` on a fixed interval.

    Args:
        store: History store to prune.
        idle_ttl: Inactivity after which a user's history is dropped.
        interval: Seconds between prune passes.
    """

    def __init__(self, store: HistoryStore, idle_ttl: float, interval: float) -> None:
        self._store = store
        self._idle_ttl = timedelta(seconds=idle_ttl)
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def prune_once(self) -> int:
        return self._store.prune_idle(self._idle_ttl)

    async def _run_loop(self) -> None:
        """Infinite loop: sleep, prune, repeat."""
        logger.info(
            "[PRUNE] Starting idle history pruning (ttl=%.0fs, interval=%.1fs)",
            self._idle_ttl.total_seconds(),
            self._interval,
        )
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    self.prune_once()
                except Exception as exc:
                    logger.error("[PRUNE] Unexpected error during prune: %s", exc)
        except asyncio.CancelledError:
            logger.info("[PRUNE] Pruning cancelled")
            raise

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.running:
            logger.warning("[PRUNE] Prune task already running")
            return
        self._task = asyncio.create_task(self._run_loop())

    async def shutdown(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[PRUNE] Scheduler shutdown complete")
