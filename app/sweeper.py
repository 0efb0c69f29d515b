from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.session_store import SessionStore


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=UTC)


class SessionSweeper:
    """Periodic removal of sessions older than the TTL.

    Finished games are kept until they expire like any other session. Sessions
    with a transition in flight are skipped and picked up by a later pass.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        ttl: timedelta,
        interval: timedelta,
        clock: Callable[[], datetime] = _now,
        is_busy: Callable[[str], bool] = lambda _sid: False,
    ) -> None:
        self.store = store
        self.ttl = ttl
        self.interval = interval
        self.clock = clock
        self.is_busy = is_busy
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self, now: datetime | None = None) -> list[str]:
        """Delete expired sessions; returns the ids removed.

        Store errors are logged and never propagate.
        """

        now = now or self.clock()
        removed: list[str] = []

        try:
            ages = list(self.store.iter_ages())
        except Exception:
            logger.exception("Session sweep could not list sessions")
            return removed

        for sid, created_at in ages:
            if now - created_at < self.ttl:
                continue
            if self.is_busy(sid):
                logger.debug("Skipping expired session %s: transition in flight", sid)
                continue
            try:
                self.store.delete(sid)
            except Exception:
                logger.exception("Session sweep could not delete session %s", sid)
                continue
            removed.append(sid)

        if removed:
            logger.info("Session sweep removed %d expired session(s)", len(removed))
        return removed

    async def _run(self) -> None:
        interval = self.interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            self.sweep_once()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""

        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="session-sweeper")
        logger.debug("Session sweeper started (ttl=%s, interval=%s)", self.ttl, self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Session sweeper stopped")
