# src/drive_auth/background_refresher.py

import asyncio
import logging
from typing import Optional

from .models import TokenState
from .token_cache import ensure_access_token

lib_logger = logging.getLogger("drive_auth")


class BackgroundRefresher:
    """
    A background task that keeps the session's access token valid while the
    host works.

    The token is renewed once its remaining lifetime drops to the refresh
    threshold; until then the task sleeps. A renewal attempt is bounded by
    the refresh timeout and any failure is logged and retried on the next
    cycle a second later, so the refresher never takes the host down.
    New tokens land in `session.token`, where the host picks them up.
    """

    def __init__(self, session):
        self._session = session
        self._task: Optional[asyncio.Task] = None
        self._threshold = session.config.refresh_threshold_seconds
        self._timeout = session.config.refresh_timeout_seconds

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, initial: Optional[TokenState] = None):
        """Starts the background refresh task."""
        if self._task is not None:
            return
        if initial is not None:
            self._session.token.update(initial)
        self._task = asyncio.create_task(self._run())
        lib_logger.info(
            f"Background token refresher started. Renewing {self._threshold}s before expiry."
        )

    async def stop(self):
        """Stops the background refresh task."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            lib_logger.info("Background token refresher stopped.")

    async def __aenter__(self) -> "BackgroundRefresher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _cycle(self) -> float:
        """One check; returns how long to sleep before the next one."""
        remaining = self._session.token.snapshot().remaining(self._session.now())
        if remaining > self._threshold:
            return remaining - self._threshold

        lib_logger.debug(f"Access token expires in {remaining}s, refreshing")
        try:
            async with asyncio.timeout(self._timeout):
                await ensure_access_token(self._session, force_refresh=True)
        except asyncio.TimeoutError:
            lib_logger.warning(
                f"Background token refresh timed out after {self._timeout}s, retrying"
            )
        except Exception as e:
            lib_logger.warning(f"Background token refresh failed: {e}")
        return 1

    async def _run(self):
        """The main loop for the background refresher."""
        while True:
            delay = await self._cycle()
            await asyncio.sleep(delay)
