"""
Polling Scheduler
=================
Timer + cancellation token shared by every poller.

Features:
- Fixed-interval async polling with on-demand wake-up
- Cancellation token checked between ticks
- Sequence gate that drops responses older than the last applied one
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CancelToken:
    """
    Cancellation token for a polling loop.

    Single event loop, so no lock is needed around the flag.
    """

    def __init__(self, name: str):
        self.name = name
        self._cancelled = False
        self._cancel_reason: Optional[str] = None
        self._cancelled_at: Optional[datetime] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def cancel_reason(self) -> Optional[str]:
        return self._cancel_reason

    def cancel(self, reason: str = "manual") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel_reason = reason
        self._cancelled_at = datetime.now()
        logger.debug(f"Token cancelled: {self.name} ({reason})")

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "is_cancelled": self._cancelled,
            "cancel_reason": self._cancel_reason,
            "cancelled_at": self._cancelled_at.isoformat() if self._cancelled_at else None,
        }


class SequenceGate:
    """
    Monotonic sequence numbers for in-flight requests.

    Every request takes a number from next(); its response is applied only
    if accept() says it is newer than whatever was applied last.
    """

    def __init__(self):
        self._issued = 0
        self._applied = 0

    @property
    def last_applied(self) -> int:
        return self._applied

    def next(self) -> int:
        self._issued += 1
        return self._issued

    def accept(self, sequence: int) -> bool:
        if sequence <= self._applied:
            return False
        self._applied = sequence
        return True

    def supersede(self) -> None:
        """Mark every request issued so far as stale (local state moved on)."""
        self._applied = self._issued


class PollingTask:
    """
    Run an async callback every ``interval`` seconds until cancelled.

    Exceptions raised by a tick are logged and the loop carries on with
    the next one. trigger() runs the next tick right away.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Awaitable[Any]],
        interval: float,
        run_immediately: bool = True,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.run_immediately = run_immediately
        self._callback = callback
        self._token: Optional[CancelToken] = None
        self._wake: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the loop on the running event loop (no-op if already running)."""
        if self.is_running:
            return self._task
        self._token = CancelToken(self.name)
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._token, self._wake), name=f"poll:{self.name}")
        logger.info(f"Polling '{self.name}' every {self.interval}s")
        return self._task

    def trigger(self) -> None:
        if self._wake is not None:
            self._wake.set()

    def cancel(self, reason: str = "stopped") -> None:
        """Ask the loop to exit after the current tick. Safe to call from a tick."""
        if self._token is not None:
            self._token.cancel(reason)
        self.trigger()

    async def stop(self, reason: str = "stopped") -> None:
        self.cancel(reason)
        await self.join()

    async def join(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self, token: CancelToken, wake: asyncio.Event) -> None:
        if not self.run_immediately:
            await self._sleep(wake)

        while not token.is_cancelled:
            await self._tick()
            if token.is_cancelled:
                break
            await self._sleep(wake)

        logger.info(f"Polling '{self.name}' stopped ({token.cancel_reason})")

    async def _tick(self) -> None:
        self.ticks += 1
        try:
            await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Polling '{self.name}' tick {self.ticks} failed: {e}")

    async def _sleep(self, wake: asyncio.Event) -> None:
        try:
            await asyncio.wait_for(wake.wait(), timeout=self.interval)
        except asyncio.TimeoutError:
            pass
        wake.clear()
