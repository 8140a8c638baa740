"""Per-identity periodic refresh.

Each tracked identity gets one asyncio task that sleeps for the refresh
interval and then invokes the callback with the identity. The callback is
expected to read whatever profile is stored at that moment.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from loguru import logger


RefreshCallback = Callable[[str], Awaitable[None]]


@dataclass
class RefreshScheduler:
    """One cancellable refresh timer per identity."""

    interval_seconds: float = 5.0

    _tasks: dict[str, asyncio.Task] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("Refresh interval must be positive")

    def __contains__(self, identity: str) -> bool:
        return self.is_active(identity)

    def is_active(self, identity: str) -> bool:
        task = self._tasks.get(identity)
        return task is not None and not task.done()

    def active_identities(self) -> list[str]:
        return [identity for identity in self._tasks if self.is_active(identity)]

    def start(self, identity: str, callback: RefreshCallback) -> asyncio.Task:
        """Start the timer, replacing any timer already running for the identity."""
        self.cancel(identity)
        task = asyncio.create_task(
            self._run(identity, callback),
            name=f"refresh:{identity}",
        )
        self._tasks[identity] = task
        logger.debug(f"Started refresh timer for {identity} every {self.interval_seconds}s")
        return task

    def cancel(self, identity: str) -> None:
        """Stop the identity's timer. Idempotent."""
        task = self._tasks.pop(identity, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"Cancelled refresh timer for {identity}")

    def cancel_all(self) -> None:
        for identity in list(self._tasks):
            self.cancel(identity)

    async def _run(self, identity: str, callback: RefreshCallback) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await callback(identity)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Refresh for {identity} failed")
