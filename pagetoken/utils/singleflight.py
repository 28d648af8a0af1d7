"""Collapse concurrent identical coroutines into one shared task."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class SingleFlight(Generic[T]):
    """Run at most one task at a time.

    Callers asking for the key of the running task join it. Callers with a
    different key wait for it to settle and then start their own. Waiters are
    shielded: cancelling a waiter stops it waiting but leaves the shared task
    running for everyone else.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task[T]] = None
        self._key: Optional[Hashable] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        while True:
            task = self._task
            if task is None or task.done():
                task = asyncio.ensure_future(factory())
                task.add_done_callback(self._release)
                self._task = task
                self._key = key
                break
            if self._key == key:
                logger.debug("Joining in-flight %s task", key)
                break
            await asyncio.wait({task})
        return await asyncio.shield(task)

    def _release(self, task: asyncio.Task[T]) -> None:
        if self._task is task:
            self._task = None
            self._key = None
        # Every waiter may have been cancelled; mark the exception as retrieved.
        if not task.cancelled():
            task.exception()


__all__ = ["SingleFlight"]
