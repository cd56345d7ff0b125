"""
Action Queue - Runs queued units of work one at a time, in order.

Only one Elko request may be in flight at any given time; the server (and
the C64 clients behind it) cannot keep up with anything faster.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

UnitFactory = Callable[[], Awaitable[Any]]


class ActionQueue:
    """FIFO queue with concurrency one and unbounded depth."""

    def __init__(self, name: str = "actions"):
        self.name = name
        self._pending: deque[tuple[UnitFactory, asyncio.Future]] = deque()
        self._worker: Optional[asyncio.Task] = None
        self._active = False

    def __len__(self) -> int:
        return len(self._pending) + (1 if self._active else 0)

    @property
    def idle(self) -> bool:
        return not self._pending and not self._active

    def add(self, factory: UnitFactory) -> asyncio.Future:
        """
        Enqueue a unit and return a future for its result.

        The unit is queued before this returns, so the order of add() calls
        is the order of execution regardless of where they come from.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append((factory, future))
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())
        return future

    async def join(self) -> None:
        """Wait until every queued unit has completed."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def _drain(self) -> None:
        while self._pending:
            factory, future = self._pending.popleft()
            self._active = True
            try:
                result = await factory()
            except Exception as e:
                logger.debug(f"Queue {self.name}: unit failed: {e}")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._active = False
