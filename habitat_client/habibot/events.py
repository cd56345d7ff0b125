"""
Event Registry - Fans out lifecycle events and server messages to reactions.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Reaction = Callable[..., Any]


class EventRegistry:
    """Ordered reaction lists keyed by event name."""

    def __init__(self, builtins: tuple[str, ...] = ()):
        self._reactions: dict[str, list[Reaction]] = {name: [] for name in builtins}
        self._tasks: set[asyncio.Task] = set()

    def __contains__(self, event: str) -> bool:
        return event in self._reactions

    def reactions(self, event: str) -> list[Reaction]:
        return list(self._reactions.get(event, ()))

    def on(self, event: str, reaction: Optional[Reaction] = None):
        """
        Register a reaction for an event.

        Usable directly, ``registry.on("msg", handler)``, or as a decorator,
        ``@registry.on("SPEAK$")``.
        """
        if reaction is None:
            def decorator(func: Reaction) -> Reaction:
                self.on(event, func)
                return func
            return decorator

        self._reactions.setdefault(event, []).append(reaction)
        return reaction

    def emit(self, event: str, *args: Any) -> int:
        """Invoke every reaction for ``event`` in registration order."""
        reactions = self._reactions.get(event)
        if not reactions:
            return 0

        logger.debug(f"Running callbacks for {event}")
        for reaction in list(reactions):
            try:
                result = reaction(*args)
                if asyncio.iscoroutine(result):
                    self._schedule(event, result)
            except Exception:
                logger.exception(f"Callback for {event} failed")
        return len(reactions)

    def _schedule(self, event: str, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._task_done(event, t))

    def _task_done(self, event: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async callback for {event} failed: {task.exception()}")

    async def drain(self) -> None:
        """Wait for scheduled coroutine reactions to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
