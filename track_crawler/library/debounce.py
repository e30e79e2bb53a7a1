from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class Debouncer:
    """
    Delay-and-coalesce scheduler: each ``schedule`` replaces the pending one.

    A generation token is checked after the delay, so an action fires at
    most once even if ``cancel`` lands while the timer is waking up. An
    action that has already fired runs to completion.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._generation = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._fired = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done() and not self._fired

    def schedule(self, action: Action, delay: Optional[float] = None) -> None:
        self.cancel()
        wait = self.delay if delay is None else delay
        self._fired = False
        self._task = asyncio.get_running_loop().create_task(self._fire(self._generation, wait, action))

    def cancel(self) -> None:
        self._generation += 1
        if self._task is not None and self.pending:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until the latest scheduled action has fired and finished, or was cancelled."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _fire(self, token: int, wait: float, action: Action) -> None:
        await asyncio.sleep(wait)
        if token != self._generation:
            return
        self._fired = True
        try:
            await action()
        except Exception:
            logger.exception("Debounced action failed")
