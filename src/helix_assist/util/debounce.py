"""Per-key debouncing on the asyncio event loop."""

import asyncio
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from .log import Log

log = Log.create({"service": "debounce"})

Action = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class _Pending:
    task: asyncio.Task[None]
    on_cancel: Optional[Callable[[], None]] = None


class Debouncer:
    """Coalesces bursts of same-key triggers into one delayed action.

    Each scheduled action runs on its own task after the delay. Scheduling a
    key that already has a pending action cancels the pending one first, so
    at most one action per key is waiting at any time. Once an action fires it
    is no longer pending and runs to completion.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, _Pending] = {}
        self._lock = threading.Lock()

    def schedule(
        self,
        key: str,
        action: Action,
        delay: float,
        on_cancel: Optional[Callable[[], None]] = None,
    ) -> None:
        """Run ``action`` after ``delay`` seconds unless superseded.

        Args:
            key: Coalescing key
            action: Coroutine function to run once the delay elapses
            delay: Quiet period in seconds
            on_cancel: Called synchronously if this action is superseded or cancelled
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            previous = self._pending.pop(key, None)
            task = loop.create_task(self._fire(key, action, delay))
            self._pending[key] = _Pending(task=task, on_cancel=on_cancel)

        if previous is not None:
            self._abort(key, previous)

    def cancel(self, key: str) -> bool:
        """Abort the pending action for ``key`` without running it.

        Returns:
            True if an action was pending
        """
        with self._lock:
            pending = self._pending.pop(key, None)
        if pending is None:
            return False
        self._abort(key, pending)
        return True

    def cancel_all(self) -> None:
        with self._lock:
            pending = list(self._pending.items())
            self._pending.clear()
        for key, item in pending:
            self._abort(key, item)

    def pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def _abort(self, key: str, pending: _Pending) -> None:
        # The task is suspended in sleep(); cancel() guarantees the action never starts.
        pending.task.cancel()
        log.debug("debounced action cancelled", {"key": key})
        if pending.on_cancel is not None:
            try:
                pending.on_cancel()
            except Exception as e:
                log.error("debounce cancel callback failed", {"key": key, "error": e})

    async def _fire(self, key: str, action: Action, delay: float) -> None:
        await asyncio.sleep(delay)

        current = asyncio.current_task()
        with self._lock:
            entry = self._pending.get(key)
            if entry is not None and entry.task is current:
                del self._pending[key]

        try:
            await action()
        except Exception as e:
            log.error("debounced action failed", {"key": key, "error": e})
