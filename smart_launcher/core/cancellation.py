"""Optimistic cancellation: cycle tokens and a single-slot debounce timer."""

import asyncio
import itertools
import logging
import uuid
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class CancellationCoordinator:
    """Keeps the one current token of a logical store.

    Async work captures the token returned by ``begin_cycle`` and checks
    ``is_current`` before publishing; a newer cycle makes it stale.
    """

    def __init__(self, name: str = "build"):
        self.name = name
        self._counter = itertools.count(1)
        self._current: Optional[str] = None

    def begin_cycle(self) -> str:
        token = f"{self.name}-{next(self._counter)}-{uuid.uuid4().hex[:8]}"
        self._current = token
        return token

    def current_token(self) -> Optional[str]:
        return self._current

    def is_current(self, token: Optional[str]) -> bool:
        return token is not None and token == self._current


class DebounceScheduler:
    """Runs a callback once input has been quiet for ``delay`` seconds."""

    def __init__(self):
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], Any], delay: float):
        """Replace any pending callback with this one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        logger.debug("Debounce timer reset")
        return True

    def _fire(self, callback: Callable[[], Any]):
        self._handle = None
        callback()
