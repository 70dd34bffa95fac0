"""Debounce timer on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

LOGGER = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 250


class Debouncer:
    """Coalesce rapid calls so only the last one within the window runs.

    Every ``call()`` cancels the pending timer before arming a new one, so a
    stale callback never runs after a newer one was scheduled. Cancellation
    discards the pending call entirely.
    """

    def __init__(
        self,
        delay_ms: int = DEFAULT_DELAY_MS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay_ms = delay_ms
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def call(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule ``callback(*args)`` after the delay, replacing any pending call.

        Raises:
            RuntimeError: If no loop was given and none is running.
        """
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000.0, self._fire, callback, args)

    def cancel(self) -> bool:
        """Cancel the pending call. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        LOGGER.debug("Pending debounced call cancelled")
        return True

    def _fire(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._handle = None
        callback(*args)
