"""In-process event notifications.

Event types:
  result-ready          data: session_id, results, query
  cache-rebuilt         data: record_count, scan_ms, timestamp
  cache-status-changed  data: status, source

Handlers run synchronously on the emitting thread. Patterns may use shell
wildcards: ``cache-*`` matches both cache events.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

LOGGER = logging.getLogger(__name__)

RESULT_READY = "result-ready"
CACHE_REBUILT = "cache-rebuilt"
CACHE_STATUS_CHANGED = "cache-status-changed"


@dataclass
class Event:
    type: str
    data: dict[str, Any]
    timestamp_ms: float = field(default_factory=lambda: time.time() * 1000.0)


Handler = Callable[[Event], Any]


class EventEmitter:
    """Synchronous pub/sub for engine notifications."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)
        self.emitted: dict[str, int] = defaultdict(int)

    def subscribe(self, pattern: str, handler: Handler) -> None:
        self._subscribers[pattern].append(handler)

    def unsubscribe(self, pattern: str, handler: Handler) -> None:
        self._subscribers[pattern] = [h for h in self._subscribers[pattern] if h != handler]

    def emit(self, event_type: str, **data: Any) -> Event:
        """Deliver an event to every matching handler and return it.

        A failing handler is logged and does not stop delivery to the rest.
        """
        event = Event(type=event_type, data=data)
        self.emitted[event_type] += 1
        for pattern, handlers in list(self._subscribers.items()):
            if not fnmatch.fnmatchcase(event_type, pattern):
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:
                    LOGGER.exception("Event handler failed for %s", event_type)
        return event
