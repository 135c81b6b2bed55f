"""
In-process change subscriptions.

A ``SubscriptionRegistry`` keeps (on_update, on_error) callback pairs and
pushes a snapshot to each of them. A callback that raises is reported to
its own ``on_error`` and never stops delivery to the others.

    registry = SubscriptionRegistry("dynamic_tables")
    unsubscribe = registry.subscribe(on_update, on_error)
    registry.publish(snapshot)
    unsubscribe()
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

UpdateHandler = Callable[[Any], None]
ErrorHandler = Callable[[Exception], None]


class SubscriptionRegistry:
    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._subs: dict[int, tuple[UpdateHandler, ErrorHandler | None]] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._subs)

    def subscribe(self, on_update: UpdateHandler,
                  on_error: ErrorHandler | None = None) -> Callable[[], bool]:
        """Register callbacks and return the matching unsubscribe function."""
        with self._lock:
            sub_id = self._next_id
            self._next_id += 1
            self._subs[sub_id] = (on_update, on_error)
        logger.debug("Subscribed to %s id=%d", self.name, sub_id)

        def unsubscribe() -> bool:
            with self._lock:
                return self._subs.pop(sub_id, None) is not None

        return unsubscribe

    def deliver(self, on_update: UpdateHandler, on_error: ErrorHandler | None, snapshot) -> None:
        try:
            on_update(snapshot)
        except Exception as exc:
            logger.warning("Subscriber to %s failed: %s", self.name, exc)
            if on_error is None:
                return
            try:
                on_error(exc)
            except Exception:
                logger.exception("Error handler for %s subscriber failed", self.name)

    def publish(self, snapshot) -> None:
        with self._lock:
            subscribers = list(self._subs.values())
        for on_update, on_error in subscribers:
            self.deliver(on_update, on_error, snapshot)

    def clear(self) -> None:
        with self._lock:
            self._subs.clear()
