"""Named-event bus that lets external stages hook into a traversal.

Callbacks may be plain functions or coroutine functions.  Emission is
sequential: an awaitable returned by one callback is awaited before the
next callback is invoked.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Emitted with (table, context) before the cells of a data-backed table
# are normalized.
TABLE_NEEDS_DATA = "tableNeedsData"
# Emitted with (node) after each node has been normalized.
NODE_NORMALIZED = "nodeNormalized"

Callback = Callable[..., Any]


class TraversalEventBus:
    """Ordered, duplicate-free callback lists keyed by event name."""

    def __init__(self) -> None:
        self._events: dict[str, list[Callback]] = {}

    def subscribe(self, event: str, callback: Callback) -> None:
        callbacks = self._events.setdefault(event, [])
        if callback not in callbacks:
            callbacks.append(callback)

    def unsubscribe(self, event: str, callback: Callback) -> None:
        callbacks = self._events.get(event)
        if not callbacks:
            return
        if callback in callbacks:
            callbacks.remove(callback)

    def listeners(self, event: str) -> list[Callback]:
        """Return a copy of the callbacks registered for ``event``."""
        return list(self._events.get(event, ()))

    async def emit(self, event: str, *args: Any) -> None:
        """Call every callback registered for ``event`` in subscription order.

        A callback unsubscribed by an earlier callback of the same emission
        is skipped; callbacks subscribed during the emission wait for the
        next one.
        """
        callbacks = self.listeners(event)
        if not callbacks:
            return
        logger.debug("Emitting '%s' to %d callback(s)", event, len(callbacks))
        for callback in callbacks:
            if callback not in self._events.get(event, ()):
                continue
            result = callback(*args)
            if inspect.isawaitable(result):
                await result

    async def run_scoped(self, event: str, callback: Callback, inner: Any) -> Any:
        """Keep ``callback`` subscribed to ``event`` only while ``inner`` runs.

        ``inner`` may be a callable (sync or async) or an awaitable.  The
        callback is unsubscribed however ``inner`` completes, and its result
        is returned.
        """
        self.subscribe(event, callback)
        try:
            result = inner() if callable(inner) else inner
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            self.unsubscribe(event, callback)
