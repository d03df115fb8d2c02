"""Live Firestore listeners and their bridge into asyncio.

Firestore delivers snapshot callbacks on a background watch thread owned by
the sync client. :class:`Subscription` wraps the watch handle so callers can
deregister it; :class:`SnapshotStream` turns a listener into an async
channel that the event-stream routes consume and tear down on disconnect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Subscription:
    """Deregistration handle for a standing Firestore listener."""

    def __init__(self, watch, description: str = "") -> None:
        self._watch = watch
        self._description = description
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop the listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._watch.unsubscribe()
        logger.info("Unsubscribed listener %s", self._description)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


# register(callback) -> Subscription | None
Register = Callable[[Callable[[Any], None]], "Subscription | None"]


class SnapshotStream:
    """Async channel over the result sets pushed by a listener.

    Every push is a full result set, so only the most recent one is kept
    when the consumer falls behind.
    """

    def __init__(self, register: Register) -> None:
        self._register = register
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscription: Subscription | None = None

    async def __aenter__(self) -> SnapshotStream:
        self._loop = asyncio.get_running_loop()
        self._subscription = self._register(self._on_results)
        if self._subscription is None:
            raise RuntimeError("Listener registration failed")
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_results(self, results: Any) -> None:
        # Runs on the Firestore watch thread.
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._put_latest, results)

    def _put_latest(self, results: Any) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(results)

    async def get(self) -> Any:
        """Wait for the next result set."""
        return await self._queue.get()

    def __aiter__(self) -> SnapshotStream:
        return self

    async def __anext__(self) -> Any:
        return await self.get()
