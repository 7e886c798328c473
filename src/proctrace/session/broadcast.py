"""Fan-out of session events to any number of live observers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

# Marks the end of a subscription's stream
_CLOSED = object()


class Subscription:
    """One observer's bounded inbox. Iterate it to receive events."""

    def __init__(self, broadcaster: Broadcaster, maxsize: int) -> None:
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, message: dict[str, Any]) -> bool:
        """Queue a message without waiting. Returns False if the inbox is full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._broadcaster.unsubscribe(self)
        # Make room for the sentinel so a waiting reader wakes up
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                break
            except asyncio.QueueFull:
                self._queue.get_nowait()

    async def get(self) -> dict[str, Any] | None:
        """Next message, or None once the subscription is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> dict[str, Any]:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


class Broadcaster:
    """Delivers every published message to all current subscribers.

    publish() never waits on an observer: a subscriber whose inbox is full
    is dropped so that slow or dead clients cannot stall the others.
    """

    def __init__(self, queue_size: int = 256) -> None:
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self._queue_size)
        self._subscribers.add(sub)
        logger.debug("Observer subscribed (%d total)", len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subscribers.discard(sub)

    def publish(self, type: str, payload: dict[str, Any]) -> int:
        """Send ``{"type", "payload"}`` to every subscriber.

        Returns the number of subscribers that received it.
        """
        message = {"type": type, "payload": payload}
        delivered = 0
        for sub in list(self._subscribers):
            if sub.offer(message):
                delivered += 1
            else:
                logger.warning("Dropping slow observer (inbox full)")
                sub.close()
        return delivered

    def close(self) -> None:
        for sub in list(self._subscribers):
            sub.close()
