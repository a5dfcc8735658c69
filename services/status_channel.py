"""Publish/subscribe channel for status broadcasts on the event loop."""
from __future__ import annotations

import asyncio
import weakref
from typing import AsyncIterator, Callable, Generic, List, Optional, TypeVar

from core.log import SYNC, get_logger


T = TypeVar("T")

_CLOSED = object()

logger = get_logger(SYNC)


class StatusChannel(Generic[T]):
    """Fan-out of published values to any number of independent observers.

    ``stream()`` gives each caller its own queue, so a slow observer never
    holds back another one; ``listen()`` registers a plain callback. Values
    published before a subscription are not replayed.
    """

    def __init__(self) -> None:
        # weak: a stream dropped before its first iteration never unsubscribes
        self._queues: "weakref.WeakSet[asyncio.Queue]" = weakref.WeakSet()
        self._callbacks: List[Callable[[T], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._queues) + len(self._callbacks)

    def publish(self, value: T) -> None:
        if self._closed:
            return
        for queue in list(self._queues):
            queue.put_nowait(value)
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception:
                logger.exception("Status listener crashed")

    def listen(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def cancel() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return cancel

    def subscribe(self) -> "asyncio.Queue":
        """Register a queue that receives every later value, then a close marker.

        The registration lasts as long as the caller keeps the queue.
        """
        queue: asyncio.Queue = asyncio.Queue()
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: "asyncio.Queue") -> None:
        self._queues.discard(queue)

    async def stream(self, queue: Optional["asyncio.Queue"] = None) -> AsyncIterator[T]:
        """Iterate over published values until the channel is closed.

        Pass a queue from :meth:`subscribe` to start receiving before the
        first ``await`` of the iteration.
        """
        queue = queue or self.subscribe()
        try:
            while True:
                value = await queue.get()
                if value is _CLOSED:
                    return
                yield value
        finally:
            self.unsubscribe(queue)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in list(self._queues):
            queue.put_nowait(_CLOSED)
        self._queues.clear()
        self._callbacks.clear()


__all__ = ["StatusChannel"]
