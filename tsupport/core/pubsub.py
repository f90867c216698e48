"""Queue-backed Redis pub/sub subscriptions.

A reader task pulls raw pub/sub messages and pushes parsed values onto a
per-subscription queue; the owner consumes them with ``async for``. Once
:meth:`ChannelSubscription.close` returns, no further value is handed out,
even one that was already queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END = object()


class ChannelSubscription(Generic[T]):
    def __init__(self, pubsub: Any, channel: str) -> None:
        self.channel = channel
        self._pubsub = pubsub
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._reader: asyncio.Task[None] | None = None
        self._closed = False
        self._finished = False

    def parse(self, raw: Any) -> T | None:
        """Turn a raw payload into a value, or ``None`` to drop it."""
        raise NotImplementedError

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        await self._pubsub.subscribe(self.channel)
        self._reader = asyncio.create_task(self._read(), name=f"pubsub-reader:{self.channel}")
        logger.debug("Subscribed to %s", self.channel)

    async def _read(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                value = self.parse(message.get("data"))
                if value is not None:
                    self._queue.put_nowait(value)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Reader for %s stopped", self.channel, exc_info=True)
        finally:
            self._queue.put_nowait(_END)

    def __aiter__(self) -> ChannelSubscription[T]:
        return self

    async def __anext__(self) -> T:
        if self._closed or self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            # The reader is gone; nothing else will be queued.
            self._finished = True
            raise StopAsyncIteration
        # Re-checked here: close() may have run while we were waiting.
        if self._closed:
            raise StopAsyncIteration
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

        try:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
        except Exception:
            logger.debug("Error while releasing %s", self.channel, exc_info=True)
        logger.debug("Unsubscribed from %s", self.channel)

    async def __aenter__(self) -> ChannelSubscription[T]:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
