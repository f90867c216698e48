"""In-process stand-in for the parts of ``redis.asyncio`` pub/sub the app uses."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any


class FakePubSub:
    def __init__(self, broker: "FakeRedis") -> None:
        self._broker = broker
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.channels.add(channel)
            self._broker.subscribers[channel].add(self)

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            self.channels.discard(channel)
            self._broker.subscribers[channel].discard(self)

    async def listen(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message

    async def aclose(self) -> None:
        await self.unsubscribe()
        self.closed = True
        self._queue.put_nowait(None)

    def deliver(self, channel: str, data: str) -> None:
        self._queue.put_nowait({"type": "message", "channel": channel, "data": data})


class FakeRedis:
    def __init__(self) -> None:
        self.subscribers: defaultdict[str, set[FakePubSub]] = defaultdict(set)
        self.published: list[tuple[str, str]] = []
        self.fail_publish = False
        self.fail_channels: set[str] = set()
        self.fail_ping = False

    def pubsub(self, ignore_subscribe_messages: bool = False) -> FakePubSub:
        return FakePubSub(self)

    async def publish(self, channel: str, message: str) -> int:
        if self.fail_publish or channel in self.fail_channels:
            raise ConnectionError("redis is down")
        self.published.append((channel, message))
        receivers = list(self.subscribers.get(channel, ()))
        for pubsub in receivers:
            pubsub.deliver(channel, message)
        return len(receivers)

    def subscriber_count(self, channel: str) -> int:
        return len(self.subscribers.get(channel, ()))

    def published_on(self, channel: str) -> list[str]:
        return [message for name, message in self.published if name == channel]

    async def ping(self) -> bool:
        if self.fail_ping:
            raise ConnectionError("redis is down")
        return True

    async def aclose(self) -> None:
        self.subscribers.clear()
