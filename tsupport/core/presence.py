"""Ephemeral typing signals over Redis pub/sub.

Nothing here is persisted or replayed: a subscriber only sees signals
published while it is subscribed, and each receiver runs its own
:class:`TypingIndicator` countdown.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import redis.asyncio as redis

from tsupport.configs import configs
from tsupport.core.pubsub import ChannelSubscription
from tsupport.models.message import SenderRole

logger = logging.getLogger(__name__)

TYPING_EVENT = "typing"

TypingCallback = Callable[[SenderRole], Awaitable[None] | None]


def presence_topic(chat_id: UUID | str) -> str:
    return f"chat:{chat_id}:presence"


class BroadcastSubscription(ChannelSubscription[dict[str, Any]]):
    """Payloads of one named event on a topic."""

    def __init__(self, pubsub: Any, topic: str, event_name: str) -> None:
        super().__init__(pubsub, topic)
        self.event_name = event_name

    def parse(self, raw: Any) -> dict[str, Any] | None:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Ignoring undecodable broadcast on %s", self.channel)
            return None
        if not isinstance(data, dict) or data.get("event") != self.event_name:
            return None
        return data


class TypingSubscription:
    """Delivers typing signals from the other party to a callback until closed."""

    def __init__(
        self,
        subscription: BroadcastSubscription,
        local_role: SenderRole,
        callback: TypingCallback,
    ) -> None:
        self._subscription = subscription
        self._local_role = local_role
        self._callback = callback
        self._closed = False
        self._task = asyncio.create_task(self._consume(), name=f"typing:{subscription.channel}")

    @property
    def closed(self) -> bool:
        return self._closed

    async def _consume(self) -> None:
        async for payload in self._subscription:
            try:
                sender = SenderRole(payload.get("sender"))
            except ValueError:
                continue
            if sender == self._local_role:
                continue
            # A signal can be dequeued just as close() runs.
            if self._closed:
                return
            try:
                result = self._callback(sender)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Typing callback failed on %s", self._subscription.channel)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._subscription.close()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class BroadcastChannel:
    """Topic-scoped, fire-and-forget pub/sub. No history, no delivery guarantee."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client
        self._pending: set[asyncio.Task[None]] = set()

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            await self._redis.publish(topic, json.dumps(payload, default=str))
        except Exception:
            logger.warning("Broadcast on %s failed", topic, exc_info=True)

    async def subscribe(self, topic: str, event_name: str) -> BroadcastSubscription:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        subscription = BroadcastSubscription(pubsub, topic, event_name)
        try:
            await subscription.start()
        except Exception:
            await pubsub.aclose()
            raise
        return subscription

    def announce_typing(self, chat_id: UUID | str, role: SenderRole) -> None:
        """Schedule a typing signal and return immediately."""
        payload = {"event": TYPING_EVENT, "sender": str(role)}
        task = asyncio.get_running_loop().create_task(self.publish(presence_topic(chat_id), payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def on_typing(
        self,
        chat_id: UUID | str,
        local_role: SenderRole,
        callback: TypingCallback,
    ) -> TypingSubscription:
        subscription = await self.subscribe(presence_topic(chat_id), TYPING_EVENT)
        return TypingSubscription(subscription, local_role, callback)

    async def drain(self) -> None:
        """Wait for announced signals still in flight (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


class TypingIndicator:
    """Receiver-side debounce for typing signals.

    Every :meth:`signal` turns the indicator on and restarts the countdown;
    it turns off once ``timeout`` seconds pass without another signal.
    ``is_typing`` is computed from the deadline, so it is correct even if the
    expiry callback has not run yet.
    """

    def __init__(
        self,
        timeout: float | None = None,
        on_change: Callable[[bool], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = configs.Chat.TypingTimeoutSeconds if timeout is None else timeout
        self._on_change = on_change
        self._clock = clock
        self._deadline: float | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def is_typing(self) -> bool:
        return self._deadline is not None and self._clock() < self._deadline

    def signal(self) -> None:
        was_typing = self.is_typing
        self._deadline = self._clock() + self.timeout
        self._schedule(self.timeout)
        if not was_typing:
            self._emit(True)

    def clear(self) -> None:
        was_typing = self.is_typing
        self._cancel_timer()
        self._deadline = None
        if was_typing:
            self._emit(False)

    def _schedule(self, delay: float) -> None:
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(delay, self._expire)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        if self._deadline is None:
            return
        remaining = self._deadline - self._clock()
        if remaining > 0:
            self._schedule(remaining)
            return
        self._deadline = None
        self._emit(False)

    def _emit(self, typing: bool) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(typing)
        except Exception:
            logger.exception("Typing indicator change hook failed")
