"""Typed, cancellable subscriptions to the change feed."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import redis.asyncio as redis

from tsupport.core.pubsub import ChannelSubscription

from .events import ChangeEvent, ChangeKind, filter_channel, table_channel

logger = logging.getLogger(__name__)


class FeedSubscription(ChannelSubscription[ChangeEvent]):
    """Change events for one table (optionally one filter value), limited to *kinds*."""

    def __init__(self, pubsub: Any, channel: str, table: str, kinds: frozenset[ChangeKind]) -> None:
        super().__init__(pubsub, channel)
        self.table = table
        self.kinds = kinds

    def parse(self, raw: Any) -> ChangeEvent | None:
        try:
            event = ChangeEvent.from_json(raw)
        except ValueError:
            logger.warning("Dropping malformed change event on %s", self.channel, exc_info=True)
            return None
        if event.table != self.table or event.kind not in self.kinds:
            return None
        return event


class ChangeFeedAdapter:
    """Opens change-feed subscriptions for a table, optionally filtered on one column."""

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client

    async def subscribe(
        self,
        table: str,
        filter: tuple[str, Any] | None = None,
        kinds: Iterable[ChangeKind] = (ChangeKind.INSERT, ChangeKind.UPDATE),
    ) -> FeedSubscription:
        if filter is None:
            channel = table_channel(table)
        else:
            column, value = filter
            channel = filter_channel(table, column, value)

        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        subscription = FeedSubscription(pubsub, channel, table, frozenset(kinds))
        try:
            await subscription.start()
        except Exception:
            await pubsub.aclose()
            raise
        return subscription
