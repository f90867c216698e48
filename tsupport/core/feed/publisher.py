import logging
from typing import Any

import redis.asyncio as redis
from sqlmodel import SQLModel

from .events import ChangeEvent, ChangeKind, channels_for

logger = logging.getLogger(__name__)


class ChangeFeedPublisher:
    """Announces committed writes to change-feed subscribers.

    Call only after the transaction has committed: subscribers treat every
    event as durable.
    """

    def __init__(self, redis_client: redis.Redis) -> None:
        self._redis = redis_client

    async def publish(self, table: str, kind: ChangeKind, record: dict[str, Any]) -> None:
        payload = ChangeEvent(table=table, kind=kind, record=record).to_json()
        for channel in channels_for(table, record):
            try:
                await self._redis.publish(channel, payload)
            except Exception:
                # The row is already committed; viewers catch up on their next bulk read.
                logger.warning("Failed to publish %s %s on %s", kind, table, channel, exc_info=True)
        logger.debug("Published %s %s id=%s", kind, table, record.get("id"))

    async def publish_model(self, table: str, kind: ChangeKind, model: SQLModel) -> None:
        await self.publish(table, kind, model.model_dump(mode="json"))
