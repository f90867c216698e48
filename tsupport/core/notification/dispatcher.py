"""Web Push fan-out to an audience of stored subscriptions.

One dispatch resolves the audience's subscriptions, sends to all of them
concurrently and joins. A subscription the push service reports as gone
(404/410) is deleted; any other failure is logged and left alone.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pywebpush import WebPushException
from sqlalchemy.exc import SQLAlchemyError

from tsupport.common.code import SubscriptionResolutionError
from tsupport.configs import configs
from tsupport.infra.database import SessionFactory
from tsupport.repos.push_subscription import PushSubscriptionRepository

from .events import PushPayload, build_push_payload
from .vapid import send_push

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})

AGENTS = "agents"

PushSender = Callable[[Mapping[str, Any], Mapping[str, str]], bool]


@dataclass(frozen=True, slots=True)
class Audience:
    """Either every agent or one customer."""

    customer_id: str | None = None

    @classmethod
    def agents(cls) -> Audience:
        return cls()

    @classmethod
    def customer(cls, customer_id: str) -> Audience:
        if not customer_id or not customer_id.strip():
            raise ValueError("customer audience needs a customer id")
        return cls(customer_id=customer_id.strip())

    @classmethod
    def parse(cls, value: str) -> Audience:
        """``"agents"`` or a customer id, as stored in task arguments."""
        return cls.agents() if value == AGENTS else cls.customer(value)

    @property
    def is_agents(self) -> bool:
        return self.customer_id is None

    @property
    def url(self) -> str:
        return configs.Push.AgentUrl if self.is_agents else configs.Push.CustomerUrl

    def __str__(self) -> str:
        return AGENTS if self.customer_id is None else self.customer_id


class DeliveryStatus(StrEnum):
    DELIVERED = "delivered"
    GONE = "gone"
    TRANSIENT = "transient"


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    endpoint: str
    status: DeliveryStatus
    status_code: int | None = None


class DispatchOutcome(StrEnum):
    NO_RECIPIENTS = "no-recipients"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    outcome: DispatchOutcome
    attempted: int = 0
    delivered: int = 0
    pruned: int = 0
    failed: int = 0
    deliveries: tuple[DeliveryResult, ...] = field(default=())


class NotificationDispatcher:
    def __init__(self, session_factory: SessionFactory, sender: PushSender = send_push) -> None:
        self._session_factory = session_factory
        self._sender = sender

    async def dispatch(self, audience: Audience, content: str) -> DispatchResult:
        targets = await self._resolve(audience)
        if not targets:
            logger.debug("No push subscriptions for %s", audience)
            return DispatchResult(DispatchOutcome.NO_RECIPIENTS)

        payload = build_push_payload(content, audience.url)
        deliveries = await asyncio.gather(*(self._deliver(info, payload) for info in targets))

        gone = [d.endpoint for d in deliveries if d.status is DeliveryStatus.GONE]
        pruned = await self._prune(gone) if gone else 0

        result = DispatchResult(
            DispatchOutcome.COMPLETED,
            attempted=len(deliveries),
            delivered=sum(d.status is DeliveryStatus.DELIVERED for d in deliveries),
            pruned=pruned,
            failed=sum(d.status is not DeliveryStatus.DELIVERED for d in deliveries),
            deliveries=tuple(deliveries),
        )
        logger.info(
            "Push to %s: %d attempted, %d delivered, %d pruned",
            audience,
            result.attempted,
            result.delivered,
            result.pruned,
        )
        return result

    async def _resolve(self, audience: Audience) -> list[dict[str, Any]]:
        try:
            async with self._session_factory() as db:
                repo = PushSubscriptionRepository(db)
                if audience.customer_id is None:
                    subs = await repo.get_for_agents()
                else:
                    subs = await repo.get_for_customer(audience.customer_id)
                return [sub.subscription_info() for sub in subs]
        except SQLAlchemyError as e:
            logger.error("Could not resolve push subscriptions for %s: %s", audience, e)
            raise SubscriptionResolutionError(f"Could not resolve push subscriptions for {audience}") from e

    async def _deliver(self, info: Mapping[str, Any], payload: PushPayload) -> DeliveryResult:
        endpoint = str(info["endpoint"])
        try:
            sent = await asyncio.to_thread(self._sender, info, payload)
        except WebPushException as e:
            response = getattr(e, "response", None)
            code = getattr(response, "status_code", None)
            if code in GONE_STATUS_CODES:
                logger.info("Push subscription gone (%s): %s", code, endpoint[:60])
                return DeliveryResult(endpoint, DeliveryStatus.GONE, code)
            logger.warning("Web push failed for %s: %s", endpoint[:60], e)
            return DeliveryResult(endpoint, DeliveryStatus.TRANSIENT, code)
        except Exception:
            logger.exception("Unexpected error sending web push to %s", endpoint[:60])
            return DeliveryResult(endpoint, DeliveryStatus.TRANSIENT)

        if not sent:
            return DeliveryResult(endpoint, DeliveryStatus.TRANSIENT)
        return DeliveryResult(endpoint, DeliveryStatus.DELIVERED)

    async def _prune(self, endpoints: list[str]) -> int:
        pruned = 0
        try:
            async with self._session_factory() as db:
                repo = PushSubscriptionRepository(db)
                for endpoint in endpoints:
                    if await repo.delete_by_endpoint(endpoint):
                        pruned += 1
                await db.commit()
        except SQLAlchemyError:
            # Still gone next time; the next dispatch retries the delete.
            logger.warning("Failed to prune %d push subscription(s)", len(endpoints), exc_info=True)
            return 0
        return pruned
