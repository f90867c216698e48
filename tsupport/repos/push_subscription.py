"""Repository for Web Push subscriptions."""

import logging
from urllib.parse import urlparse

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)


class PushSubscriptionRepository:
    """CRUD operations for PushSubscription."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_agents(self) -> list[PushSubscription]:
        """Every subscription owned by an authenticated agent."""
        stmt = select(PushSubscription).where(col(PushSubscription.user_id).is_not(None))
        result = await self.db.exec(stmt)
        return list(result.all())

    async def get_for_customer(self, customer_id: str) -> list[PushSubscription]:
        stmt = select(PushSubscription).where(col(PushSubscription.customer_id) == customer_id)
        result = await self.db.exec(stmt)
        return list(result.all())

    async def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        stmt = select(PushSubscription).where(col(PushSubscription.endpoint) == endpoint)
        result = await self.db.exec(stmt)
        return result.first()

    async def upsert(self, sub: PushSubscription) -> PushSubscription:
        """Insert or update by endpoint (unique). The row moves to the new owner."""
        existing = await self.get_by_endpoint(sub.endpoint)

        if existing:
            existing.user_id = sub.user_id
            existing.customer_id = sub.customer_id
            existing.keys_p256dh = sub.keys_p256dh
            existing.keys_auth = sub.keys_auth
            existing.user_agent = sub.user_agent
            self.db.add(existing)
            await self.db.flush()
            await self.db.refresh(existing)
            return existing

        self.db.add(sub)
        await self.db.flush()
        await self.db.refresh(sub)
        return sub

    async def delete_by_endpoint(self, endpoint: str) -> bool:
        existing = await self.get_by_endpoint(endpoint)
        if existing:
            await self.db.delete(existing)
            await self.db.flush()
            return True
        return False

    async def delete_stale_for_owner(self, sub: PushSubscription) -> int:
        """Delete the owner's other subscriptions on the same push-service
        domain as *sub*, keeping *sub* itself.

        A browser that re-subscribes gets a fresh endpoint from the same push
        service; the old one is dead. Returns the number of deleted rows.
        """
        domain = self.extract_domain(sub.endpoint)
        stmt = select(PushSubscription).where(
            col(PushSubscription.endpoint) != sub.endpoint,
            col(PushSubscription.endpoint).startswith(domain),
        )
        if sub.user_id is not None:
            stmt = stmt.where(col(PushSubscription.user_id) == sub.user_id)
        elif sub.customer_id is not None:
            stmt = stmt.where(col(PushSubscription.customer_id) == sub.customer_id)
        else:
            return 0

        result = await self.db.exec(stmt)
        stale = list(result.all())
        for row in stale:
            await self.db.delete(row)
        if stale:
            await self.db.flush()
            logger.info("Removed %d stale push subscription(s) for %s on %s", len(stale), sub.owner, domain)
        return len(stale)

    @staticmethod
    def extract_domain(endpoint: str) -> str:
        """Return ``https://host`` from an endpoint URL."""
        parsed = urlparse(endpoint)
        return f"{parsed.scheme}://{parsed.netloc}"
