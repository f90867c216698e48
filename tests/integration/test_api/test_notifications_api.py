import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.repos.push_subscription import PushSubscriptionRepository

KEYS = {"p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQ", "auth": "tBHItJI5svbpez7KI4CCXg"}


def _body(endpoint: str, **extra: str) -> dict:
    return {"endpoint": endpoint, "keys": KEYS, **extra}


@pytest.mark.integration
class TestNotificationsAPI:
    async def test_config_exposes_public_key(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/notifications/config")
        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is True
        assert data["vapid_public_key"].startswith("B")

    async def test_register_requires_an_owner(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/notifications/push-subscription", json=_body("https://fcm.googleapis.com/fcm/send/1")
        )
        assert response.status_code == 401

    async def test_reregistering_replaces_stale_endpoint(
        self, async_client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ):
        headers = {"X-Agent-Id": "agent1"}
        old = "https://fcm.googleapis.com/fcm/send/old"
        new = "https://fcm.googleapis.com/fcm/send/new"

        for endpoint in (old, new):
            response = await async_client.post(
                "/api/v1/notifications/push-subscription", json=_body(endpoint), headers=headers
            )
            assert response.json() == {"success": True}

        async with session_factory() as db:
            agents = await PushSubscriptionRepository(db).get_for_agents()
        assert [s.endpoint for s in agents] == [new]

    async def test_customer_subscription_and_removal(
        self, async_client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ):
        endpoint = "https://updates.push.services.mozilla.com/wpush/v2/abc"
        response = await async_client.post(
            "/api/v1/notifications/push-subscription", json=_body(endpoint, customer_id="customer5")
        )
        assert response.json() == {"success": True}

        async with session_factory() as db:
            subs = await PushSubscriptionRepository(db).get_for_customer("customer5")
        assert [s.endpoint for s in subs] == [endpoint]

        removed = await async_client.request(
            "DELETE", "/api/v1/notifications/push-subscription", json=_body(endpoint)
        )
        assert removed.json() == {"success": True}
