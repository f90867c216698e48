"""Chat and dashboard WebSocket endpoints, driven on the test loop through a stub socket."""

import asyncio
from uuid import uuid4

import pytest
from fastapi import status

from tsupport.api.ws.v1.chat import chat_ws
from tsupport.api.ws.v1.dashboard import dashboard_ws
from tsupport.core.feed import ChangeFeedPublisher, ChangeKind
from tsupport.core.presence import BroadcastChannel, presence_topic
from tests.fixtures.redis import FakeRedis
from tests.fixtures.wait import eventually
from tests.fixtures.websocket import StubWebSocket


def _chat_channels(chat_id) -> list[str]:
    return [f"feed:messages:chat_id={chat_id}", f"feed:chats:id={chat_id}", presence_topic(chat_id)]


async def _connect(fake_redis: FakeRedis, role: str = "agent"):
    chat_id = uuid4()
    websocket = StubWebSocket()
    task = asyncio.create_task(chat_ws(websocket, chat_id, role=role, redis_client=fake_redis))  # type: ignore[arg-type]
    assert await eventually(lambda: all(fake_redis.subscriber_count(c) == 1 for c in _chat_channels(chat_id)))
    return chat_id, websocket, task


@pytest.mark.integration
class TestChatRelay:
    async def test_relays_messages_and_chat_updates(self, fake_redis: FakeRedis, publisher: ChangeFeedPublisher):
        chat_id, websocket, task = await _connect(fake_redis)

        await publisher.publish("messages", ChangeKind.INSERT, {"id": "m1", "chat_id": str(chat_id)})
        await publisher.publish("chats", ChangeKind.UPDATE, {"id": str(chat_id), "status": "closed"})

        assert await eventually(lambda: websocket.frames("message") and websocket.frames("chat"))
        assert websocket.frames("message")[0]["data"]["id"] == "m1"
        assert websocket.frames("chat")[0] == {
            "type": "chat",
            "kind": "update",
            "data": {"id": str(chat_id), "status": "closed"},
        }

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)

    async def test_typing_frames_come_only_from_the_other_party(
        self, fake_redis: FakeRedis, broadcast: BroadcastChannel
    ):
        chat_id, websocket, task = await _connect(fake_redis, role="agent")
        topic = presence_topic(chat_id)

        await broadcast.publish(topic, {"event": "typing", "sender": "agent"})
        await broadcast.publish(topic, {"event": "typing", "sender": "customer"})

        assert await eventually(lambda: len(websocket.frames("typing")) == 1)
        await asyncio.sleep(0.02)
        assert websocket.frames("typing") == [{"type": "typing", "sender": "customer"}]

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)

    async def test_client_typing_is_broadcast_with_its_role(self, fake_redis: FakeRedis):
        chat_id, websocket, task = await _connect(fake_redis, role="customer")

        websocket.push({"type": "typing"})

        assert await eventually(lambda: len(fake_redis.published_on(presence_topic(chat_id))) == 1)
        assert '"sender": "customer"' in fake_redis.published_on(presence_topic(chat_id))[0]

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)

    async def test_ping_is_answered_and_junk_ignored(self, fake_redis: FakeRedis):
        _, websocket, task = await _connect(fake_redis)

        websocket.push("not json")
        websocket.push("[1, 2]")
        websocket.push({"type": "ping"})

        assert await eventually(lambda: websocket.frames("pong") == [{"type": "pong"}])

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)

    async def test_disconnect_releases_every_subscription(self, fake_redis: FakeRedis):
        chat_id, websocket, task = await _connect(fake_redis)
        assert websocket.accepted

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)

        for channel in _chat_channels(chat_id):
            assert fake_redis.subscriber_count(channel) == 0, channel

    async def test_unknown_or_system_role_is_refused(self, fake_redis: FakeRedis):
        for role in ("system", "admin"):
            websocket = StubWebSocket()
            await chat_ws(websocket, uuid4(), role=role, redis_client=fake_redis)  # type: ignore[arg-type]
            assert websocket.close_code == status.WS_1008_POLICY_VIOLATION
            assert not websocket.accepted
        assert not any(fake_redis.subscribers.values())


@pytest.mark.integration
class TestDashboardRelay:
    async def test_streams_every_chat_change(self, fake_redis: FakeRedis, publisher: ChangeFeedPublisher):
        websocket = StubWebSocket()
        task = asyncio.create_task(
            dashboard_ws(websocket, agent_id="agent-alice", redis_client=fake_redis)  # type: ignore[arg-type]
        )
        assert await eventually(lambda: fake_redis.subscriber_count("feed:chats") == 1)

        await publisher.publish("chats", ChangeKind.INSERT, {"id": "c1", "status": "active"})
        await publisher.publish("chats", ChangeKind.UPDATE, {"id": "c2", "status": "closed"})

        assert await eventually(lambda: len(websocket.frames("chat")) == 2)
        assert [(f["kind"], f["data"]["id"]) for f in websocket.frames("chat")] == [("insert", "c1"), ("update", "c2")]

        websocket.disconnect()
        await asyncio.wait_for(task, 1.0)
        assert fake_redis.subscriber_count("feed:chats") == 0

    async def test_requires_agent(self, fake_redis: FakeRedis):
        websocket = StubWebSocket()
        await dashboard_ws(websocket, agent_id=None, redis_client=fake_redis)  # type: ignore[arg-type]
        assert websocket.close_code == status.WS_1008_POLICY_VIOLATION
        assert fake_redis.subscriber_count("feed:chats") == 0
