"""WebSocket endpoint streaming one chat to a browser client.

Clients connect with ``/ws/v1/chats/{chat_id}?role=customer|agent`` and
receive JSON frames::

    {"type": "message", "data": {...}}                   new message row
    {"type": "chat", "kind": "update", "data": {...}}    chat row update
    {"type": "typing", "sender": "agent"}

The client may send ``{"type": "typing"}`` and ``{"type": "ping"}``.
"""

import logging
from uuid import UUID

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Query, WebSocket, status

from tsupport.core.feed import ChangeFeedAdapter, ChangeKind
from tsupport.core.presence import TYPING_EVENT, BroadcastChannel, presence_topic
from tsupport.infra.redis import get_redis_dependency
from tsupport.models.message import SenderRole

from .relay import Frame, chat_frames, message_frames, serve, typing_frames

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ChatEvents"])


@router.websocket("/{chat_id}")
async def chat_ws(
    websocket: WebSocket,
    chat_id: UUID,
    role: str = Query(default=SenderRole.CUSTOMER.value),
    redis_client: redis.Redis = Depends(get_redis_dependency),
):
    """Relay message inserts, chat updates and typing signals for one chat."""
    try:
        local_role = SenderRole(role)
    except ValueError:
        local_role = SenderRole.SYSTEM
    if local_role is SenderRole.SYSTEM:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("Chat WS connected: chat=%s role=%s", chat_id, local_role)

    feed = ChangeFeedAdapter(redis_client)
    broadcast = BroadcastChannel(redis_client)
    messages = await feed.subscribe("messages", filter=("chat_id", chat_id), kinds=(ChangeKind.INSERT,))
    chats = await feed.subscribe("chats", filter=("id", chat_id), kinds=(ChangeKind.UPDATE,))
    typing = await broadcast.subscribe(presence_topic(chat_id), TYPING_EVENT)

    def on_frame(msg: Frame) -> None:
        if msg.get("type") == "typing":
            broadcast.announce_typing(chat_id, local_role)

    try:
        await serve(
            websocket,
            [message_frames(messages), chat_frames(chats), typing_frames(typing, local_role)],
            on_frame,
        )
    except Exception as e:
        logger.warning("Chat WS error for chat %s: %s", chat_id, e)
    finally:
        await messages.close()
        await chats.close()
        await typing.close()
        await broadcast.drain()
        logger.info("Chat WS disconnected: chat=%s role=%s", chat_id, local_role)
