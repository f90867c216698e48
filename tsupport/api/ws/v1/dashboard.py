"""Agent dashboard stream: every chat created or updated, across all chats.

Connect to ``/ws/v1/dashboard`` through the gateway (``X-Agent-Id`` set).
Frames are ``{"type": "chat", "kind": "insert"|"update", "data": {...}}``;
the client refreshes its chat list from them and may send ``{"type": "ping"}``.
"""

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends, WebSocket, status

from tsupport.api.deps import get_optional_agent
from tsupport.core.feed import ChangeFeedAdapter
from tsupport.infra.redis import get_redis_dependency

from .relay import chat_frames, serve

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ChatEvents"])


@router.websocket("/dashboard")
async def dashboard_ws(
    websocket: WebSocket,
    agent_id: str | None = Depends(get_optional_agent),
    redis_client: redis.Redis = Depends(get_redis_dependency),
):
    if agent_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("Dashboard WS connected: agent=%s", agent_id)

    chats = await ChangeFeedAdapter(redis_client).subscribe("chats")
    try:
        await serve(websocket, [chat_frames(chats)])
    except Exception as e:
        logger.warning("Dashboard WS error for agent %s: %s", agent_id, e)
    finally:
        await chats.close()
        logger.info("Dashboard WS disconnected: agent=%s", agent_id)
