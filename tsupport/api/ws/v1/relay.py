"""Plumbing shared by the WebSocket endpoints: frame streams and the receive loop."""

import asyncio
import inspect
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from tsupport.core.feed import FeedSubscription
from tsupport.core.presence import BroadcastSubscription
from tsupport.models.message import SenderRole

logger = logging.getLogger(__name__)

Frame = dict[str, Any]
FrameHandler = Callable[[Frame], Awaitable[None] | None]


async def message_frames(subscription: FeedSubscription) -> AsyncIterator[Frame]:
    async for event in subscription:
        yield {"type": "message", "data": event.record}


async def chat_frames(subscription: FeedSubscription) -> AsyncIterator[Frame]:
    async for event in subscription:
        yield {"type": "chat", "kind": str(event.kind), "data": event.record}


async def typing_frames(subscription: BroadcastSubscription, local_role: SenderRole) -> AsyncIterator[Frame]:
    """Typing signals from the other party only."""
    async for payload in subscription:
        sender = payload.get("sender")
        if sender and sender != local_role:
            yield {"type": "typing", "sender": sender}


async def _forward(websocket: WebSocket, frames: AsyncIterator[Frame]) -> None:
    try:
        async for frame in frames:
            await websocket.send_text(json.dumps(frame, default=str))
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.debug("Forwarder stopped: %s", e)


async def serve(
    websocket: WebSocket,
    streams: Iterable[AsyncIterator[Frame]],
    on_frame: FrameHandler | None = None,
) -> None:
    """Forward *streams* to the client and answer its frames until it disconnects.

    ``ping`` is answered here; every other JSON object goes to *on_frame*.
    The caller owns the subscriptions behind *streams* and closes them after.
    """
    forwarders = [asyncio.create_task(_forward(websocket, frames)) for frames in streams]
    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                continue
            if not isinstance(msg, dict):
                continue
            if msg.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            elif on_frame is not None:
                result = on_frame(msg)
                if inspect.isawaitable(result):
                    await result
    except WebSocketDisconnect:
        pass
    finally:
        for task in forwarders:
            task.cancel()
        await asyncio.gather(*forwarders, return_exceptions=True)
