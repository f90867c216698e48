"""FastAPI dependencies shared by the HTTP and WebSocket routers."""

import redis.asyncio as redis
from fastapi import Depends, Header

from tsupport.common.code import ErrCode, handle_auth_error
from tsupport.core.access import AccessGate
from tsupport.core.attachments import AttachmentStore, LocalAttachmentStore
from tsupport.core.chat import MessageService, SessionLifecycleManager
from tsupport.core.chat.messaging import Notifier
from tsupport.core.feed import ChangeFeedPublisher
from tsupport.infra.database import SessionFactory, get_session_factory
from tsupport.infra.redis import get_redis_dependency


async def get_optional_agent(x_agent_id: str | None = Header(default=None, alias="X-Agent-Id")) -> str | None:
    """Agent id set by the authenticating gateway; absent for customers."""
    if x_agent_id is None or not x_agent_id.strip():
        return None
    return x_agent_id.strip()


async def get_current_agent(agent_id: str | None = Depends(get_optional_agent)) -> str:
    if agent_id is None:
        raise handle_auth_error(ErrCode.AUTHENTICATION_REQUIRED.with_messages("Agent authentication required"))
    return agent_id


def get_notifier() -> Notifier:
    from tsupport.tasks.notification import enqueue_chat_push

    return enqueue_chat_push


def get_attachment_store() -> AttachmentStore:
    return LocalAttachmentStore()


def get_publisher(redis_client: redis.Redis = Depends(get_redis_dependency)) -> ChangeFeedPublisher:
    return ChangeFeedPublisher(redis_client)


def get_access_gate(session_factory: SessionFactory = Depends(get_session_factory)) -> AccessGate:
    return AccessGate(session_factory)


def get_lifecycle(
    session_factory: SessionFactory = Depends(get_session_factory),
    access_gate: AccessGate = Depends(get_access_gate),
    publisher: ChangeFeedPublisher = Depends(get_publisher),
) -> SessionLifecycleManager:
    return SessionLifecycleManager(session_factory, access_gate, publisher)


def get_message_service(
    session_factory: SessionFactory = Depends(get_session_factory),
    publisher: ChangeFeedPublisher = Depends(get_publisher),
    notifier: Notifier = Depends(get_notifier),
    attachment_store: AttachmentStore = Depends(get_attachment_store),
) -> MessageService:
    return MessageService(session_factory, publisher, notifier, attachment_store)
