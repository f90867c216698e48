"""Celery task that delivers chat push notifications outside the request."""

import asyncio
import logging

from tsupport.core.celery_app import celery_app
from tsupport.core.notification import Audience

logger = logging.getLogger(__name__)


@celery_app.task(name="send_chat_push", ignore_result=True, soft_time_limit=30)
def send_chat_push(audience: str, content: str) -> None:
    """Fan a message preview out to *audience* (``"agents"`` or a customer id)."""
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(_send_chat_push_async(audience, content))
    finally:
        loop.close()


async def _send_chat_push_async(audience: str, content: str) -> None:
    from tsupport.common.code import SubscriptionResolutionError
    from tsupport.core.notification import NotificationDispatcher
    from tsupport.infra.database import get_task_db_session

    dispatcher = NotificationDispatcher(get_task_db_session)
    try:
        await dispatcher.dispatch(Audience.parse(audience), content)
    except SubscriptionResolutionError as e:
        logger.error("Dropped chat push to %s: %s", audience, e)


async def enqueue_chat_push(audience: Audience, content: str) -> None:
    """Default notifier for the messaging service: hand the push to the worker."""
    send_chat_push.delay(str(audience), content)
