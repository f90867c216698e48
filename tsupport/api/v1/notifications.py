"""Web Push configuration and subscription endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.api.deps import get_optional_agent
from tsupport.common.code import ErrCode, handle_auth_error
from tsupport.configs import configs
from tsupport.core.notification.vapid import vapid_enabled
from tsupport.infra.database import get_session
from tsupport.models.push_subscription import PushSubscription
from tsupport.repos.push_subscription import PushSubscriptionRepository

router = APIRouter(tags=["notifications"])


# --- Response / Request models -----------------------------------------------


class NotificationConfigResponse(BaseModel):
    enabled: bool
    vapid_public_key: str


class PushSubscriptionRequest(BaseModel):
    endpoint: str
    keys: dict[str, str] = {}
    user_agent: str = ""
    customer_id: str | None = None


class PushSubscriptionResponse(BaseModel):
    success: bool


def _owner(agent_id: str | None, body: PushSubscriptionRequest) -> tuple[str | None, str | None]:
    if agent_id is not None:
        return agent_id, None
    if body.customer_id and body.customer_id.strip():
        return None, body.customer_id.strip()
    raise handle_auth_error(
        ErrCode.AUTHENTICATION_REQUIRED.with_messages("Agent header or customer_id is required")
    )


# --- Endpoints ----------------------------------------------------------------


@router.get("/config", response_model=NotificationConfigResponse)
async def get_notification_config() -> NotificationConfigResponse:
    """Public endpoint: whether Web Push is on and the key browsers subscribe with."""
    enabled = vapid_enabled()
    return NotificationConfigResponse(
        enabled=enabled,
        vapid_public_key=configs.Push.VapidPublicKey if enabled else "",
    )


@router.post("/push-subscription", response_model=PushSubscriptionResponse)
async def register_push_subscription(
    body: PushSubscriptionRequest,
    agent_id: str | None = Depends(get_optional_agent),
    db: AsyncSession = Depends(get_session),
) -> PushSubscriptionResponse:
    """Register a browser subscription for an agent or a customer.

    Older endpoints of the same owner on the same push service are removed.
    """
    user_id, customer_id = _owner(agent_id, body)
    p256dh, auth = body.keys.get("p256dh", ""), body.keys.get("auth", "")
    if not body.endpoint or not p256dh or not auth:
        raise handle_auth_error(ErrCode.INVALID_REQUEST.with_messages("Endpoint and keys are required"))

    repo = PushSubscriptionRepository(db)
    try:
        sub = await repo.upsert(
            PushSubscription(
                user_id=user_id,
                customer_id=customer_id,
                endpoint=body.endpoint,
                keys_p256dh=p256dh,
                keys_auth=auth,
                user_agent=body.user_agent,
            )
        )
        await repo.delete_stale_for_owner(sub)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise handle_auth_error(ErrCode.WRITE_FAILED.with_messages("Failed to save push subscription, please retry")) from e
    return PushSubscriptionResponse(success=True)


@router.delete("/push-subscription", response_model=PushSubscriptionResponse)
async def remove_push_subscription(
    body: PushSubscriptionRequest,
    db: AsyncSession = Depends(get_session),
) -> PushSubscriptionResponse:
    """Remove a subscription by endpoint."""
    repo = PushSubscriptionRepository(db)
    ok = await repo.delete_by_endpoint(body.endpoint)
    await db.commit()
    return PushSubscriptionResponse(success=ok)
