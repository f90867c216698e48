from .dispatcher import (
    Audience,
    DeliveryResult,
    DeliveryStatus,
    DispatchOutcome,
    DispatchResult,
    NotificationDispatcher,
)
from .events import build_push_payload, strip_markdown
from .vapid import ensure_vapid_keys, send_push

__all__ = [
    "Audience",
    "DeliveryResult",
    "DeliveryStatus",
    "DispatchOutcome",
    "DispatchResult",
    "NotificationDispatcher",
    "build_push_payload",
    "ensure_vapid_keys",
    "send_push",
    "strip_markdown",
]
