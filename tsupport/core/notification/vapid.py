"""VAPID key checks and single Web Push sends via pywebpush."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pywebpush import webpush

from tsupport.configs import configs

logger = logging.getLogger(__name__)


def vapid_enabled() -> bool:
    push = configs.Push
    return bool(push.Enable and push.VapidPublicKey and push.VapidPrivateKey)


def ensure_vapid_keys() -> bool:
    """Log whether Web Push can be used. Called once at startup."""
    if vapid_enabled():
        logger.info("VAPID keys ready (public=%s...)", configs.Push.VapidPublicKey[:20])
        return True
    logger.warning("VAPID keys not configured, Web Push disabled")
    return False


def send_push(subscription_info: Mapping[str, Any], payload: Mapping[str, str]) -> bool:
    """Send one Web Push message. Blocking; run it in a worker thread.

    Returns False when push is disabled. Provider errors propagate as
    :class:`pywebpush.WebPushException` so callers can read the status code.
    """
    if not vapid_enabled():
        logger.debug("Web Push disabled, skipping %s", str(subscription_info.get("endpoint", ""))[:60])
        return False

    webpush(
        subscription_info=dict(subscription_info),
        data=json.dumps(payload),
        vapid_private_key=configs.Push.VapidPrivateKey,
        vapid_claims={"sub": f"mailto:{configs.Push.VapidContactEmail}"},
    )
    return True
