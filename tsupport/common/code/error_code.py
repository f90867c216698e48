"""Numeric error codes shared by the core services and the HTTP layer."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrCode(IntEnum):
    # Generic
    SUCCESS = 0
    UNKNOWN_ERROR = 1000
    INTERNAL_SERVER_ERROR = 1001
    INVALID_REQUEST = 1002
    SERVICE_UNAVAILABLE = 1003

    # Auth
    AUTHENTICATION_REQUIRED = 2000

    # Access gate
    INVALID_CUSTOMER_ID = 3000

    # Session store
    WRITE_FAILED = 4000
    SUBSCRIPTION_RESOLUTION_FAILED = 4001

    # Chat lifecycle
    CHAT_NOT_FOUND = 5000
    CHAT_CLOSED = 5001
    INVALID_TRANSITION = 5002
    INVALID_RATING = 5003

    # Attachments
    PAYLOAD_TOO_LARGE = 6000
    UPLOAD_FAILED = 6001

    def with_messages(self, *messages: str) -> ErrCodeError:
        return ErrCodeError(self, messages)

    def with_errors(self, *errors: BaseException) -> ErrCodeError:
        return ErrCodeError(self, tuple(str(err) for err in errors if err))

    @property
    def default_message(self) -> str:
        return self.name.replace("_", " ").title()

    @property
    def retryable(self) -> bool:
        """Whether the initiating user may retry the same action."""
        return self in (ErrCode.WRITE_FAILED, ErrCode.SERVICE_UNAVAILABLE, ErrCode.UPLOAD_FAILED)


class ErrCodeError(Exception):
    def __init__(self, code: ErrCode, messages: tuple[str, ...] = ()) -> None:
        self.code = code
        self.messages = tuple(m for m in messages if m)
        super().__init__(self._format())

    def _format(self) -> str:
        head = f"[{self.code.name}:{int(self.code)}]"
        if not self.messages:
            return head
        return f"{head} {'; '.join(self.messages)}"

    def as_dict(self) -> dict[str, Any]:
        if not self.messages:
            return {"code": int(self.code), "msg": self.code.default_message, "info": []}
        primary, *rest = self.messages
        body: dict[str, Any] = {"code": int(self.code), "msg": primary}
        if rest:
            body["info"] = rest
        if self.code.retryable:
            body["retryable"] = True
        return body


class SubscriptionResolutionError(ErrCodeError):
    """The store could not resolve push recipients; dispatch fails as a whole."""

    def __init__(self, *messages: str) -> None:
        super().__init__(ErrCode.SUBSCRIPTION_RESOLUTION_FAILED, messages)
