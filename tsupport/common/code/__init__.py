from fastapi import HTTPException, status

from .error_code import ErrCode, ErrCodeError, SubscriptionResolutionError

_STATUS_MAP: dict[ErrCode, int] = {
    ErrCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrCode.INVALID_RATING: status.HTTP_400_BAD_REQUEST,
    ErrCode.AUTHENTICATION_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrCode.CHAT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrCode.CHAT_CLOSED: status.HTTP_409_CONFLICT,
    ErrCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrCode.PAYLOAD_TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrCode.INVALID_CUSTOMER_ID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrCode.UPLOAD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrCode.WRITE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrCode.SUBSCRIPTION_RESOLUTION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def handle_auth_error(error: ErrCodeError) -> HTTPException:
    """Translate an :class:`ErrCodeError` into the HTTP error returned to the client."""
    return HTTPException(
        status_code=_STATUS_MAP.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.as_dict(),
    )


__all__ = ["ErrCode", "ErrCodeError", "SubscriptionResolutionError", "handle_auth_error"]
