from fastapi import APIRouter

from .chat import router as chat_router
from .dashboard import router as dashboard_router

# Don't add tags here to avoid duplication in docs
ws_v1_router = APIRouter(
    prefix="/v1",
)

ws_v1_router.include_router(chat_router, prefix="/chats")
ws_v1_router.include_router(dashboard_router)
