from fastapi import APIRouter

from .access import router as access_router
from .agents import router as agents_router
from .chats import router as chats_router
from .health import router as health_router
from .notifications import router as notifications_router

v1_router = APIRouter(prefix="/v1")


@v1_router.get("/", tags=["root"])
async def root() -> dict[str, str]:
    return {"message": "Welcome to the tsupport API v1"}


v1_router.include_router(health_router, prefix="/health")
v1_router.include_router(access_router, prefix="/access")
v1_router.include_router(agents_router, prefix="/agents")
v1_router.include_router(chats_router, prefix="/chats")
v1_router.include_router(notifications_router, prefix="/notifications")
