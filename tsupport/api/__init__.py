from fastapi import APIRouter

from .v1 import v1_router
from .ws import ws_router

root_router = APIRouter()

api_router = APIRouter(prefix="/api")
api_router.include_router(v1_router)

root_router.include_router(api_router)
root_router.include_router(ws_router)

__all__ = ["root_router"]
