import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from tsupport.infra.database import get_session
from tsupport.infra.redis import get_redis_dependency, health_check

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    database: bool
    redis: bool


@router.get("", response_model=HealthResponse)
async def get_health(
    response: Response,
    db: AsyncSession = Depends(get_session),
    redis_client: redis.Redis = Depends(get_redis_dependency),
) -> HealthResponse:
    """Liveness of the store and the pub/sub backend. 503 when either is down."""
    try:
        await db.exec(text("SELECT 1"))  # type: ignore[call-overload]
        database_ok = True
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        database_ok = False

    redis_ok = await health_check(redis_client)
    if not (database_ok and redis_ok):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(status="ok" if database_ok and redis_ok else "degraded", database=database_ok, redis=redis_ok)
