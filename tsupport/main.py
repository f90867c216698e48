import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tsupport.api import root_router
from tsupport.configs import configs
from tsupport.core.logger import LOGGING_CONFIG
from tsupport.infra.database import create_db_and_tables, engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Create database tables
    await create_db_and_tables()

    from tsupport.core.notification import ensure_vapid_keys

    ensure_vapid_keys()

    yield

    # Graceful shutdown: close global Redis client and DB engine
    from tsupport.infra.redis import close_redis_client

    await close_redis_client()
    await engine.dispose()


app = FastAPI(
    title="tsupport",
    description="Realtime customer-support chat service",
    version="0.1.0",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(root_router)

Path(configs.Attachments.StorageDir).mkdir(parents=True, exist_ok=True)
app.mount("/attachments", StaticFiles(directory=configs.Attachments.StorageDir), name="attachments")


if __name__ == "__main__":
    uvicorn.run(
        "tsupport.main:app",
        host=configs.Host,
        port=configs.Port,
        log_config=LOGGING_CONFIG,
        reload=configs.Debug,
        reload_excludes=["tests"],
    )
