from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from app.api.videos import router as videos_router
from app.api.health import router as health_router
from core.config import settings
from core.db import init_db
from core.logging import setup_json_logging

# Setup logging
setup_json_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ready")
    yield


app = FastAPI(title="Clipfeed API", version="0.1.0", lifespan=lifespan)

# Include routers
app.include_router(health_router)  # Health at root level
app.include_router(videos_router, prefix="/api/v1")
