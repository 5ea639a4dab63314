"""Health check endpoints."""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

from carpool.config import get_settings
from carpool.infrastructure import database
from carpool.infrastructure import redis as redis_infra

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadyResponse(BaseModel):
    status: str
    database: str
    redis: str


@router.get("/health", response_model=HealthResponse)
async def health():
    settings = get_settings()
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/health/ready", response_model=ReadyResponse, status_code=status.HTTP_200_OK)
async def ready():
    db_status = "disconnected"
    redis_status = "disconnected"

    if database.engine is not None:
        try:
            async with database.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
        except SQLAlchemyError as e:
            logger.warning("Database readiness check failed: %s", e)
            db_status = "error"

    if redis_infra.redis_client is not None:
        try:
            await redis_infra.redis_client.ping()
            redis_status = "connected"
        except RedisError as e:
            logger.warning("Redis readiness check failed: %s", e)
            redis_status = "error"

    overall = "ready" if db_status == "connected" and redis_status == "connected" else "not_ready"
    return ReadyResponse(status=overall, database=db_status, redis=redis_status)
