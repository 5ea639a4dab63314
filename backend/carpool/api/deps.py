"""Dependency injection for routes."""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import Settings, get_settings
from carpool.core.exceptions import ForbiddenError
from carpool.engine import CarpoolEngine
from carpool.geo.geocoder import Geocoder, NominatimGeocoder
from carpool.infrastructure.database import get_db
from carpool.infrastructure.redis import get_redis
from carpool.repositories.notification_repository import NotificationRepository
from carpool.repositories.sql_repository import create_sql_store
from carpool.services.notification_service import (
    LoggingNotifier,
    Notifier,
    RedisNotifier,
)


async def get_current_user_id(
    x_user_id: Annotated[str, Header(min_length=1, max_length=64)],
) -> str:
    return x_user_id.strip()


async def require_admin(
    x_user_roles: Annotated[Optional[str], Header()] = None,
    settings: Settings = Depends(get_settings),
) -> None:
    roles = {role.strip() for role in (x_user_roles or "").split(",")}
    if settings.admin_role not in roles:
        raise ForbiddenError()


@lru_cache
def get_geocoder() -> Geocoder:
    return NominatimGeocoder.from_settings()


def get_notification_repository(
    settings: Settings = Depends(get_settings),
) -> NotificationRepository:
    return NotificationRepository(
        get_redis(),
        ttl_seconds=settings.notification_ttl_hours * 3600,
        max_items=settings.notification_inbox_max_items,
    )


def get_notifier(settings: Settings = Depends(get_settings)) -> Notifier:
    if settings.notifier_backend == "log":
        return LoggingNotifier()
    return RedisNotifier(get_notification_repository(settings))


def get_engine(
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> CarpoolEngine:
    return CarpoolEngine(create_sql_store(db), geocoder, notifier, settings)
