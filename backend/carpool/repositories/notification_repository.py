"""Notification inbox repository for Redis operations."""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Per-user capped notification lists stored in Redis."""

    def __init__(self, redis: Redis, ttl_seconds: int, max_items: int):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.max_items = max_items

    def _inbox_key(self, user_id: str) -> str:
        return f"notifications:{user_id}"

    async def push(
        self,
        user_id: str,
        text: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Append a notification, trim the inbox and refresh its TTL."""
        notification = {
            "id": str(uuid.uuid4()),
            "text": text,
            "payload": payload or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        key = self._inbox_key(user_id)
        pipe = self.redis.pipeline()
        pipe.rpush(key, json.dumps(notification))
        pipe.ltrim(key, -self.max_items, -1)
        pipe.expire(key, self.ttl_seconds)
        await pipe.execute()

        return notification

    async def get_recent(
        self,
        user_id: str,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Notifications oldest first. Empty list when the inbox is empty."""
        key = self._inbox_key(user_id)

        if limit:
            data = await self.redis.lrange(key, -limit, -1)
        else:
            data = await self.redis.lrange(key, 0, -1)

        notifications = []
        for item in data:
            try:
                notifications.append(json.loads(item))
            except json.JSONDecodeError:
                logger.warning("Skipping malformed notification in %s", key)
                continue

        return notifications
