"""Group-scoped notification fanout."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from carpool.core.error_handling import translate_store_errors
from carpool.core.exceptions import NotAMemberError, NotRegisteredError
from carpool.models.records import User
from carpool.repositories.base import CarpoolStore
from carpool.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Delivers one message to one user. Best effort."""

    @abstractmethod
    async def send(
        self,
        user_id: str,
        text: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None: ...


class LoggingNotifier(Notifier):
    async def send(
        self,
        user_id: str,
        text: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        logger.info("Notification for %s: %s", user_id, text)


class RedisNotifier(Notifier):
    """Appends notifications to each recipient's Redis inbox."""

    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    async def send(
        self,
        user_id: str,
        text: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        await self.repository.push(user_id, text, payload)


def build_payload(kind: str, **fields: Any) -> dict[str, Any]:
    return {
        "kind": kind,
        "sent_at": datetime.now(timezone.utc).isoformat(),
        **fields,
    }


class NotificationFanout:
    """
    Broadcast one logical message to every opted-in member of a group.

    Fanout never raises: a lookup or delivery fault is logged and the
    caller's already-committed operation stands.
    """

    def __init__(self, store: CarpoolStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier

    async def notify_group(
        self,
        group_id: int,
        text: str,
        payload: Optional[dict[str, Any]] = None,
        exclude_user_ids: Iterable[str] = (),
    ) -> int:
        """Returns the number of members the message was delivered to."""
        excluded = set(exclude_user_ids)
        try:
            recipients = await self._recipients(group_id)
        except Exception:
            logger.exception("Failed to resolve members of group %s for notification", group_id)
            return 0

        recipients = [user for user in recipients if user.id not in excluded]
        return await self._deliver(recipients, text, payload, context=f"group {group_id}")

    async def notify_users(
        self,
        users: Iterable[User],
        text: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> int:
        recipients = [user for user in users if user.notifications_enabled]
        return await self._deliver(recipients, text, payload, context="announcement")

    async def _recipients(self, group_id: int) -> list[User]:
        memberships = await self.store.memberships.find_all(carpool_group_id=group_id)
        if not memberships:
            return []

        users = await self.store.users.find_all(id=[m.user_id for m in memberships])
        return [user for user in users if user.notifications_enabled]

    async def _deliver(
        self,
        recipients: list[User],
        text: str,
        payload: Optional[dict[str, Any]],
        context: str,
    ) -> int:
        if not recipients:
            return 0

        results = await asyncio.gather(
            *(self.notifier.send(user.id, text, payload) for user in recipients),
            return_exceptions=True,
        )

        delivered = 0
        for user, result in zip(recipients, results):
            if isinstance(result, BaseException):
                logger.warning("Notification to %s failed (%s): %s", user.id, context, result)
            else:
                delivered += 1

        logger.debug("Delivered %d/%d notifications for %s", delivered, len(recipients), context)
        return delivered


class CarpoolMessenger:
    """Member-initiated broadcasts: absences, free-text messages, announcements."""

    def __init__(self, store: CarpoolStore, fanout: NotificationFanout):
        self.store = store
        self.fanout = fanout

    @translate_store_errors
    async def report_absence(
        self,
        user_id: str,
        date: str,
        reason: str,
        display_name: Optional[str] = None,
    ) -> list[int]:
        """Tell every group the user belongs to that they will be out."""
        name = display_name or user_id
        return await self._broadcast(
            user_id,
            f"{name} will be out on {date} ({reason})",
            kind="absence",
            date=date,
            reason=reason,
        )

    @translate_store_errors
    async def send_message(
        self,
        user_id: str,
        text: str,
        display_name: Optional[str] = None,
    ) -> list[int]:
        name = display_name or user_id
        return await self._broadcast(
            user_id,
            f"{name}: {text}",
            kind="message",
            message=text,
        )

    @translate_store_errors
    async def announce(self, text: str) -> int:
        """Admin broadcast to every user with notifications enabled."""
        users = await self.store.users.find_all(notifications_enabled=True)
        payload = build_payload("announcement", message=text)
        delivered = await self.fanout.notify_users(users, text, payload)
        logger.info("Announcement delivered to %d/%d users", delivered, len(users))
        return delivered

    async def _broadcast(self, user_id: str, text: str, kind: str, **fields: Any) -> list[int]:
        """Fan ``text`` out to each of the sender's groups. Returns the group ids."""
        if await self.store.users.find_by_id(user_id) is None:
            raise NotRegisteredError(user_id)

        memberships = await self.store.memberships.find_all(user_id=user_id)
        if not memberships:
            raise NotAMemberError()

        group_ids = [m.carpool_group_id for m in memberships]
        groups = {g.id: g for g in await self.store.groups.find_all(id=group_ids)}

        for group_id in group_ids:
            group = groups.get(group_id)
            payload = build_payload(
                kind,
                actor_id=user_id,
                group_id=group_id,
                group_name=group.name if group else None,
                **fields,
            )
            await self.fanout.notify_group(group_id, text, payload)

        logger.info("%s from %s sent to %d group(s)", kind, user_id, len(group_ids))
        return group_ids
