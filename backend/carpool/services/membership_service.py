"""Membership coordination business logic."""

import logging
from typing import Optional

from carpool.core.error_handling import translate_store_errors
from carpool.core.exceptions import (
    AlreadyMemberError,
    DuplicateEntryError,
    DuplicateNameError,
    GroupFullError,
    GroupNotFoundError,
    NotAMemberError,
    NotRegisteredError,
    OfficeNotFoundError,
    ScheduleNotFoundError,
)
from carpool.core.validation import normalize_days, parse_capacity, parse_time
from carpool.geo.geocoder import Geocoder, locate
from carpool.models.records import (
    CarpoolGroup,
    CarpoolMembership,
    OfficeLocation,
    ScheduleDefaults,
    User,
    WorkSchedule,
)
from carpool.repositories.base import CarpoolStore
from carpool.services.notification_service import NotificationFanout, build_payload

logger = logging.getLogger(__name__)


class MembershipCoordinator:
    """
    Validated state transitions for users, offices, schedules and groups.

    Each operation performs at most one store write, so a failure leaves
    no partial state behind. Store failures surface as InternalError.
    """

    def __init__(
        self,
        store: CarpoolStore,
        geocoder: Geocoder,
        fanout: NotificationFanout,
        schedule_defaults: Optional[ScheduleDefaults] = None,
    ):
        self.store = store
        self.geocoder = geocoder
        self.fanout = fanout
        self.schedule_defaults = schedule_defaults or ScheduleDefaults()

    @translate_store_errors
    async def register_home(self, user_id: str, address: str) -> User:
        """Create the user on first registration, else move their home."""
        coordinates = await locate(self.geocoder, address)
        fields = {
            "home_address": address.strip(),
            "home_latitude": coordinates.latitude,
            "home_longitude": coordinates.longitude,
        }

        existing = await self.store.users.find_by_id(user_id)
        if existing is None:
            try:
                user = await self.store.users.create(
                    id=user_id,
                    notifications_enabled=True,
                    **fields,
                )
                logger.info("Registered user %s", user_id)
                return user
            except DuplicateEntryError:
                # A concurrent registration won the insert; fall through to update.
                pass

        user = await self.store.users.update(user_id, **fields)
        logger.info("Updated home address for user %s", user_id)
        return user

    @translate_store_errors
    async def set_notifications(self, user_id: str, enabled: bool) -> User:
        if await self.store.users.find_by_id(user_id) is None:
            raise NotRegisteredError(user_id)
        return await self.store.users.update(user_id, notifications_enabled=enabled)

    @translate_store_errors
    async def add_office(self, name: str, address: str) -> OfficeLocation:
        name = name.strip()
        coordinates = await locate(self.geocoder, address)

        if await self.store.offices.find_one(name=name) is not None:
            raise DuplicateNameError("office", name)

        try:
            office = await self.store.offices.create(
                name=name,
                address=address.strip(),
                latitude=coordinates.latitude,
                longitude=coordinates.longitude,
            )
        except DuplicateEntryError:
            raise DuplicateNameError("office", name)

        logger.info("Added office %s (%s)", name, office.id)
        return office

    @translate_store_errors
    async def set_user_office(
        self,
        user_id: str,
        office_name: str,
        defaults: Optional[ScheduleDefaults] = None,
    ) -> WorkSchedule:
        """
        Point the user's schedule at ``office_name``.

        With no schedule yet, one is created from ``defaults``. A user who
        already has a schedule at that office keeps it untouched; otherwise
        their earliest schedule is moved to the office.
        """
        await self._require_user(user_id)
        office = await self._require_office(office_name)

        schedules = await self.store.schedules.find_all(user_id=user_id)
        for schedule in schedules:
            if schedule.work_location_id == office.id:
                return schedule

        if schedules:
            schedule = await self.store.schedules.update(
                schedules[0].id, work_location_id=office.id
            )
            logger.info("Moved schedule %s of %s to office %s", schedule.id, user_id, office.name)
            return schedule

        defaults = defaults or self.schedule_defaults
        schedule = await self.store.schedules.create(
            user_id=user_id,
            work_location_id=office.id,
            start_time=defaults.start_time,
            end_time=defaults.end_time,
            days_of_week=defaults.days_of_week,
        )
        logger.info("Created default schedule %s for %s at %s", schedule.id, user_id, office.name)
        return schedule

    @translate_store_errors
    async def set_schedule(
        self,
        user_id: str,
        office_name: str,
        start_time: str,
        end_time: str,
        days: str,
    ) -> WorkSchedule:
        """Create or replace the user's schedule at one office."""
        await self._require_user(user_id)
        office = await self._require_office(office_name)
        start = parse_time(start_time)
        end = parse_time(end_time)
        days_of_week = normalize_days(days)

        existing = await self.store.schedules.find_one(
            user_id=user_id, work_location_id=office.id
        )
        if existing is not None:
            return await self.store.schedules.update(
                existing.id,
                start_time=start,
                end_time=end,
                days_of_week=days_of_week,
            )

        schedule = await self.store.schedules.create(
            user_id=user_id,
            work_location_id=office.id,
            start_time=start,
            end_time=end,
            days_of_week=days_of_week,
        )
        logger.info("Created schedule %s for %s at %s", schedule.id, user_id, office.name)
        return schedule

    @translate_store_errors
    async def list_schedules(self, user_id: str) -> list[WorkSchedule]:
        await self._require_user(user_id)
        return await self.store.schedules.find_all(user_id=user_id)

    @translate_store_errors
    async def delete_schedule(self, user_id: str, schedule_id: int) -> None:
        schedule = await self.store.schedules.find_by_id(schedule_id)
        if schedule is None or schedule.user_id != user_id:
            raise ScheduleNotFoundError(schedule_id)

        await self.store.schedules.delete(schedule_id)
        logger.info("Deleted schedule %s of %s", schedule_id, user_id)

    @translate_store_errors
    async def create_group(self, name: str, office_name: str, max_size: int) -> CarpoolGroup:
        office = await self._require_office(office_name)
        capacity = parse_capacity(max_size)
        name = name.strip()

        if await self.store.groups.find_one(name=name) is not None:
            raise DuplicateNameError("carpool group", name)

        try:
            group = await self.store.groups.create(
                name=name,
                work_location_id=office.id,
                max_size=capacity,
            )
        except DuplicateEntryError:
            raise DuplicateNameError("carpool group", name)

        logger.info("Created carpool group %s at %s (max %d)", name, office.name, capacity)
        return group

    @translate_store_errors
    async def join_group(
        self,
        user_id: str,
        group_name: str,
        display_name: Optional[str] = None,
    ) -> CarpoolMembership:
        await self._require_user(user_id)
        group = await self._require_group(group_name)

        if await self.store.memberships.count(carpool_group_id=group.id) >= group.max_size:
            raise GroupFullError(group.name, group.max_size)

        if await self.store.memberships.find_one(
            user_id=user_id, carpool_group_id=group.id
        ) is not None:
            raise AlreadyMemberError(group.name)

        # The count above is advisory; the insert re-checks capacity atomically.
        try:
            membership = await self.store.memberships.insert_within_capacity(
                user_id=user_id,
                group_id=group.id,
                max_size=group.max_size,
            )
        except DuplicateEntryError:
            raise AlreadyMemberError(group.name)

        if membership is None:
            raise GroupFullError(group.name, group.max_size)

        logger.info("User %s joined group %s", user_id, group.name)

        name = display_name or user_id
        await self.fanout.notify_group(
            group.id,
            f"{name} has joined {group.name}",
            build_payload(
                "member_joined",
                actor_id=user_id,
                group_id=group.id,
                group_name=group.name,
            ),
            exclude_user_ids={user_id},
        )
        return membership

    @translate_store_errors
    async def set_organizer(
        self,
        user_id: str,
        group_name: str,
        display_name: Optional[str] = None,
    ) -> CarpoolMembership:
        await self._require_user(user_id)
        group = await self._require_group(group_name)

        membership = await self.store.memberships.find_one(
            user_id=user_id, carpool_group_id=group.id
        )
        if membership is None:
            raise NotAMemberError(group.name)

        if not membership.is_organizer:
            membership = await self.store.memberships.update(membership.id, is_organizer=True)
            logger.info("User %s is now an organizer of %s", user_id, group.name)

        name = display_name or user_id
        await self.fanout.notify_group(
            group.id,
            f"{name} is now an organizer for {group.name}",
            build_payload(
                "organizer_added",
                actor_id=user_id,
                group_id=group.id,
                group_name=group.name,
            ),
        )
        return membership

    async def _require_user(self, user_id: str) -> User:
        user = await self.store.users.find_by_id(user_id)
        if user is None:
            raise NotRegisteredError(user_id)
        return user

    async def _require_office(self, name: str) -> OfficeLocation:
        office = await self.store.offices.find_one(name=name.strip())
        if office is None:
            raise OfficeNotFoundError(name)
        return office

    async def _require_group(self, name: str) -> CarpoolGroup:
        group = await self.store.groups.find_one(name=name.strip())
        if group is None:
            raise GroupNotFoundError(name)
        return group
