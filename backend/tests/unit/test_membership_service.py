"""Unit tests for MembershipCoordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from carpool.core.exceptions import (
    AddressNotFoundError,
    AlreadyMemberError,
    DuplicateNameError,
    GroupFullError,
    GroupNotFoundError,
    InternalError,
    InvalidCapacityError,
    InvalidDaysError,
    InvalidTimeFormatError,
    LookupUnavailableError,
    NotAMemberError,
    NotRegisteredError,
    OfficeNotFoundError,
    ScheduleNotFoundError,
    StoreError,
)
from carpool.models.records import Coordinates, ScheduleDefaults
from carpool.repositories.memory_repository import InMemoryMembershipRepository


class YieldingMembershipRepository(InMemoryMembershipRepository):
    """Suspends between reading a count and acting on it."""

    def __init__(self):
        super().__init__()
        self.counts_seen: list[int] = []

    async def count(self, **filters):
        result = await super().count(**filters)
        self.counts_seen.append(result)
        await asyncio.sleep(0)
        return result


class TestRegisterHome:
    @pytest.mark.asyncio
    async def test_creates_user_with_notifications_enabled(self, engine):
        user = await engine.coordinator.register_home("alice", "12 Oak Road")

        assert user.id == "alice"
        assert user.home_address == "12 Oak Road"
        assert user.home_latitude == 40.7128
        assert user.home_longitude == -74.0060
        assert user.notifications_enabled is True

    @pytest.mark.asyncio
    async def test_second_call_updates_same_record(self, engine, store, geocoder):
        await engine.coordinator.register_home("alice", "12 Oak Road")
        geocoder.geocode.return_value = [Coordinates(51.5, -0.12)]

        user = await engine.coordinator.register_home("alice", "1 Baker St")

        assert user.home_address == "1 Baker St"
        assert user.home_latitude == 51.5
        assert await store.users.count() == 1

    @pytest.mark.asyncio
    async def test_update_preserves_notification_preference(self, engine):
        await engine.coordinator.register_home("alice", "12 Oak Road")
        await engine.coordinator.set_notifications("alice", False)

        user = await engine.coordinator.register_home("alice", "1 Baker St")

        assert user.notifications_enabled is False

    @pytest.mark.asyncio
    async def test_no_geocoding_result(self, engine, store, geocoder):
        geocoder.geocode.return_value = []

        with pytest.raises(AddressNotFoundError):
            await engine.coordinator.register_home("alice", "Nowhere")
        assert await store.users.count() == 0

    @pytest.mark.asyncio
    async def test_blank_address_is_not_geocoded(self, engine, geocoder):
        with pytest.raises(AddressNotFoundError):
            await engine.coordinator.register_home("alice", "   ")
        geocoder.geocode.assert_not_called()

    @pytest.mark.asyncio
    async def test_lookup_unavailable_propagates(self, engine, geocoder):
        geocoder.geocode.side_effect = LookupUnavailableError("timeout")

        with pytest.raises(LookupUnavailableError):
            await engine.coordinator.register_home("alice", "12 Oak Road")

    @pytest.mark.asyncio
    async def test_store_failure_becomes_internal_error(self, engine, store):
        store.users.create = AsyncMock(side_effect=StoreError("disk full"))

        with pytest.raises(InternalError) as exc_info:
            await engine.coordinator.register_home("alice", "12 Oak Road")
        assert exc_info.value.code == "INTERNAL_ERROR"


class TestAddOffice:
    @pytest.mark.asyncio
    async def test_creates_office(self, engine):
        office = await engine.coordinator.add_office("HQ", "1 Main St")

        assert office.name == "HQ"
        assert office.address == "1 Main St"
        assert office.coordinates == Coordinates(40.7128, -74.0060)

    @pytest.mark.asyncio
    async def test_duplicate_name(self, engine, add_office):
        await add_office("HQ")

        with pytest.raises(DuplicateNameError) as exc_info:
            await engine.coordinator.add_office("HQ", "Elsewhere")
        assert exc_info.value.code == "DUPLICATE_NAME"

    @pytest.mark.asyncio
    async def test_unresolvable_address(self, engine, store, geocoder):
        geocoder.geocode.return_value = []

        with pytest.raises(AddressNotFoundError):
            await engine.coordinator.add_office("HQ", "Nowhere")
        assert await store.offices.count() == 0


class TestSetUserOffice:
    @pytest.mark.asyncio
    async def test_creates_default_schedule(self, engine, register, add_office):
        await register("alice")
        office = await add_office("HQ")

        schedule = await engine.coordinator.set_user_office("alice", "HQ")

        assert schedule.work_location_id == office.id
        assert schedule.start_time == "09:00"
        assert schedule.end_time == "17:00"
        assert schedule.days_of_week == "1,2,3,4,5"

    @pytest.mark.asyncio
    async def test_explicit_defaults(self, engine, register, add_office):
        await register("alice")
        await add_office("HQ")

        schedule = await engine.coordinator.set_user_office(
            "alice", "HQ", ScheduleDefaults("07:00", "15:00", "1,3,5")
        )

        assert (schedule.start_time, schedule.end_time, schedule.days_of_week) == (
            "07:00",
            "15:00",
            "1,3,5",
        )

    @pytest.mark.asyncio
    async def test_moves_existing_schedule(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")
        branch = await add_office("Branch", "2 Side St")
        first = await engine.coordinator.set_schedule("alice", "HQ", "08:00", "16:00", "1,2")

        moved = await engine.coordinator.set_user_office("alice", "Branch")

        assert moved.id == first.id
        assert moved.work_location_id == branch.id
        assert moved.start_time == "08:00"
        assert await store.schedules.count(user_id="alice") == 1

    @pytest.mark.asyncio
    async def test_same_office_is_noop(self, engine, store, register, add_office):
        await register("alice", office_name=None)
        await add_office("HQ")
        first = await engine.coordinator.set_user_office("alice", "HQ")

        again = await engine.coordinator.set_user_office("alice", "HQ")

        assert again == first
        assert await store.schedules.count() == 1

    @pytest.mark.asyncio
    async def test_unregistered_user(self, engine, add_office):
        await add_office("HQ")

        with pytest.raises(NotRegisteredError):
            await engine.coordinator.set_user_office("ghost", "HQ")

    @pytest.mark.asyncio
    async def test_unknown_office(self, engine, register):
        await register("alice")

        with pytest.raises(OfficeNotFoundError):
            await engine.coordinator.set_user_office("alice", "Atlantis")


class TestSetSchedule:
    @pytest.mark.asyncio
    async def test_stores_canonical_days(self, engine, register, add_office):
        await register("alice")
        await add_office("HQ")

        schedule = await engine.coordinator.set_schedule("alice", "HQ", "08:00", "16:30", "5,1,3,3")

        assert schedule.days_of_week == "1,3,5"
        assert schedule.days == (1, 3, 5)

    @pytest.mark.asyncio
    async def test_replaces_schedule_at_same_office(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")
        first = await engine.coordinator.set_schedule("alice", "HQ", "08:00", "16:00", "1,2")

        second = await engine.coordinator.set_schedule("alice", "HQ", "10:00", "18:00", "3")

        assert second.id == first.id
        assert second.start_time == "10:00"
        assert second.days_of_week == "3"
        assert await store.schedules.count(user_id="alice") == 1

    @pytest.mark.asyncio
    async def test_one_schedule_per_office(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")
        await add_office("Branch", "2 Side St")

        await engine.coordinator.set_schedule("alice", "HQ", "08:00", "16:00", "1,2")
        await engine.coordinator.set_schedule("alice", "Branch", "08:00", "16:00", "3,4")

        assert await store.schedules.count(user_id="alice") == 2

    @pytest.mark.asyncio
    async def test_invalid_time(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")

        with pytest.raises(InvalidTimeFormatError):
            await engine.coordinator.set_schedule("alice", "HQ", "25:00", "17:00", "1")
        assert await store.schedules.count() == 0

    @pytest.mark.asyncio
    async def test_invalid_days(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")

        with pytest.raises(InvalidDaysError):
            await engine.coordinator.set_schedule("alice", "HQ", "09:00", "17:00", "1,2,9")
        assert await store.schedules.count() == 0

    @pytest.mark.asyncio
    async def test_unknown_office(self, engine, register):
        await register("alice")

        with pytest.raises(OfficeNotFoundError):
            await engine.coordinator.set_schedule("alice", "Atlantis", "09:00", "17:00", "1")


class TestDeleteSchedule:
    @pytest.mark.asyncio
    async def test_owner_can_delete(self, engine, store, register, add_office):
        await register("alice")
        await add_office("HQ")
        schedule = await engine.coordinator.set_user_office("alice", "HQ")

        await engine.coordinator.delete_schedule("alice", schedule.id)

        assert await store.schedules.find_by_id(schedule.id) is None

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, engine, store, register, add_office):
        await add_office("HQ")
        await register("alice", "HQ")
        await register("bob")
        schedule = (await engine.coordinator.list_schedules("alice"))[0]

        with pytest.raises(ScheduleNotFoundError):
            await engine.coordinator.delete_schedule("bob", schedule.id)
        assert await store.schedules.find_by_id(schedule.id) is not None

    @pytest.mark.asyncio
    async def test_missing_schedule(self, engine):
        with pytest.raises(ScheduleNotFoundError):
            await engine.coordinator.delete_schedule("alice", 999)


class TestCreateGroup:
    @pytest.mark.asyncio
    async def test_creates_group(self, engine, add_office):
        office = await add_office("HQ")

        group = await engine.coordinator.create_group("Early Birds", "HQ", 4)

        assert group.name == "Early Birds"
        assert group.work_location_id == office.id
        assert group.max_size == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_size", [0, -1, 2.5, "four"])
    async def test_invalid_capacity(self, engine, add_office, max_size):
        await add_office("HQ")

        with pytest.raises(InvalidCapacityError):
            await engine.coordinator.create_group("Early Birds", "HQ", max_size)

    @pytest.mark.asyncio
    async def test_unknown_office(self, engine):
        with pytest.raises(OfficeNotFoundError):
            await engine.coordinator.create_group("Early Birds", "Atlantis", 4)

    @pytest.mark.asyncio
    async def test_duplicate_name(self, engine, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("Early Birds", "HQ", 4)

        with pytest.raises(DuplicateNameError):
            await engine.coordinator.create_group("Early Birds", "HQ", 2)


class TestJoinGroup:
    @pytest.mark.asyncio
    async def test_join_creates_membership(self, engine, register, add_office):
        await add_office("HQ")
        group = await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")

        membership = await engine.coordinator.join_group("alice", "G")

        assert membership.user_id == "alice"
        assert membership.carpool_group_id == group.id
        assert membership.is_organizer is False

    @pytest.mark.asyncio
    async def test_existing_members_are_notified(self, engine, notifier, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")
        await register("bob", "HQ")
        await engine.coordinator.join_group("alice", "G")

        await engine.coordinator.join_group("bob", "G", display_name="Bob")

        assert notifier.sent[-1][0] == "alice"
        assert notifier.sent[-1][1] == "Bob has joined G"
        assert notifier.sent[-1][2]["kind"] == "member_joined"
        assert "bob" not in notifier.recipients()

    @pytest.mark.asyncio
    async def test_second_join_is_rejected(self, engine, store, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")
        await engine.coordinator.join_group("alice", "G")

        with pytest.raises(AlreadyMemberError):
            await engine.coordinator.join_group("alice", "G")
        assert await store.memberships.count() == 1

    @pytest.mark.asyncio
    async def test_full_group(self, engine, store, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 1)
        await register("alice", "HQ")
        await register("bob", "HQ")
        await engine.coordinator.join_group("alice", "G")

        with pytest.raises(GroupFullError) as exc_info:
            await engine.coordinator.join_group("bob", "G")
        assert exc_info.value.code == "GROUP_FULL"
        assert await store.memberships.count() == 1

    @pytest.mark.asyncio
    async def test_full_group_is_reported_before_membership(self, engine, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 1)
        await register("alice", "HQ")
        await engine.coordinator.join_group("alice", "G")

        with pytest.raises(GroupFullError):
            await engine.coordinator.join_group("alice", "G")

    @pytest.mark.asyncio
    async def test_unregistered_user(self, engine, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)

        with pytest.raises(NotRegisteredError):
            await engine.coordinator.join_group("ghost", "G")

    @pytest.mark.asyncio
    async def test_unknown_group(self, engine, register):
        await register("alice")

        with pytest.raises(GroupNotFoundError):
            await engine.coordinator.join_group("alice", "Nope")

    @pytest.mark.asyncio
    async def test_concurrent_joins_respect_capacity(self, engine, store, register, add_office):
        store.memberships = YieldingMembershipRepository()
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        user_ids = [f"user-{i}" for i in range(4)]
        for user_id in user_ids:
            await register(user_id, "HQ")

        results = await asyncio.gather(
            *(engine.coordinator.join_group(user_id, "G") for user_id in user_ids),
            return_exceptions=True,
        )

        # Every join passed the advisory count before any insert landed.
        assert store.memberships.counts_seen[:4] == [0, 0, 0, 0]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], GroupFullError)
        assert await store.memberships.count() == 3

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_undo_join(
        self, engine, store, notifier, register, add_office
    ):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")
        await register("bob", "HQ")
        await engine.coordinator.join_group("alice", "G")
        notifier.failing_user_ids.add("alice")

        membership = await engine.coordinator.join_group("bob", "G")

        assert membership.user_id == "bob"
        assert await store.memberships.count() == 2


class TestSetOrganizer:
    @pytest.mark.asyncio
    async def test_sets_flag_and_notifies_all_members(
        self, engine, notifier, register, add_office
    ):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")
        await register("bob", "HQ")
        await engine.coordinator.join_group("alice", "G")
        await engine.coordinator.join_group("bob", "G")
        notifier.sent.clear()

        membership = await engine.coordinator.set_organizer("alice", "G")

        assert membership.is_organizer is True
        assert sorted(notifier.recipients()) == ["alice", "bob"]
        assert notifier.texts_for("bob") == ["alice is now an organizer for G"]

    @pytest.mark.asyncio
    async def test_idempotent(self, engine, store, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")
        await engine.coordinator.join_group("alice", "G")

        first = await engine.coordinator.set_organizer("alice", "G")
        second = await engine.coordinator.set_organizer("alice", "G")

        assert first == second
        assert second.is_organizer is True
        assert await store.memberships.count() == 1

    @pytest.mark.asyncio
    async def test_multiple_organizers_allowed(self, engine, store, register, add_office):
        await add_office("HQ")
        group = await engine.coordinator.create_group("G", "HQ", 3)
        for user_id in ("alice", "bob"):
            await register(user_id, "HQ")
            await engine.coordinator.join_group(user_id, "G")
            await engine.coordinator.set_organizer(user_id, "G")

        organizers = await store.memberships.find_all(
            carpool_group_id=group.id, is_organizer=True
        )
        assert len(organizers) == 2

    @pytest.mark.asyncio
    async def test_non_member(self, engine, register, add_office):
        await add_office("HQ")
        await engine.coordinator.create_group("G", "HQ", 3)
        await register("alice", "HQ")

        with pytest.raises(NotAMemberError):
            await engine.coordinator.set_organizer("alice", "G")


class TestNotificationPreference:
    @pytest.mark.asyncio
    async def test_toggle(self, engine, register):
        await register("alice")

        user = await engine.coordinator.set_notifications("alice", False)

        assert user.notifications_enabled is False

    @pytest.mark.asyncio
    async def test_unregistered(self, engine):
        with pytest.raises(NotRegisteredError):
            await engine.coordinator.set_notifications("ghost", True)
