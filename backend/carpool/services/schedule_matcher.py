"""Candidate carpool selection from a user's work schedules."""

import logging
from typing import Iterable

from carpool.core.error_handling import translate_store_errors
from carpool.core.exceptions import NoScheduleError, NotRegisteredError
from carpool.models.records import CarpoolGroup, GroupCandidate, GroupMember
from carpool.repositories.base import CarpoolStore

logger = logging.getLogger(__name__)


class ScheduleMatcher:
    """Read-only queries pairing users with carpool groups."""

    def __init__(self, store: CarpoolStore):
        self.store = store

    @translate_store_errors
    async def find_candidate_groups(self, user_id: str) -> list[GroupCandidate]:
        """
        Every group anchored at an office the user has a schedule for.

        Offices are unioned across all of the user's schedules. Results are
        ordered by group id.

        Raises NotRegisteredError or NoScheduleError.
        """
        if await self.store.users.find_by_id(user_id) is None:
            raise NotRegisteredError(user_id)

        schedules = await self.store.schedules.find_all(user_id=user_id)
        if not schedules:
            raise NoScheduleError(user_id)

        office_ids = sorted({schedule.work_location_id for schedule in schedules})
        groups = await self.store.groups.find_all(work_location_id=office_ids)

        logger.debug(
            "User %s: %d group(s) across office(s) %s",
            user_id,
            len(groups),
            office_ids,
        )
        return await self.describe_groups(groups)

    @translate_store_errors
    async def find_member_groups(self, user_id: str) -> list[GroupCandidate]:
        """Groups the user currently belongs to."""
        if await self.store.users.find_by_id(user_id) is None:
            raise NotRegisteredError(user_id)

        memberships = await self.store.memberships.find_all(user_id=user_id)
        if not memberships:
            return []

        groups = await self.store.groups.find_all(
            id=[m.carpool_group_id for m in memberships]
        )
        return await self.describe_groups(groups)

    @translate_store_errors
    async def list_groups(self) -> list[GroupCandidate]:
        return await self.describe_groups(await self.store.groups.find_all())

    async def describe_groups(self, groups: Iterable[CarpoolGroup]) -> list[GroupCandidate]:
        """Attach office and member details through flat per-entity queries."""
        groups = sorted(groups, key=lambda g: g.id)
        if not groups:
            return []

        group_ids = [g.id for g in groups]
        offices = {
            office.id: office
            for office in await self.store.offices.find_all(
                id=sorted({g.work_location_id for g in groups})
            )
        }
        memberships = await self.store.memberships.find_all(carpool_group_id=group_ids)
        users = {}
        if memberships:
            users = {
                user.id: user
                for user in await self.store.users.find_all(
                    id=sorted({m.user_id for m in memberships})
                )
            }

        members_by_group: dict[int, list[GroupMember]] = {gid: [] for gid in group_ids}
        for membership in memberships:
            user = users.get(membership.user_id)
            if user is None:
                logger.warning(
                    "Membership %s references missing user %s",
                    membership.id,
                    membership.user_id,
                )
                continue
            members_by_group[membership.carpool_group_id].append(
                GroupMember(membership=membership, user=user)
            )

        return [
            GroupCandidate(
                group=group,
                office=offices.get(group.work_location_id),
                members=tuple(members_by_group[group.id]),
            )
            for group in groups
        ]
