"""Office participation statistics."""

import logging
from typing import Optional

from carpool.core.error_handling import translate_store_errors
from carpool.core.exceptions import AddressNotFoundError, LookupUnavailableError
from carpool.geo.distance import haversine_km
from carpool.geo.geocoder import Geocoder, locate
from carpool.models.records import CarpoolStats, Coordinates, OfficeSummary
from carpool.repositories.base import CarpoolStore

logger = logging.getLogger(__name__)


class OfficeDirectory:
    def __init__(self, store: CarpoolStore, geocoder: Geocoder):
        self.store = store
        self.geocoder = geocoder

    @translate_store_errors
    async def list_offices(self, reference_address: Optional[str] = None) -> list[OfficeSummary]:
        """
        Summarise carpool participation at every office.

        When ``reference_address`` is given and resolves, each summary also
        carries the distance from it in kilometres. A reference that cannot be
        resolved is ignored.
        """
        reference = await self._resolve_reference(reference_address)

        offices = await self.store.offices.find_all()
        if not offices:
            return []

        schedules = await self.store.schedules.find_all()
        groups = await self.store.groups.find_all()
        memberships = await self.store.memberships.find_all()

        users_by_office: dict[int, set[str]] = {office.id: set() for office in offices}
        for schedule in schedules:
            users_by_office.setdefault(schedule.work_location_id, set()).add(schedule.user_id)

        office_by_group = {group.id: group.work_location_id for group in groups}
        members_by_office: dict[int, set[str]] = {office.id: set() for office in offices}
        for membership in memberships:
            office_id = office_by_group.get(membership.carpool_group_id)
            if office_id is not None:
                members_by_office.setdefault(office_id, set()).add(membership.user_id)

        summaries = []
        for office in offices:
            total = len(users_by_office[office.id])
            in_carpools = len(users_by_office[office.id] & members_by_office[office.id])
            rate = round(in_carpools / total * 100, 1) if total else 0.0

            distance = None
            if reference is not None:
                distance = haversine_km(reference, office.coordinates)

            summaries.append(
                OfficeSummary(
                    office=office,
                    total_users=total,
                    users_in_carpools=in_carpools,
                    participation_rate=rate,
                    distance_km=distance,
                )
            )
        return summaries

    @translate_store_errors
    async def stats(self) -> CarpoolStats:
        return CarpoolStats(
            total_users=await self.store.users.count(),
            total_carpools=await self.store.groups.count(),
            total_members=await self.store.memberships.count(),
        )

    async def _resolve_reference(self, address: Optional[str]) -> Optional[Coordinates]:
        if not address:
            return None
        try:
            return await locate(self.geocoder, address)
        except (AddressNotFoundError, LookupUnavailableError) as e:
            logger.info("Ignoring reference address %r: %s", address, e.detail)
            return None
