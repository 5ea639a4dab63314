"""Immutable value records exchanged between the engine and the store.

Records carry data only. Persistence lives behind the repository
interfaces in ``carpool.repositories``, so the same records flow through
the SQL and in-memory stores.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Coordinates:
    """A point in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class User:
    id: str
    home_address: Optional[str] = None
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None
    notifications_enabled: bool = True


@dataclass(frozen=True)
class OfficeLocation:
    id: int
    name: str
    address: str
    latitude: float
    longitude: float

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class WorkSchedule:
    id: int
    user_id: str
    work_location_id: int
    start_time: str
    end_time: str
    days_of_week: str

    @property
    def days(self) -> tuple[int, ...]:
        return tuple(int(day) for day in self.days_of_week.split(",") if day)


@dataclass(frozen=True)
class CarpoolGroup:
    id: int
    name: str
    work_location_id: int
    max_size: int


@dataclass(frozen=True)
class CarpoolMembership:
    id: int
    user_id: str
    carpool_group_id: int
    is_organizer: bool = False


@dataclass(frozen=True)
class ScheduleDefaults:
    """Schedule values used when an office assignment creates a schedule."""

    start_time: str = "09:00"
    end_time: str = "17:00"
    days_of_week: str = "1,2,3,4,5"


@dataclass(frozen=True)
class GroupMember:
    membership: CarpoolMembership
    user: User

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def is_organizer(self) -> bool:
        return self.membership.is_organizer


@dataclass(frozen=True)
class GroupCandidate:
    """A carpool group annotated with its office and current members."""

    group: CarpoolGroup
    office: Optional[OfficeLocation]
    members: tuple[GroupMember, ...] = field(default_factory=tuple)

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def remaining_capacity(self) -> int:
        return max(self.group.max_size - self.member_count, 0)

    @property
    def is_full(self) -> bool:
        return self.member_count >= self.group.max_size


@dataclass(frozen=True)
class OfficeSummary:
    office: OfficeLocation
    total_users: int
    users_in_carpools: int
    participation_rate: float
    distance_km: Optional[float] = None


@dataclass(frozen=True)
class CarpoolStats:
    total_users: int
    total_carpools: int
    total_members: int
