"""Repository interfaces consumed by the carpool engine.

Every entity is reached through the same small contract. Filters are
keyword equality matches; a list, tuple or set value matches any of its
members. Implementations raise ``StoreError`` on backend failures and
``DuplicateEntryError`` when a unique constraint rejects a write.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from carpool.models.records import (
    CarpoolGroup,
    CarpoolMembership,
    OfficeLocation,
    User,
    WorkSchedule,
)

RecordT = TypeVar("RecordT")


class Repository(ABC, Generic[RecordT]):
    @abstractmethod
    async def find_by_id(self, record_id: Any) -> Optional[RecordT]: ...

    @abstractmethod
    async def find_one(self, **filters: Any) -> Optional[RecordT]: ...

    @abstractmethod
    async def find_all(self, **filters: Any) -> list[RecordT]:
        """Matching records ordered by id (creation order)."""

    @abstractmethod
    async def create(self, **fields: Any) -> RecordT: ...

    @abstractmethod
    async def update(self, record_id: Any, **fields: Any) -> Optional[RecordT]:
        """Apply targeted field changes. Returns None if the record is gone."""

    @abstractmethod
    async def delete(self, record_id: Any) -> bool: ...

    @abstractmethod
    async def count(self, **filters: Any) -> int: ...


class MembershipRepository(Repository[CarpoolMembership]):
    @abstractmethod
    async def insert_within_capacity(
        self,
        user_id: str,
        group_id: int,
        max_size: int,
        is_organizer: bool = False,
    ) -> Optional[CarpoolMembership]:
        """
        Insert a membership only while the group has fewer than ``max_size``
        members. The count check and the insert happen as one atomic step.

        Returns None when the group is full.
        Raises DuplicateEntryError if the user already belongs to the group.
        """


@dataclass
class CarpoolStore:
    """The set of repositories one engine operation works against."""

    users: Repository[User]
    offices: Repository[OfficeLocation]
    schedules: Repository[WorkSchedule]
    groups: Repository[CarpoolGroup]
    memberships: MembershipRepository
