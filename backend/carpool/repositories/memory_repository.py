"""In-memory repositories for tests and dry runs."""

import asyncio
import itertools
from dataclasses import fields as record_fields
from dataclasses import replace
from typing import Any, Optional

from carpool.core.exceptions import DuplicateEntryError, StoreError
from carpool.models.records import (
    CarpoolGroup,
    CarpoolMembership,
    OfficeLocation,
    User,
    WorkSchedule,
)
from carpool.repositories.base import (
    CarpoolStore,
    MembershipRepository,
    RecordT,
    Repository,
)


class InMemoryRepository(Repository[RecordT]):
    """
    Dict-backed repository holding frozen records keyed by id.

    Integer ids are assigned on create unless the caller supplies one.
    ``unique_together`` lists field groups that must be unique across
    records, mirroring the SQL table constraints.
    """

    def __init__(
        self,
        record_type: type,
        entity_name: str,
        unique_together: tuple[tuple[str, ...], ...] = (),
    ):
        self.record_type = record_type
        self.entity_name = entity_name
        self.unique_together = unique_together
        self._records: dict[Any, RecordT] = {}
        self._order: list[Any] = []
        self._ids = itertools.count(1)
        self._field_names = {f.name for f in record_fields(record_type)}

    def _matches(self, record: RecordT, filters: dict[str, Any]) -> bool:
        for name, value in filters.items():
            if name not in self._field_names:
                raise StoreError(f"Unknown {self.entity_name} field: {name}")
            actual = getattr(record, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                if actual not in value:
                    return False
            elif actual != value:
                return False
        return True

    def _check_unique(self, candidate: RecordT) -> None:
        for group in self.unique_together:
            key = {name: getattr(candidate, name) for name in group}
            for record_id in self._order:
                existing = self._records[record_id]
                if existing.id == candidate.id:
                    continue
                if all(getattr(existing, name) == value for name, value in key.items()):
                    raise DuplicateEntryError(self.entity_name, key)

    def _select(self, filters: dict[str, Any]) -> list[RecordT]:
        return [
            self._records[record_id]
            for record_id in self._order
            if self._matches(self._records[record_id], filters)
        ]

    async def find_by_id(self, record_id: Any) -> Optional[RecordT]:
        return self._records.get(record_id)

    async def find_one(self, **filters: Any) -> Optional[RecordT]:
        matches = self._select(filters)
        return matches[0] if matches else None

    async def find_all(self, **filters: Any) -> list[RecordT]:
        return self._select(filters)

    async def create(self, **values: Any) -> RecordT:
        if "id" not in values:
            values["id"] = next(self._ids)
        if values["id"] in self._records:
            raise DuplicateEntryError(self.entity_name, {"id": values["id"]})
        try:
            record = self.record_type(**values)
        except TypeError as e:
            raise StoreError(f"Invalid {self.entity_name} fields: {e}") from e
        self._check_unique(record)
        self._records[record.id] = record
        self._order.append(record.id)
        return record

    async def update(self, record_id: Any, **values: Any) -> Optional[RecordT]:
        record = self._records.get(record_id)
        if record is None:
            return None
        try:
            updated = replace(record, **values)
        except TypeError as e:
            raise StoreError(f"Invalid {self.entity_name} fields: {e}") from e
        self._check_unique(updated)
        self._records[record_id] = updated
        return updated

    async def delete(self, record_id: Any) -> bool:
        if record_id not in self._records:
            return False
        del self._records[record_id]
        self._order.remove(record_id)
        return True

    async def count(self, **filters: Any) -> int:
        return len(self._select(filters))


class InMemoryMembershipRepository(InMemoryRepository[CarpoolMembership], MembershipRepository):
    def __init__(self):
        super().__init__(
            CarpoolMembership,
            "membership",
            unique_together=(("user_id", "carpool_group_id"),),
        )
        self._lock = asyncio.Lock()

    async def insert_within_capacity(
        self,
        user_id: str,
        group_id: int,
        max_size: int,
        is_organizer: bool = False,
    ) -> Optional[CarpoolMembership]:
        async with self._lock:
            if await self.count(carpool_group_id=group_id) >= max_size:
                return None
            return await self.create(
                user_id=user_id,
                carpool_group_id=group_id,
                is_organizer=is_organizer,
            )


def create_memory_store() -> CarpoolStore:
    return CarpoolStore(
        users=InMemoryRepository(User, "user"),
        offices=InMemoryRepository(
            OfficeLocation, "office", unique_together=(("name",),)
        ),
        schedules=InMemoryRepository(WorkSchedule, "schedule"),
        groups=InMemoryRepository(
            CarpoolGroup, "carpool group", unique_together=(("name",),)
        ),
        memberships=InMemoryMembershipRepository(),
    )
