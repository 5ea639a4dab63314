"""SQLAlchemy-backed repositories for database operations."""

import logging
from dataclasses import fields as record_fields
from typing import Any, Optional

from sqlalchemy import func, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.core.exceptions import DuplicateEntryError, StoreError
from carpool.models.database.carpool import (
    CarpoolGroupRow,
    CarpoolMemberRow,
    UserRow,
    WorkLocationRow,
    WorkScheduleRow,
)
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

logger = logging.getLogger(__name__)


class SqlRepository(Repository[RecordT]):
    """Generic repository mapping one table onto one record type."""

    model: type
    record_type: type
    entity_name: str = "record"

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_record(self, row: Any) -> RecordT:
        return self.record_type(
            **{f.name: getattr(row, f.name) for f in record_fields(self.record_type)}
        )

    def _conditions(self, filters: dict[str, Any]) -> list:
        conditions = []
        for name, value in filters.items():
            if name not in self.model.__table__.c:
                raise StoreError(f"Unknown {self.entity_name} field: {name}")
            column = getattr(self.model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)
        return conditions

    async def _commit(self, operation: str, values: dict[str, Any]) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if "unique" in str(e.orig).lower() or "duplicate" in str(e.orig).lower():
                raise DuplicateEntryError(self.entity_name, values) from e
            raise StoreError(f"Failed to {operation} {self.entity_name}: {e.orig}") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to {operation} {self.entity_name}: {e}") from e

    async def _get_row(self, record_id: Any) -> Any:
        try:
            return await self.session.get(self.model, record_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to get {self.entity_name} {record_id}: {e}") from e

    async def _refresh(self, row: Any) -> None:
        try:
            await self.session.refresh(row)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to reload {self.entity_name}: {e}") from e

    async def find_by_id(self, record_id: Any) -> Optional[RecordT]:
        row = await self._get_row(record_id)
        return self._to_record(row) if row is not None else None

    async def find_one(self, **filters: Any) -> Optional[RecordT]:
        stmt = (
            select(self.model)
            .where(*self._conditions(filters))
            .order_by(self.model.id)
            .limit(1)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query {self.entity_name}: {e}") from e
        row = result.scalar_one_or_none()
        return self._to_record(row) if row is not None else None

    async def find_all(self, **filters: Any) -> list[RecordT]:
        stmt = select(self.model).where(*self._conditions(filters)).order_by(self.model.id)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query {self.entity_name}: {e}") from e
        return [self._to_record(row) for row in result.scalars().all()]

    async def create(self, **values: Any) -> RecordT:
        row = self.model(**values)
        self.session.add(row)
        await self._commit("create", values)
        await self._refresh(row)
        return self._to_record(row)

    async def update(self, record_id: Any, **values: Any) -> Optional[RecordT]:
        row = await self._get_row(record_id)
        if row is None:
            return None
        for name, value in values.items():
            setattr(row, name, value)
        await self._commit("update", values)
        await self._refresh(row)
        return self._to_record(row)

    async def delete(self, record_id: Any) -> bool:
        row = await self._get_row(record_id)
        if row is None:
            return False
        try:
            await self.session.delete(row)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to delete {self.entity_name} {record_id}: {e}") from e
        await self._commit("delete", {"id": record_id})
        return True

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*self._conditions(filters))
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count {self.entity_name}: {e}") from e
        return int(result.scalar_one())


class UserRepository(SqlRepository[User]):
    model = UserRow
    record_type = User
    entity_name = "user"


class OfficeRepository(SqlRepository[OfficeLocation]):
    model = WorkLocationRow
    record_type = OfficeLocation
    entity_name = "office"


class ScheduleRepository(SqlRepository[WorkSchedule]):
    model = WorkScheduleRow
    record_type = WorkSchedule
    entity_name = "schedule"


class GroupRepository(SqlRepository[CarpoolGroup]):
    model = CarpoolGroupRow
    record_type = CarpoolGroup
    entity_name = "carpool group"


class SqlMembershipRepository(SqlRepository[CarpoolMembership], MembershipRepository):
    model = CarpoolMemberRow
    record_type = CarpoolMembership
    entity_name = "membership"

    async def insert_within_capacity(
        self,
        user_id: str,
        group_id: int,
        max_size: int,
        is_organizer: bool = False,
    ) -> Optional[CarpoolMembership]:
        """
        Single INSERT ... SELECT guarded by the current member count, so the
        capacity check and the write cannot interleave with another join.
        """
        member_count = (
            select(func.count(CarpoolMemberRow.id))
            .where(CarpoolMemberRow.carpool_group_id == group_id)
            .correlate(None)
            .scalar_subquery()
        )
        stmt = insert(CarpoolMemberRow).from_select(
            ["user_id", "carpool_group_id", "is_organizer"],
            select(
                literal(user_id),
                literal(group_id),
                literal(is_organizer),
            ).where(member_count < max_size),
        )

        try:
            result = await self.session.execute(stmt)
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateEntryError(
                self.entity_name,
                {"user_id": user_id, "carpool_group_id": group_id},
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to insert membership: {e}") from e

        if result.rowcount == 0:
            await self.session.rollback()
            logger.info("Group %s at capacity (%s), insert skipped", group_id, max_size)
            return None

        await self._commit("create", {"user_id": user_id, "carpool_group_id": group_id})
        return await self.find_one(user_id=user_id, carpool_group_id=group_id)


def create_sql_store(session: AsyncSession) -> CarpoolStore:
    """Repositories sharing one AsyncSession."""
    return CarpoolStore(
        users=UserRepository(session),
        offices=OfficeRepository(session),
        schedules=ScheduleRepository(session),
        groups=GroupRepository(session),
        memberships=SqlMembershipRepository(session),
    )
