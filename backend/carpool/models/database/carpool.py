"""SQLAlchemy tables for users, offices, schedules and carpool groups."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from carpool.infrastructure.database import Base


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UserRow(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    home_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    home_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    home_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class WorkLocationRow(TimestampMixin, Base):
    __tablename__ = "work_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    address: Mapped[str] = mapped_column(String(512), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)


class WorkScheduleRow(TimestampMixin, Base):
    __tablename__ = "work_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    work_location_id: Mapped[int] = mapped_column(
        ForeignKey("work_locations.id"), nullable=False, index=True
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    days_of_week: Mapped[str] = mapped_column(String(13), nullable=False)


class CarpoolGroupRow(TimestampMixin, Base):
    __tablename__ = "carpool_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    work_location_id: Mapped[int] = mapped_column(
        ForeignKey("work_locations.id"), nullable=False, index=True
    )
    max_size: Mapped[int] = mapped_column(Integer, nullable=False)


class CarpoolMemberRow(TimestampMixin, Base):
    __tablename__ = "carpool_members"
    __table_args__ = (
        UniqueConstraint("user_id", "carpool_group_id", name="uq_member_user_group"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    carpool_group_id: Mapped[int] = mapped_column(
        ForeignKey("carpool_groups.id"), nullable=False, index=True
    )
    is_organizer: Mapped[bool] = mapped_column(Boolean, default=False)
