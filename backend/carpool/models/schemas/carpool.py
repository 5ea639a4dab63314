"""Carpool request/response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HomeRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=512)


class OfficeAssignRequest(BaseModel):
    office_name: str = Field(..., min_length=1)


class ScheduleRequest(BaseModel):
    office_name: str = Field(..., min_length=1)
    start_time: str = Field(..., description="24-hour HH:MM")
    end_time: str = Field(..., description="24-hour HH:MM")
    days: str = Field(..., description="Comma-separated weekdays, 1=Monday..7=Sunday")


class JoinRequest(BaseModel):
    group_name: str = Field(..., min_length=1)
    display_name: str | None = None


class NotificationPreferenceRequest(BaseModel):
    enabled: bool


class AbsenceRequest(BaseModel):
    date: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    display_name: str | None = None


class MessageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    display_name: str | None = None


class OfficeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=512)


class GroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    office_name: str = Field(..., min_length=1)
    max_size: int


class AnnouncementRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    home_address: str | None = None
    home_latitude: float | None = None
    home_longitude: float | None = None
    notifications_enabled: bool


class OfficeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    latitude: float
    longitude: float


class ScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    work_location_id: int
    start_time: str
    end_time: str
    days_of_week: str


class GroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    work_location_id: int
    max_size: int


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    carpool_group_id: int
    is_organizer: bool


class GroupMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    is_organizer: bool


class CarpoolResponse(BaseModel):
    """A group with its office, members and free seats."""

    model_config = ConfigDict(from_attributes=True)

    group: GroupResponse
    office: OfficeResponse | None = None
    members: list[GroupMemberResponse]
    member_count: int
    remaining_capacity: int
    is_full: bool


class OfficeSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    office: OfficeResponse
    total_users: int
    users_in_carpools: int
    participation_rate: float
    distance_km: float | None = None


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_carpools: int
    total_members: int


class BroadcastResponse(BaseModel):
    group_ids: list[int]


class AnnouncementResponse(BaseModel):
    delivered: int


class NotificationResponse(BaseModel):
    id: str
    text: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int


def carpool_responses(candidates) -> list[CarpoolResponse]:
    """Read group candidates through their computed properties."""
    return [CarpoolResponse.model_validate(candidate) for candidate in candidates]
