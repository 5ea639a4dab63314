"""Member-facing carpool endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from carpool.api.deps import get_current_user_id, get_engine, get_notification_repository
from carpool.engine import CarpoolEngine
from carpool.models.schemas.carpool import (
    AbsenceRequest,
    BroadcastResponse,
    CarpoolResponse,
    HomeRequest,
    JoinRequest,
    MembershipResponse,
    MessageRequest,
    NotificationListResponse,
    NotificationPreferenceRequest,
    OfficeAssignRequest,
    OfficeSummaryResponse,
    ScheduleRequest,
    ScheduleResponse,
    StatsResponse,
    UserResponse,
    carpool_responses,
)
from carpool.repositories.notification_repository import NotificationRepository

router = APIRouter()


@router.put("/home", response_model=UserResponse)
async def set_home(
    request: HomeRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    """Register or move the caller's home address."""
    return await engine.coordinator.register_home(user_id, request.address)


@router.put("/notifications/preference", response_model=UserResponse)
async def set_notifications(
    request: NotificationPreferenceRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.set_notifications(user_id, request.enabled)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    repository: NotificationRepository = Depends(get_notification_repository),
):
    """The caller's inbox, oldest first."""
    notifications = await repository.get_recent(user_id, limit)
    return NotificationListResponse(notifications=notifications, total=len(notifications))


@router.put("/office", response_model=ScheduleResponse)
async def set_office(
    request: OfficeAssignRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.set_user_office(user_id, request.office_name)


@router.get("/schedules", response_model=list[ScheduleResponse])
async def list_schedules(
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.list_schedules(user_id)


@router.post("/schedules", response_model=ScheduleResponse)
async def set_schedule(
    request: ScheduleRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    """Create or replace the caller's schedule at an office."""
    return await engine.coordinator.set_schedule(
        user_id,
        request.office_name,
        request.start_time,
        request.end_time,
        request.days,
    )


@router.delete("/schedules/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: int,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
) -> None:
    await engine.coordinator.delete_schedule(user_id, schedule_id)


@router.get("/carpools/candidates", response_model=list[CarpoolResponse])
async def find_carpools(
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    """Groups at any office the caller has a schedule for."""
    return carpool_responses(await engine.matcher.find_candidate_groups(user_id))


@router.get("/carpools", response_model=list[CarpoolResponse])
async def my_carpools(
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return carpool_responses(await engine.matcher.find_member_groups(user_id))


@router.post(
    "/carpools/join",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_carpool(
    request: JoinRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.join_group(
        user_id, request.group_name, request.display_name
    )


@router.post("/carpools/organizer", response_model=MembershipResponse)
async def become_organizer(
    request: JoinRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.set_organizer(
        user_id, request.group_name, request.display_name
    )


@router.post("/absences", response_model=BroadcastResponse)
async def report_absence(
    request: AbsenceRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    """Tell every group the caller belongs to that they will be out."""
    group_ids = await engine.messenger.report_absence(
        user_id, request.date, request.reason, request.display_name
    )
    return BroadcastResponse(group_ids=group_ids)


@router.post("/messages", response_model=BroadcastResponse)
async def send_message(
    request: MessageRequest,
    user_id: str = Depends(get_current_user_id),
    engine: CarpoolEngine = Depends(get_engine),
):
    group_ids = await engine.messenger.send_message(
        user_id, request.text, request.display_name
    )
    return BroadcastResponse(group_ids=group_ids)


@router.get("/offices", response_model=list[OfficeSummaryResponse])
async def list_offices(
    near: Optional[str] = Query(default=None, description="Address or zip code to measure from"),
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.directory.list_offices(near)


@router.get("/stats", response_model=StatsResponse)
async def stats(engine: CarpoolEngine = Depends(get_engine)):
    return await engine.directory.stats()
