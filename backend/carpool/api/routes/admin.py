"""Administrative endpoints. Every route requires the admin role."""

from fastapi import APIRouter, Depends, status

from carpool.api.deps import get_engine, require_admin
from carpool.engine import CarpoolEngine
from carpool.models.schemas.carpool import (
    AnnouncementRequest,
    AnnouncementResponse,
    CarpoolResponse,
    GroupCreateRequest,
    GroupResponse,
    OfficeCreateRequest,
    OfficeResponse,
    carpool_responses,
)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/offices",
    response_model=OfficeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_office(
    request: OfficeCreateRequest,
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.add_office(request.name, request.address)


@router.post(
    "/groups",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_group(
    request: GroupCreateRequest,
    engine: CarpoolEngine = Depends(get_engine),
):
    return await engine.coordinator.create_group(
        request.name, request.office_name, request.max_size
    )


@router.get("/groups", response_model=list[CarpoolResponse])
async def list_groups(engine: CarpoolEngine = Depends(get_engine)):
    return carpool_responses(await engine.matcher.list_groups())


@router.post("/announcements", response_model=AnnouncementResponse)
async def announce(
    request: AnnouncementRequest,
    engine: CarpoolEngine = Depends(get_engine),
):
    """Broadcast to every user with notifications enabled."""
    delivered = await engine.messenger.announce(request.text)
    return AnnouncementResponse(delivered=delivered)
