"""Controller layer for staff-facing inventory endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from allocation_engine.controllers.dependencies import (
    get_report_service,
    get_repository,
    raise_http_error,
)
from allocation_engine.domain.errors import AllocationError
from allocation_engine.services.report_service import AvailabilityReportService


router = APIRouter(tags=["inventory"])


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RoomAvailabilityDetailResponse(_FromDomain):
    room_id: int
    room_number: str
    room_type_name: Optional[str] = None
    status: str
    available: bool
    floor: int
    condition: str
    last_cleaned: Optional[datetime] = None
    current_rate: Optional[float] = None
    conflicting_booking_ids: list[int]


class NightlyOccupancyResponse(_FromDomain):
    night: date
    occupied_rooms: int = Field(ge=0)
    occupancy_rate: float = Field(ge=0.0, le=100.0)


class AvailabilityReportResponse(_FromDomain):
    property_id: str
    start: date
    end: date
    total_rooms: int = Field(ge=0)
    available_rooms: int = Field(ge=0)
    occupied_rooms: int = Field(ge=0)
    maintenance_rooms: int = Field(ge=0)
    cleaning_rooms: int = Field(ge=0)
    out_of_order_rooms: int = Field(ge=0)
    occupancy_rate: float = Field(ge=0.0, le=100.0)
    revenue_projection: float = Field(ge=0.0)
    room_details: list[RoomAvailabilityDetailResponse]
    nightly_occupancy: list[NightlyOccupancyResponse]


class RoomPatchRequest(BaseModel):
    status: Optional[str] = Field(
        default=None,
        pattern="^(available|clean|occupied|maintenance|cleaning|out_of_order)$",
    )
    cleaning_status: Optional[str] = Field(
        default=None,
        pattern="^(inspected|clean|cleaning_in_progress|dirty)$",
    )
    condition: Optional[str] = Field(default=None, pattern="^(excellent|good|fair|poor)$")
    is_active: Optional[bool] = None
    is_bookable: Optional[bool] = None
    maintenance_issue_count: Optional[int] = Field(default=None, ge=0)
    housekeeping_issue_count: Optional[int] = Field(default=None, ge=0)
    last_maintenance: Optional[datetime] = None
    last_cleaned: Optional[datetime] = None
    current_rate: Optional[float] = Field(default=None, ge=0.0)
    seasonal_multiplier: Optional[float] = Field(default=None, gt=0.0)


class RoomResponse(_FromDomain):
    room_id: int
    room_number: str
    property_id: str
    room_type_id: int
    room_type_name: Optional[str] = None
    floor: int
    status: str
    cleaning_status: str
    condition: str
    is_active: bool
    is_bookable: bool
    maintenance_issue_count: int
    housekeeping_issue_count: int
    base_rate: float
    current_rate: Optional[float] = None
    seasonal_multiplier: float


@router.get(
    "/properties/{property_id}/availability-report",
    response_model=AvailabilityReportResponse,
    status_code=status.HTTP_200_OK,
)
def get_availability_report(
    property_id: str,
    start: date = Query(),
    end: date = Query(),
    service: AvailabilityReportService = Depends(get_report_service),
) -> AvailabilityReportResponse:
    try:
        report = service.get_availability_report(property_id, start, end)
    except AllocationError as exc:
        raise_http_error(exc)
    return AvailabilityReportResponse.model_validate(report)


@router.patch(
    "/rooms/{room_id}",
    response_model=RoomResponse,
    status_code=status.HTTP_200_OK,
)
def update_room(
    room_id: int,
    payload: RoomPatchRequest,
    repository=Depends(get_repository),
) -> RoomResponse:
    """Apply housekeeping/maintenance status changes to a room."""
    # current_rate may be cleared explicitly; other columns are non-nullable
    patch = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name == "current_rate"
    }
    try:
        room = repository.update_room(room_id, patch)
    except AllocationError as exc:
        raise_http_error(exc)
    return RoomResponse.model_validate(room)
