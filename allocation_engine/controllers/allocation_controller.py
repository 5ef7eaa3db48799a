"""HTTP controller layer for room allocation, holds and upgrades."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from allocation_engine.controllers.dependencies import (
    get_allocation_service,
    get_hold_manager,
    get_upgrade_advisor,
    raise_http_error,
)
from allocation_engine.domain.errors import AllocationError
from allocation_engine.domain.models import StayPreferences, StayRequest
from allocation_engine.services.advisory_service import UpgradeAdvisor
from allocation_engine.services.allocation_service import RoomAllocationService
from allocation_engine.services.hold_service import HoldManager
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocation"])


class PreferencesPayload(BaseModel):
    room_type_id: Optional[int] = Field(default=None, gt=0)
    floor: Optional[int] = None
    wing: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    accessibility: bool = False
    views: list[str] = Field(default_factory=list)

    @field_validator("amenities", "views")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip().lower() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("tags must be non-empty strings")
        return cleaned

    def to_domain(self) -> StayPreferences:
        return StayPreferences(
            room_type_id=self.room_type_id,
            floor=self.floor,
            wing=self.wing,
            amenities=frozenset(self.amenities),
            accessibility=self.accessibility,
            views=tuple(self.views),
        )


class AllocateRoomRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    property_id: str = Field(min_length=1)
    check_in: date
    check_out: date
    guest_count: int = Field(ge=1)
    preferences: PreferencesPayload = Field(default_factory=PreferencesPayload)
    special_requests: Optional[str] = None
    holder: str = Field(default="anonymous", min_length=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0.0)


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SpecialRateResponse(_FromDomain):
    name: str
    rate: float
    valid_from: date
    valid_to: date
    is_active: bool


class PricingResponse(_FromDomain):
    base_rate: float = Field(ge=0.0)
    nights: int = Field(ge=1)
    seasonal_multiplier: float
    total_price: float = Field(ge=0.0)
    price_per_night: float = Field(ge=0.0)
    applied_special_rates: list[SpecialRateResponse]


class HoldResponse(_FromDomain):
    hold_id: str
    room_id: int
    holder: str
    check_in: date
    check_out: date
    held_until: datetime
    quoted_price: float
    status: str


class AllocatedRoomResponse(_FromDomain):
    room_id: int
    room_number: str
    room_type_id: int
    room_type_name: str
    floor: int
    amenities: list[str]
    price: float


class AlternativeResponse(_FromDomain):
    room_id: int
    room_number: str
    room_type_name: str
    price: float
    reason: str


class AllocationResultResponse(_FromDomain):
    success: bool
    state: str
    allocated_room: Optional[AllocatedRoomResponse] = None
    hold: Optional[HoldResponse] = None
    pricing: Optional[PricingResponse] = None
    alternatives: list[AlternativeResponse]
    error: Optional[str] = None
    error_code: Optional[str] = None
    overbooking_warning: bool


class ConfirmHoldRequest(BaseModel):
    guest_name: str = Field(min_length=1)


class BookingResponse(_FromDomain):
    booking_id: int
    room_id: int
    property_id: str
    check_in: date
    check_out: date
    status: str
    guest_name: str
    total_price: float


class ReleaseHoldResponse(BaseModel):
    hold_id: str
    released: bool


class UpgradeOptionResponse(_FromDomain):
    room_id: int
    room_number: str
    room_type_name: str
    current_price: float
    upgrade_price: float
    price_difference: float
    benefits: list[str]
    available: bool


@router.post(
    "/allocations",
    response_model=AllocationResultResponse,
    status_code=status.HTTP_200_OK,
)
def allocate_room(
    payload: AllocateRoomRequest,
    service: RoomAllocationService = Depends(get_allocation_service),
) -> AllocationResultResponse:
    """Allocate and hold a room; an unsuccessful result lists alternatives."""
    request = StayRequest(
        property_id=payload.property_id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        guest_count=payload.guest_count,
        preferences=payload.preferences.to_domain(),
        special_requests=payload.special_requests,
        holder=payload.holder,
    )
    try:
        result = service.allocate_room(request, timeout_seconds=payload.timeout_seconds)
    except AllocationError as exc:
        raise_http_error(exc)
    except Exception as exc:  # pragma: no cover - runtime guard
        logger.exception("Unexpected allocation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to allocate room",
        ) from exc
    return AllocationResultResponse.model_validate(result)


@router.delete(
    "/holds/{hold_id}",
    response_model=ReleaseHoldResponse,
    status_code=status.HTTP_200_OK,
)
def release_hold(
    hold_id: str,
    hold_manager: HoldManager = Depends(get_hold_manager),
) -> ReleaseHoldResponse:
    try:
        released = hold_manager.release_hold(hold_id)
    except AllocationError as exc:
        raise_http_error(exc)
    return ReleaseHoldResponse(hold_id=hold_id, released=released)


@router.post(
    "/holds/{hold_id}/confirm",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def confirm_hold(
    hold_id: str,
    payload: ConfirmHoldRequest,
    hold_manager: HoldManager = Depends(get_hold_manager),
) -> BookingResponse:
    try:
        booking = hold_manager.confirm_hold(hold_id, payload.guest_name)
    except AllocationError as exc:
        raise_http_error(exc)
    return BookingResponse.model_validate(booking)


@router.get(
    "/properties/{property_id}/upgrade-options",
    response_model=list[UpgradeOptionResponse],
    status_code=status.HTTP_200_OK,
)
def get_upgrade_options(
    property_id: str,
    current_room_type_id: int = Query(gt=0),
    check_in: date = Query(),
    check_out: date = Query(),
    guest_count: int = Query(ge=1),
    advisor: UpgradeAdvisor = Depends(get_upgrade_advisor),
) -> list[UpgradeOptionResponse]:
    try:
        options = advisor.get_upgrade_options(
            property_id,
            current_room_type_id,
            check_in,
            check_out,
            guest_count,
        )
    except AllocationError as exc:
        raise_http_error(exc)
    return [UpgradeOptionResponse.model_validate(option) for option in options]
