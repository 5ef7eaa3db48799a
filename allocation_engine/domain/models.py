"""Domain models for room allocation, pricing, holds and reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


CATEGORY_TIERS: tuple[str, ...] = ("economy", "standard", "deluxe", "suite", "presidential")

ALLOCATABLE_ROOM_STATUSES: frozenset[str] = frozenset({"available", "clean"})
OVERBOOKABLE_ROOM_STATUSES: frozenset[str] = frozenset({"available", "clean", "occupied"})

BOOKING_STATUS_CANCELLED = "cancelled"

HOLD_STATUS_ACTIVE = "active"
HOLD_STATUS_CONSUMED = "consumed"
HOLD_STATUS_RELEASED = "released"

AMENITY_LABELS: dict[str, str] = {
    "balcony": "Balcony",
    "kitchen": "Kitchen",
    "ac": "Air Conditioning",
    "tv": "Smart TV",
    "safe": "In-room Safe",
    "minibar": "Minibar",
    "jacuzzi": "Jacuzzi",
}


def category_rank(category: str) -> int:
    """Position in the tier ladder; unknown categories rank below economy."""
    try:
        return CATEGORY_TIERS.index(category)
    except ValueError:
        return -1


@dataclass(frozen=True)
class StayPreferences:
    room_type_id: Optional[int] = None
    floor: Optional[int] = None
    wing: Optional[str] = None
    amenities: frozenset[str] = frozenset()
    accessibility: bool = False
    views: tuple[str, ...] = ()


@dataclass(frozen=True)
class StayRequest:
    property_id: str
    check_in: date
    check_out: date
    guest_count: int
    preferences: StayPreferences = field(default_factory=StayPreferences)
    special_requests: Optional[str] = None
    holder: str = "anonymous"


@dataclass(frozen=True)
class SpecialRate:
    name: str
    rate: float
    valid_from: date
    valid_to: date
    is_active: bool = True

    def covers(self, check_in: date, check_out: date) -> bool:
        return self.is_active and self.valid_from <= check_in and self.valid_to >= check_out


@dataclass(frozen=True)
class RoomType:
    room_type_id: int
    property_id: str
    name: str
    category: str
    max_occupancy: int
    base_price: float
    room_size: float = 0.0
    size_unit: str = "sqft"
    amenities: frozenset[str] = frozenset()
    is_active: bool = True
    is_bookable: bool = True


@dataclass(frozen=True)
class Room:
    room_id: int
    room_number: str
    property_id: str
    room_type_id: int
    floor: int
    base_rate: float
    wing: Optional[str] = None
    views: tuple[str, ...] = ()
    amenities: frozenset[str] = frozenset()
    wheelchair_accessible: bool = False
    condition: str = "good"
    status: str = "available"
    cleaning_status: str = "clean"
    is_active: bool = True
    is_bookable: bool = True
    maintenance_issue_count: int = 0
    housekeeping_issue_count: int = 0
    last_maintenance: Optional[datetime] = None
    last_cleaned: Optional[datetime] = None
    feedback_rating: float = 0.0
    current_rate: Optional[float] = None
    seasonal_multiplier: float = 1.0
    special_rates: tuple[SpecialRate, ...] = ()
    room_type_name: Optional[str] = None
    room_type_category: Optional[str] = None

    @property
    def effective_rate(self) -> float:
        """Dynamic rate when one is set, otherwise the base rate."""
        if self.current_rate:
            return float(self.current_rate)
        return float(self.base_rate or 0.0)

    @property
    def amenity_labels(self) -> list[str]:
        known = [label for key, label in AMENITY_LABELS.items() if key in self.amenities]
        custom = sorted(item for item in self.amenities if item not in AMENITY_LABELS)
        return known + custom


@dataclass(frozen=True)
class Booking:
    booking_id: int
    room_id: int
    property_id: str
    check_in: date
    check_out: date
    status: str
    guest_name: str = ""
    total_price: float = 0.0


@dataclass(frozen=True)
class Hold:
    """Advisory lease on a room for a stay interval."""

    hold_id: str
    room_id: int
    holder: str
    check_in: date
    check_out: date
    held_until: datetime
    created_at: datetime
    quoted_price: float = 0.0
    status: str = HOLD_STATUS_ACTIVE

    def is_live(self, now: datetime) -> bool:
        return self.status == HOLD_STATUS_ACTIVE and self.held_until > now


@dataclass(frozen=True)
class PricingBreakdown:
    base_rate: float
    nights: int
    seasonal_multiplier: float
    total_price: float
    price_per_night: float
    applied_special_rates: tuple[SpecialRate, ...] = ()


@dataclass(frozen=True)
class AllocatedRoom:
    room_id: int
    room_number: str
    room_type_id: int
    room_type_name: str
    floor: int
    amenities: list[str]
    price: float


@dataclass(frozen=True)
class Alternative:
    room_id: int
    room_number: str
    room_type_name: str
    price: float
    reason: str


@dataclass(frozen=True)
class AllocationResult:
    success: bool
    state: str
    allocated_room: Optional[AllocatedRoom] = None
    hold: Optional[Hold] = None
    pricing: Optional[PricingBreakdown] = None
    alternatives: list[Alternative] = field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    overbooking_warning: bool = False


@dataclass(frozen=True)
class UpgradeOption:
    room_id: int
    room_number: str
    room_type_name: str
    current_price: float
    upgrade_price: float
    price_difference: float
    benefits: list[str]
    available: bool = True


@dataclass(frozen=True)
class RoomAvailabilityDetail:
    room_id: int
    room_number: str
    room_type_name: Optional[str]
    status: str
    available: bool
    floor: int
    condition: str
    last_cleaned: Optional[datetime]
    current_rate: Optional[float]
    conflicting_booking_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class NightlyOccupancy:
    night: date
    occupied_rooms: int
    occupancy_rate: float


@dataclass(frozen=True)
class AvailabilityReport:
    property_id: str
    start: date
    end: date
    total_rooms: int
    available_rooms: int
    occupied_rooms: int
    maintenance_rooms: int
    cleaning_rooms: int
    out_of_order_rooms: int
    occupancy_rate: float
    revenue_projection: float
    room_details: list[RoomAvailabilityDetail]
    nightly_occupancy: list[NightlyOccupancy]
