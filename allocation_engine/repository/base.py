"""Repository contract consumed by the allocation services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from allocation_engine.domain.constraints import intervals_overlap
from allocation_engine.domain.models import (
    BOOKING_STATUS_CANCELLED,
    Booking,
    Hold,
    Room,
    RoomType,
)


UPDATABLE_ROOM_FIELDS: frozenset[str] = frozenset(
    {
        "status",
        "cleaning_status",
        "condition",
        "is_active",
        "is_bookable",
        "maintenance_issue_count",
        "housekeeping_issue_count",
        "last_maintenance",
        "last_cleaned",
        "feedback_rating",
        "base_rate",
        "current_rate",
        "seasonal_multiplier",
    }
)


@dataclass(frozen=True)
class RoomTypeFilter:
    property_id: str
    room_type_id: Optional[int] = None
    min_occupancy: Optional[int] = None
    bookable_only: bool = True

    def matches(self, room_type: RoomType) -> bool:
        if room_type.property_id != self.property_id:
            return False
        if self.room_type_id is not None and room_type.room_type_id != self.room_type_id:
            return False
        if self.min_occupancy is not None and room_type.max_occupancy < self.min_occupancy:
            return False
        if self.bookable_only and not (room_type.is_active and room_type.is_bookable):
            return False
        return True


@dataclass(frozen=True)
class RoomFilter:
    property_id: str
    room_type_ids: Optional[frozenset[int]] = None
    statuses: Optional[frozenset[str]] = None
    active_only: bool = True
    bookable_only: bool = False
    floor: Optional[int] = None
    wing: Optional[str] = None
    wheelchair_accessible: Optional[bool] = None
    amenities: frozenset[str] = frozenset()
    views: tuple[str, ...] = ()
    exclude_room_ids: frozenset[int] = frozenset()

    def matches(self, room: Room) -> bool:
        if room.property_id != self.property_id:
            return False
        if room.room_id in self.exclude_room_ids:
            return False
        if self.room_type_ids is not None and room.room_type_id not in self.room_type_ids:
            return False
        if self.statuses is not None and room.status not in self.statuses:
            return False
        if self.active_only and not room.is_active:
            return False
        if self.bookable_only and not room.is_bookable:
            return False
        if self.floor is not None and room.floor != self.floor:
            return False
        if self.wing is not None and room.wing != self.wing:
            return False
        if self.wheelchair_accessible and not room.wheelchair_accessible:
            return False
        # every requested amenity must be present
        if not self.amenities <= room.amenities:
            return False
        if self.views and not set(self.views).intersection(room.views):
            return False
        return True


@dataclass(frozen=True)
class BookingFilter:
    room_id: Optional[int] = None
    property_id: Optional[str] = None
    overlapping: Optional[tuple[date, date]] = None
    include_cancelled: bool = False

    def matches(self, booking: Booking) -> bool:
        if self.room_id is not None and booking.room_id != self.room_id:
            return False
        if self.property_id is not None and booking.property_id != self.property_id:
            return False
        if not self.include_cancelled and booking.status == BOOKING_STATUS_CANCELLED:
            return False
        if self.overlapping is not None:
            start, end = self.overlapping
            if not intervals_overlap(booking.check_in, booking.check_out, start, end):
                return False
        return True


def room_sort_key(room: Room) -> tuple[int, str]:
    return (room.floor, room.room_number)


class InventoryRepository(Protocol):
    """Storage-agnostic access to rooms, bookings and holds."""

    def find_room_types(self, room_type_filter: RoomTypeFilter) -> list[RoomType]: ...

    def get_room_type(self, room_type_id: int) -> Optional[RoomType]: ...

    def find_rooms(self, room_filter: RoomFilter) -> list[Room]: ...

    def get_room(self, room_id: int) -> Optional[Room]: ...

    def update_room(self, room_id: int, patch: Mapping[str, Any]) -> Room: ...

    def find_bookings(self, booking_filter: BookingFilter) -> list[Booking]: ...

    def read_holds(self, room_id: int, now: datetime) -> list[Hold]: ...

    def get_hold(self, hold_id: str) -> Optional[Hold]: ...

    def save_hold(self, hold: Hold) -> None: ...

    def place_hold_if_free(self, hold: Hold, now: datetime) -> bool: ...

    def confirm_hold(self, hold_id: str, guest_name: str, now: datetime) -> Booking: ...

    def release_hold(self, hold_id: str, now: datetime) -> bool: ...

    def purge_expired_holds(self, now: datetime) -> int: ...


def live_overlapping_holds(
    holds: Sequence[Hold],
    check_in: date,
    check_out: date,
    now: datetime,
    exclude_hold_id: Optional[str] = None,
) -> list[Hold]:
    return [
        hold
        for hold in holds
        if hold.hold_id != exclude_hold_id
        and hold.is_live(now)
        and intervals_overlap(hold.check_in, hold.check_out, check_in, check_out)
    ]


def validate_room_patch(patch: Mapping[str, Any]) -> None:
    unknown = set(patch) - UPDATABLE_ROOM_FIELDS
    if unknown:
        raise ValueError(f"Unsupported room fields: {', '.join(sorted(unknown))}")
