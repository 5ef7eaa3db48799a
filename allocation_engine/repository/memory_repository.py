"""In-memory inventory store for tests, demos and isolated what-if runs."""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import date, datetime
from threading import RLock
from typing import Any, Mapping, Optional

from allocation_engine.domain.errors import HoldConflictError, HoldExpiredError, RoomNotFoundError
from allocation_engine.domain.models import (
    HOLD_STATUS_CONSUMED,
    HOLD_STATUS_RELEASED,
    Booking,
    Hold,
    Room,
    RoomType,
    SpecialRate,
)
from allocation_engine.repository.base import (
    BookingFilter,
    RoomFilter,
    RoomTypeFilter,
    live_overlapping_holds,
    room_sort_key,
    validate_room_patch,
)


class InMemoryRepository:
    """Dict-backed implementation of the inventory repository contract.

    A single re-entrant lock guards every mutation so conditional writes
    (hold placement, hold confirmation) are atomic across threads.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._room_types: dict[int, RoomType] = {}
        self._rooms: dict[int, Room] = {}
        self._bookings: dict[int, Booking] = {}
        self._holds: dict[str, Hold] = {}
        self._ids = itertools.count(1)
        self.call_count = 0

    def _touch(self) -> None:
        self.call_count += 1

    def add_room_type(
        self,
        *,
        property_id: str,
        name: str,
        category: str,
        max_occupancy: int,
        base_price: float,
        **attributes: Any,
    ) -> int:
        with self._lock:
            room_type_id = next(self._ids)
            self._room_types[room_type_id] = RoomType(
                room_type_id=room_type_id,
                property_id=property_id,
                name=name,
                category=category,
                max_occupancy=max_occupancy,
                base_price=base_price,
                **attributes,
            )
            return room_type_id

    def add_room(
        self,
        *,
        room_number: str,
        room_type_id: int,
        floor: int,
        base_rate: float,
        special_rates: tuple[SpecialRate, ...] = (),
        **attributes: Any,
    ) -> int:
        with self._lock:
            room_type = self._room_types[room_type_id]
            room_id = next(self._ids)
            self._rooms[room_id] = Room(
                room_id=room_id,
                room_number=room_number,
                property_id=room_type.property_id,
                room_type_id=room_type_id,
                floor=floor,
                base_rate=base_rate,
                special_rates=tuple(special_rates),
                **attributes,
            )
            return room_id

    def add_booking(
        self,
        *,
        room_id: int,
        check_in: date,
        check_out: date,
        status: str = "confirmed",
        guest_name: str = "",
        total_price: float = 0.0,
    ) -> int:
        with self._lock:
            room = self._rooms[room_id]
            booking_id = next(self._ids)
            self._bookings[booking_id] = Booking(
                booking_id=booking_id,
                room_id=room_id,
                property_id=room.property_id,
                check_in=check_in,
                check_out=check_out,
                status=status,
                guest_name=guest_name,
                total_price=total_price,
            )
            return booking_id

    def _with_type(self, room: Room) -> Room:
        room_type = self._room_types.get(room.room_type_id)
        if room_type is None:
            return room
        return replace(
            room,
            room_type_name=room_type.name,
            room_type_category=room_type.category,
        )

    def find_room_types(self, room_type_filter: RoomTypeFilter) -> list[RoomType]:
        self._touch()
        with self._lock:
            matched = [rt for rt in self._room_types.values() if room_type_filter.matches(rt)]
        return sorted(matched, key=lambda rt: rt.room_type_id)

    def get_room_type(self, room_type_id: int) -> Optional[RoomType]:
        self._touch()
        with self._lock:
            return self._room_types.get(room_type_id)

    def find_rooms(self, room_filter: RoomFilter) -> list[Room]:
        self._touch()
        with self._lock:
            matched = [
                self._with_type(room)
                for room in self._rooms.values()
                if room_filter.matches(room)
            ]
        return sorted(matched, key=room_sort_key)

    def get_room(self, room_id: int) -> Optional[Room]:
        self._touch()
        with self._lock:
            room = self._rooms.get(room_id)
            return self._with_type(room) if room is not None else None

    def update_room(self, room_id: int, patch: Mapping[str, Any]) -> Room:
        self._touch()
        validate_room_patch(patch)
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFoundError(f"Room {room_id} not found")
            updated = replace(room, **patch)
            self._rooms[room_id] = updated
            return self._with_type(updated)

    def find_bookings(self, booking_filter: BookingFilter) -> list[Booking]:
        self._touch()
        with self._lock:
            matched = [b for b in self._bookings.values() if booking_filter.matches(b)]
        return sorted(matched, key=lambda b: (b.check_in, b.booking_id))

    def read_holds(self, room_id: int, now: datetime) -> list[Hold]:
        self._touch()
        with self._lock:
            return [
                hold
                for hold in self._holds.values()
                if hold.room_id == room_id and hold.is_live(now)
            ]

    def get_hold(self, hold_id: str) -> Optional[Hold]:
        self._touch()
        with self._lock:
            return self._holds.get(hold_id)

    def save_hold(self, hold: Hold) -> None:
        self._touch()
        with self._lock:
            self._holds[hold.hold_id] = hold

    def _drop_stale_holds(self, now: datetime, room_id: Optional[int] = None) -> int:
        stale = [
            hold.hold_id
            for hold in self._holds.values()
            if not hold.is_live(now) and (room_id is None or hold.room_id == room_id)
        ]
        for hold_id in stale:
            del self._holds[hold_id]
        return len(stale)

    def place_hold_if_free(self, hold: Hold, now: datetime) -> bool:
        self._touch()
        with self._lock:
            room_holds = [h for h in self._holds.values() if h.room_id == hold.room_id]
            if live_overlapping_holds(room_holds, hold.check_in, hold.check_out, now):
                return False
            if self._overlapping_bookings(hold.room_id, hold.check_in, hold.check_out):
                return False
            self._drop_stale_holds(now, room_id=hold.room_id)
            self._holds[hold.hold_id] = hold
            return True

    def confirm_hold(self, hold_id: str, guest_name: str, now: datetime) -> Booking:
        self._touch()
        with self._lock:
            hold = self._holds.get(hold_id)
            if hold is None or not hold.is_live(now):
                raise HoldExpiredError(f"Hold {hold_id} is not active")
            room_holds = [h for h in self._holds.values() if h.room_id == hold.room_id]
            if live_overlapping_holds(
                room_holds, hold.check_in, hold.check_out, now, exclude_hold_id=hold_id
            ) or self._overlapping_bookings(hold.room_id, hold.check_in, hold.check_out):
                raise HoldConflictError(f"Room {hold.room_id} is no longer free for hold {hold_id}")
            booking_id = self.add_booking(
                room_id=hold.room_id,
                check_in=hold.check_in,
                check_out=hold.check_out,
                status="confirmed",
                guest_name=guest_name,
                total_price=hold.quoted_price,
            )
            self._holds[hold_id] = replace(hold, status=HOLD_STATUS_CONSUMED)
            return self._bookings[booking_id]

    def release_hold(self, hold_id: str, now: datetime) -> bool:
        self._touch()
        with self._lock:
            hold = self._holds.get(hold_id)
            if hold is None or not hold.is_live(now):
                return False
            self._holds[hold_id] = replace(hold, status=HOLD_STATUS_RELEASED)
            return True

    def purge_expired_holds(self, now: datetime) -> int:
        self._touch()
        with self._lock:
            return self._drop_stale_holds(now)

    def _overlapping_bookings(self, room_id: int, check_in: date, check_out: date) -> list[Booking]:
        booking_filter = BookingFilter(room_id=room_id, overlapping=(check_in, check_out))
        return [b for b in self._bookings.values() if booking_filter.matches(b)]
