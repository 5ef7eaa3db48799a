"""Availability checks and hard-constraint candidate search."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from allocation_engine.domain.constraints import count_nights
from allocation_engine.domain.models import (
    ALLOCATABLE_ROOM_STATUSES,
    Booking,
    Room,
    StayPreferences,
)
from allocation_engine.repository.base import (
    BookingFilter,
    InventoryRepository,
    RoomFilter,
    RoomTypeFilter,
    live_overlapping_holds,
)
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.utils.clock import Clock, utc_now
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)


class AvailabilityChecker:
    """Decides whether a room is free for a half-open stay interval."""

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock

    def find_conflicts(self, room_id: int, check_in: date, check_out: date) -> list[Booking]:
        """Return non-cancelled bookings of the room that overlap the stay."""
        return self._repository.find_bookings(
            BookingFilter(room_id=room_id, overlapping=(check_in, check_out))
        )

    def is_available(
        self,
        room_id: int,
        check_in: date,
        check_out: date,
        *,
        exclude_hold_id: Optional[str] = None,
    ) -> bool:
        if self.find_conflicts(room_id, check_in, check_out):
            return False
        now = self._clock()
        blocking_holds = live_overlapping_holds(
            self._repository.read_holds(room_id, now),
            check_in,
            check_out,
            now,
            exclude_hold_id=exclude_hold_id,
        )
        if blocking_holds:
            logger.debug(
                "Room held | room_id=%s | hold_ids=%s",
                room_id,
                [hold.hold_id for hold in blocking_holds],
            )
            return False
        return True


class CandidateFinder:
    """Resolves rooms that satisfy hard constraints and are free."""

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        availability_checker: Optional[AvailabilityChecker] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._availability_checker = availability_checker or AvailabilityChecker(
            repository=self._repository,
            settings=self._settings,
        )

    def find_candidates(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        guest_count: int,
        preferences: Optional[StayPreferences] = None,
        *,
        exclude_room_ids: Iterable[int] = (),
    ) -> list[Room]:
        """Return available rooms ordered by floor, then room number."""
        count_nights(check_in, check_out)
        preferences = preferences or StayPreferences()

        room_types = self._repository.find_room_types(
            RoomTypeFilter(
                property_id=property_id,
                room_type_id=preferences.room_type_id,
                min_occupancy=guest_count,
            )
        )
        if not room_types:
            logger.info(
                "No compatible room types | property_id=%s | guest_count=%s",
                property_id,
                guest_count,
            )
            return []

        rooms = self._repository.find_rooms(
            RoomFilter(
                property_id=property_id,
                room_type_ids=frozenset(rt.room_type_id for rt in room_types),
                statuses=ALLOCATABLE_ROOM_STATUSES,
                active_only=True,
                bookable_only=True,
                floor=preferences.floor,
                wing=preferences.wing,
                wheelchair_accessible=True if preferences.accessibility else None,
                amenities=frozenset(preferences.amenities),
                views=tuple(preferences.views),
                exclude_room_ids=frozenset(exclude_room_ids),
            )
        )

        candidates = [
            room
            for room in rooms
            if self._availability_checker.is_available(room.room_id, check_in, check_out)
        ]
        logger.debug(
            "Candidate search | property_id=%s | matched=%s | available=%s",
            property_id,
            len(rooms),
            len(candidates),
        )
        return candidates
