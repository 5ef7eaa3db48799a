"""Staff-facing availability, occupancy and revenue projection report."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional

import pandas as pd

from allocation_engine.domain.constraints import count_nights
from allocation_engine.domain.models import (
    ALLOCATABLE_ROOM_STATUSES,
    AvailabilityReport,
    Booking,
    NightlyOccupancy,
    RoomAvailabilityDetail,
)
from allocation_engine.repository.base import BookingFilter, InventoryRepository, RoomFilter
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.services.availability_service import AvailabilityChecker
from allocation_engine.services.pricing_service import price_stay
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)


def build_nightly_occupancy(
    bookings: list[Booking],
    room_ids: set[int],
    start: date,
    end: date,
) -> list[NightlyOccupancy]:
    """Count distinct occupied rooms for every night of [start, end)."""
    nights = pd.date_range(start, end, freq="D", inclusive="left")
    rows = [
        (booking.room_id, night)
        for booking in bookings
        if booking.room_id in room_ids
        for night in pd.date_range(
            max(booking.check_in, start),
            min(booking.check_out, end),
            freq="D",
            inclusive="left",
        )
    ]
    frame = pd.DataFrame(rows, columns=["room_id", "night"])
    occupied = (
        frame.groupby("night")["room_id"].nunique().reindex(nights, fill_value=0)
        if not frame.empty
        else pd.Series(0, index=nights)
    )
    total_rooms = len(room_ids)
    rates = occupied / total_rooms * 100.0 if total_rooms else occupied * 0.0
    return [
        NightlyOccupancy(
            night=night.date(),
            occupied_rooms=int(count),
            occupancy_rate=round(float(rate), 2),
        )
        for night, count, rate in zip(nights, occupied.to_numpy(), rates.to_numpy())
    ]


class AvailabilityReportService:
    """Aggregates per-room availability over an interval."""

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

    def get_availability_report(
        self,
        property_id: str,
        start: date,
        end: date,
    ) -> AvailabilityReport:
        count_nights(start, end)
        rooms = self._repository.find_rooms(RoomFilter(property_id=property_id, active_only=True))
        bookings = self._repository.find_bookings(
            BookingFilter(property_id=property_id, overlapping=(start, end))
        )
        bookings_by_room: dict[int, list[Booking]] = defaultdict(list)
        for booking in bookings:
            bookings_by_room[booking.room_id].append(booking)

        counters = {
            "available": 0,
            "occupied": 0,
            "maintenance": 0,
            "cleaning": 0,
            "out_of_order": 0,
        }
        revenue_projection = 0.0
        details: list[RoomAvailabilityDetail] = []

        for room in rooms:
            available = self._availability_checker.is_available(room.room_id, start, end)
            if available and room.status in ALLOCATABLE_ROOM_STATUSES:
                counters["available"] += 1
            elif not available or room.status == "occupied":
                counters["occupied"] += 1
                revenue_projection += price_stay(room, start, end).total_price
            elif room.status in counters:
                counters[room.status] += 1

            details.append(
                RoomAvailabilityDetail(
                    room_id=room.room_id,
                    room_number=room.room_number,
                    room_type_name=room.room_type_name,
                    status=room.status,
                    available=available,
                    floor=room.floor,
                    condition=room.condition,
                    last_cleaned=room.last_cleaned,
                    current_rate=room.current_rate,
                    conflicting_booking_ids=[
                        booking.booking_id for booking in bookings_by_room.get(room.room_id, [])
                    ],
                )
            )

        total_rooms = len(rooms)
        occupancy_rate = (counters["occupied"] / total_rooms) * 100.0 if total_rooms else 0.0
        report = AvailabilityReport(
            property_id=property_id,
            start=start,
            end=end,
            total_rooms=total_rooms,
            available_rooms=counters["available"],
            occupied_rooms=counters["occupied"],
            maintenance_rooms=counters["maintenance"],
            cleaning_rooms=counters["cleaning"],
            out_of_order_rooms=counters["out_of_order"],
            occupancy_rate=round(occupancy_rate, 2),
            revenue_projection=revenue_projection,
            room_details=details,
            nightly_occupancy=build_nightly_occupancy(
                bookings,
                {room.room_id for room in rooms},
                start,
                end,
            ),
        )
        logger.info(
            "Availability report | property_id=%s | rooms=%s | occupancy_rate=%.2f",
            property_id,
            total_rooms,
            report.occupancy_rate,
        )
        return report
