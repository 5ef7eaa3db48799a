from __future__ import annotations

from datetime import date

import pytest

from allocation_engine.domain.errors import InvalidDateRangeError
from allocation_engine.repository.base import BookingFilter
from allocation_engine.repository.memory_repository import InMemoryRepository
from allocation_engine.services.availability_service import AvailabilityChecker
from allocation_engine.services.report_service import (
    AvailabilityReportService,
    build_nightly_occupancy,
)


PROPERTY_ID = "harbour-view"
START = date(2025, 7, 1)
END = date(2025, 7, 4)


def _build_report_service(repository, settings, clock) -> AvailabilityReportService:
    checker = AvailabilityChecker(repository=repository, settings=settings, clock=clock)
    return AvailabilityReportService(
        repository=repository,
        availability_checker=checker,
        settings=settings,
    )


def test_report_counts_rooms_by_state(inventory, settings, clock):
    repository, ids = inventory
    booking_id = repository.add_booking(
        room_id=ids["room_102"],
        check_in=date(2025, 7, 2),
        check_out=date(2025, 7, 5),
    )
    repository.update_room(ids["room_201"], {"status": "maintenance"})
    repository.update_room(ids["room_301"], {"status": "cleaning"})
    service = _build_report_service(repository, settings, clock)

    report = service.get_availability_report(PROPERTY_ID, START, END)

    assert report.total_rooms == 4
    assert report.available_rooms == 1
    assert report.occupied_rooms == 1
    assert report.maintenance_rooms == 1
    assert report.cleaning_rooms == 1
    assert report.out_of_order_rooms == 0
    assert report.occupancy_rate == pytest.approx(25.0)
    assert report.revenue_projection == pytest.approx(3000.0)

    details = {detail.room_id: detail for detail in report.room_details}
    assert details[ids["room_102"]].available is False
    assert details[ids["room_102"]].conflicting_booking_ids == [booking_id]
    assert details[ids["room_101"]].conflicting_booking_ids == []

    assert [(row.night, row.occupied_rooms) for row in report.nightly_occupancy] == [
        (date(2025, 7, 1), 0),
        (date(2025, 7, 2), 1),
        (date(2025, 7, 3), 1),
    ]
    assert report.nightly_occupancy[1].occupancy_rate == pytest.approx(25.0)


def test_report_for_empty_property_has_zero_occupancy(settings, clock):
    service = _build_report_service(InMemoryRepository(), settings, clock)

    report = service.get_availability_report("nowhere", START, END)

    assert report.total_rooms == 0
    assert report.occupancy_rate == 0.0
    assert [row.occupied_rooms for row in report.nightly_occupancy] == [0, 0, 0]


def test_report_rejects_reversed_interval(inventory, settings, clock):
    repository, _ = inventory
    service = _build_report_service(repository, settings, clock)

    with pytest.raises(InvalidDateRangeError):
        service.get_availability_report(PROPERTY_ID, END, START)


def test_nightly_occupancy_counts_each_room_once_per_night(inventory):
    repository, ids = inventory
    for check_in, check_out in ((date(2025, 6, 28), date(2025, 7, 2)), (date(2025, 7, 1), date(2025, 7, 3))):
        repository.add_booking(room_id=ids["room_101"], check_in=check_in, check_out=check_out)
    repository.add_booking(room_id=ids["room_201"], check_in=date(2025, 7, 3), check_out=date(2025, 7, 9))
    bookings = repository.find_bookings(BookingFilter(property_id=PROPERTY_ID))
    rows = build_nightly_occupancy(bookings, {ids["room_101"], ids["room_201"]}, START, END)

    assert [row.occupied_rooms for row in rows] == [1, 1, 1]
    assert [row.occupancy_rate for row in rows] == [50.0, 50.0, 50.0]
