from __future__ import annotations

from datetime import date, datetime

import pytest

from allocation_engine.domain.errors import InvalidDateRangeError, RoomNotFoundError
from allocation_engine.domain.models import Room, SpecialRate
from allocation_engine.repository.memory_repository import InMemoryRepository
from allocation_engine.services.pricing_service import PricingCalculator, price_stay


CHECK_IN = date(2025, 7, 15)
CHECK_OUT = date(2025, 7, 18)


def _room(**attributes) -> Room:
    defaults = {
        "room_id": 1,
        "room_number": "101",
        "property_id": "p1",
        "room_type_id": 1,
        "floor": 1,
        "base_rate": 1000.0,
    }
    defaults.update(attributes)
    return Room(**defaults)


def test_special_rate_overrides_seasonal_pricing():
    room = _room(
        seasonal_multiplier=1.5,
        special_rates=(
            SpecialRate(name="Summer", rate=800.0, valid_from=date(2025, 7, 1), valid_to=date(2025, 7, 31)),
        ),
    )

    breakdown = price_stay(room, CHECK_IN, CHECK_OUT)

    assert breakdown.nights == 3
    assert breakdown.total_price == pytest.approx(2400.0)
    assert breakdown.price_per_night == pytest.approx(800.0)
    assert [rate.name for rate in breakdown.applied_special_rates] == ["Summer"]


def test_lowest_covering_special_rate_wins():
    room = _room(
        special_rates=(
            SpecialRate(name="Member", rate=900.0, valid_from=date(2025, 7, 1), valid_to=date(2025, 7, 31)),
            SpecialRate(name="Flash", rate=750.0, valid_from=date(2025, 7, 10), valid_to=date(2025, 7, 20)),
        ),
    )

    assert price_stay(room, CHECK_IN, CHECK_OUT).total_price == pytest.approx(2250.0)


def test_partial_or_inactive_special_rates_are_ignored():
    room = _room(
        seasonal_multiplier=1.2,
        special_rates=(
            SpecialRate(name="Ends early", rate=500.0, valid_from=date(2025, 7, 1), valid_to=date(2025, 7, 16)),
            SpecialRate(
                name="Retired",
                rate=400.0,
                valid_from=date(2025, 7, 1),
                valid_to=date(2025, 7, 31),
                is_active=False,
            ),
        ),
    )

    breakdown = price_stay(room, CHECK_IN, CHECK_OUT)

    assert breakdown.applied_special_rates == ()
    assert breakdown.total_price == pytest.approx(1000.0 * 3 * 1.2)


def test_current_rate_replaces_base_rate():
    room = _room(current_rate=1100.0)

    breakdown = price_stay(room, CHECK_IN, CHECK_OUT)

    assert breakdown.base_rate == pytest.approx(1100.0)
    assert breakdown.total_price == pytest.approx(3300.0)


def test_price_stay_rejects_reversed_dates():
    with pytest.raises(InvalidDateRangeError):
        price_stay(_room(), CHECK_OUT, CHECK_IN)


def test_price_stay_rejects_datetime_bounds_before_rate_lookup():
    room = _room(
        special_rates=(
            SpecialRate(name="Summer", rate=800.0, valid_from=date(2025, 7, 1), valid_to=date(2025, 7, 31)),
        ),
    )

    with pytest.raises(InvalidDateRangeError):
        price_stay(room, datetime(2025, 7, 15, 15, 0), datetime(2025, 7, 18, 10, 0))


def test_calculate_price_loads_room_from_repository(settings):
    repository = InMemoryRepository()
    room_type_id = repository.add_room_type(
        property_id="p1",
        name="Standard Room",
        category="standard",
        max_occupancy=2,
        base_price=1000.0,
    )
    room_id = repository.add_room(
        room_number="101",
        room_type_id=room_type_id,
        floor=1,
        base_rate=1000.0,
        seasonal_multiplier=1.1,
    )
    calculator = PricingCalculator(repository=repository, settings=settings)

    assert calculator.calculate_price(room_id, CHECK_IN, CHECK_OUT).total_price == pytest.approx(3300.0)
    with pytest.raises(RoomNotFoundError):
        calculator.calculate_price(999, CHECK_IN, CHECK_OUT)
