from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from allocation_engine.domain.errors import InvalidDateRangeError, RoomTypeNotFoundError
from allocation_engine.domain.models import Room, StayRequest
from allocation_engine.services.advisory_service import (
    OverbookingAdvisor,
    UpgradeAdvisor,
    alternative_reason,
    ordinal_suffix,
)
from allocation_engine.services.availability_service import AvailabilityChecker, CandidateFinder


PROPERTY_ID = "harbour-view"
CHECK_IN = date(2025, 7, 15)
CHECK_OUT = date(2025, 7, 16)


def _build_advisor(repository, settings, clock) -> UpgradeAdvisor:
    checker = AvailabilityChecker(repository=repository, settings=settings, clock=clock)
    finder = CandidateFinder(repository=repository, availability_checker=checker, settings=settings)
    return UpgradeAdvisor(repository=repository, candidate_finder=finder, settings=settings)


def test_upgrade_options_sorted_by_price_difference(inventory, settings, clock):
    repository, ids = inventory
    advisor = _build_advisor(repository, settings, clock)

    options = advisor.get_upgrade_options(PROPERTY_ID, ids["standard_type"], CHECK_IN, CHECK_OUT, 2)

    assert [option.price_difference for option in options] == [pytest.approx(200.0), pytest.approx(500.0)]
    assert [option.room_id for option in options] == [ids["room_201"], ids["room_301"]]
    assert all(option.current_price == pytest.approx(1000.0) for option in options)
    assert options[0].benefits == [
        "Larger room (+80 sqft)",
        "Higher occupancy (3 guests)",
        "More amenities (+1)",
        "Upgraded to deluxe category",
    ]


def test_upgrade_skips_types_without_free_rooms(inventory, settings, clock):
    repository, ids = inventory
    repository.add_booking(room_id=ids["room_201"], check_in=CHECK_IN, check_out=CHECK_OUT)
    advisor = _build_advisor(repository, settings, clock)

    options = advisor.get_upgrade_options(PROPERTY_ID, ids["standard_type"], CHECK_IN, CHECK_OUT, 2)

    assert [option.room_type_name for option in options] == ["Ocean Suite"]


def test_upgrade_respects_guest_count(inventory, settings, clock):
    repository, ids = inventory
    advisor = _build_advisor(repository, settings, clock)

    options = advisor.get_upgrade_options(PROPERTY_ID, ids["deluxe_type"], CHECK_IN, CHECK_OUT, 4)

    assert [option.room_id for option in options] == [ids["room_301"]]
    assert options[0].price_difference == pytest.approx(300.0)


def test_upgrade_from_top_tier_is_empty(inventory, settings, clock):
    repository, ids = inventory
    advisor = _build_advisor(repository, settings, clock)

    assert advisor.get_upgrade_options(PROPERTY_ID, ids["suite_type"], CHECK_IN, CHECK_OUT, 1) == []


def test_upgrade_rejects_unknown_type_and_bad_dates(inventory, settings, clock):
    repository, ids = inventory
    advisor = _build_advisor(repository, settings, clock)

    with pytest.raises(RoomTypeNotFoundError):
        advisor.get_upgrade_options(PROPERTY_ID, 999, CHECK_IN, CHECK_OUT, 1)
    with pytest.raises(InvalidDateRangeError):
        advisor.get_upgrade_options(PROPERTY_ID, ids["standard_type"], CHECK_OUT, CHECK_IN, 1)


def test_overbooking_respects_limit(inventory, settings, clock):
    repository, ids = inventory
    advisor = OverbookingAdvisor(
        repository=repository,
        settings=replace(settings, overbooking_alternatives_limit=2),
    )
    request = StayRequest(
        property_id=PROPERTY_ID,
        check_in=CHECK_IN,
        check_out=CHECK_OUT,
        guest_count=2,
    )

    alternatives = advisor.propose_overbooking(request)

    assert [alt.room_id for alt in alternatives] == [ids["room_101"], ids["room_102"]]
    assert repository.read_holds(ids["room_101"], clock.now) == []


@pytest.mark.parametrize(
    ("number", "suffix"),
    [(1, "st"), (2, "nd"), (3, "rd"), (4, "th"), (11, "th"), (12, "th"), (13, "th"), (21, "st"), (112, "th")],
)
def test_ordinal_suffix(number, suffix):
    assert ordinal_suffix(number) == suffix


def test_alternative_reason_prefers_floor_then_view_then_category():
    base = Room(room_id=1, room_number="101", property_id="p1", room_type_id=1, floor=1, base_rate=1.0)

    assert alternative_reason(replace(base, floor=3)) == "3rd floor room"
    assert alternative_reason(replace(base, views=("sea",))) == "sea view"
    assert alternative_reason(replace(base, room_type_category="deluxe")) == "deluxe category"
    assert alternative_reason(base) == "Alternative option"
