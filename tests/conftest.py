from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from allocation_engine.repository.memory_repository import InMemoryRepository
from allocation_engine.utils.config import get_settings


PROPERTY_ID = "harbour-view"


class FakeClock:
    """Manually advanced UTC clock for TTL tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    get_settings.cache_clear()
    return replace(get_settings(), allocation_timeout_seconds=None)


@pytest.fixture
def inventory() -> tuple[InMemoryRepository, dict[str, int]]:
    """Three tiers at 1000/1200/1500 per night, one room each plus a spare standard."""
    repository = InMemoryRepository()
    standard = repository.add_room_type(
        property_id=PROPERTY_ID,
        name="Standard Room",
        category="standard",
        max_occupancy=2,
        base_price=1000.0,
        room_size=220.0,
        amenities=frozenset({"wifi", "tv"}),
    )
    deluxe = repository.add_room_type(
        property_id=PROPERTY_ID,
        name="Deluxe Room",
        category="deluxe",
        max_occupancy=3,
        base_price=1200.0,
        room_size=300.0,
        amenities=frozenset({"wifi", "tv", "minibar"}),
    )
    suite = repository.add_room_type(
        property_id=PROPERTY_ID,
        name="Ocean Suite",
        category="suite",
        max_occupancy=4,
        base_price=1500.0,
        room_size=450.0,
        amenities=frozenset({"wifi", "tv", "minibar", "jacuzzi"}),
    )
    ids = {
        "standard_type": standard,
        "deluxe_type": deluxe,
        "suite_type": suite,
        "room_101": repository.add_room(
            room_number="101",
            room_type_id=standard,
            floor=1,
            base_rate=1000.0,
            wing="east",
            amenities=frozenset({"ac", "tv"}),
        ),
        "room_102": repository.add_room(
            room_number="102",
            room_type_id=standard,
            floor=1,
            base_rate=1000.0,
            wing="west",
            amenities=frozenset({"ac", "tv", "balcony"}),
            wheelchair_accessible=True,
        ),
        "room_201": repository.add_room(
            room_number="201",
            room_type_id=deluxe,
            floor=2,
            base_rate=1200.0,
            views=("garden",),
            amenities=frozenset({"ac", "tv", "minibar"}),
        ),
        "room_301": repository.add_room(
            room_number="301",
            room_type_id=suite,
            floor=3,
            base_rate=1500.0,
            views=("sea",),
            amenities=frozenset({"ac", "tv", "minibar", "jacuzzi"}),
        ),
    }
    repository.call_count = 0
    return repository, ids
