"""Stay pricing from base rate, seasonal multiplier and special rates."""

from __future__ import annotations

from datetime import date
from typing import Optional

from allocation_engine.domain.constraints import count_nights
from allocation_engine.domain.errors import RoomNotFoundError
from allocation_engine.domain.models import PricingBreakdown, Room
from allocation_engine.repository.base import InventoryRepository
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.utils.config import Settings, get_settings


def price_stay(room: Room, check_in: date, check_out: date) -> PricingBreakdown:
    """Price a stay on `room`.

    Special rates whose window contains the whole stay replace the seasonal
    calculation entirely; among several, the lowest rate wins.
    """
    nights = count_nights(check_in, check_out)
    base_rate = room.effective_rate
    seasonal_multiplier = room.seasonal_multiplier or 1.0

    applicable = tuple(rate for rate in room.special_rates if rate.covers(check_in, check_out))
    if applicable:
        best_rate = min(rate.rate for rate in applicable)
        total_price = best_rate * nights
    else:
        total_price = base_rate * nights * seasonal_multiplier

    return PricingBreakdown(
        base_rate=base_rate,
        nights=nights,
        seasonal_multiplier=seasonal_multiplier,
        total_price=total_price,
        price_per_night=total_price / nights,
        applied_special_rates=applicable,
    )


class PricingCalculator:
    """Repository-backed entry point for stay pricing."""

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def calculate_price(self, room_id: int, check_in: date, check_out: date) -> PricingBreakdown:
        count_nights(check_in, check_out)
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        return price_stay(room, check_in, check_out)
