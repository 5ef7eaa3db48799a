"""Fallback and upsell advice: overbooking alternatives and upgrade paths."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from allocation_engine.domain.constraints import count_nights
from allocation_engine.domain.errors import InvalidStayRequestError, RoomTypeNotFoundError
from allocation_engine.domain.models import (
    OVERBOOKABLE_ROOM_STATUSES,
    Alternative,
    Room,
    RoomType,
    StayPreferences,
    StayRequest,
    UpgradeOption,
    category_rank,
)
from allocation_engine.repository.base import InventoryRepository, RoomFilter, RoomTypeFilter
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.services.availability_service import CandidateFinder
from allocation_engine.services.pricing_service import price_stay
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)

OVERBOOKING_REASON = "Overbooked - Subject to availability"


def ordinal_suffix(number: int) -> str:
    last_digit = number % 10
    last_two = number % 100
    if last_digit == 1 and last_two != 11:
        return "st"
    if last_digit == 2 and last_two != 12:
        return "nd"
    if last_digit == 3 and last_two != 13:
        return "rd"
    return "th"


def alternative_reason(room: Room) -> str:
    if room.floor != 1:
        return f"{room.floor}{ordinal_suffix(room.floor)} floor room"
    if room.views:
        return f"{room.views[0]} view"
    if room.room_type_category:
        return f"{room.room_type_category} category"
    return "Alternative option"


def build_alternatives(rooms: Sequence[Room], limit: int) -> list[Alternative]:
    """Describe runner-up candidates priced at their current nightly rate."""
    return [
        Alternative(
            room_id=room.room_id,
            room_number=room.room_number,
            room_type_name=room.room_type_name or "Unknown",
            price=room.effective_rate,
            reason=alternative_reason(room),
        )
        for room in list(rooms)[:limit]
    ]


def upgrade_benefits(current: RoomType, upgrade: RoomType) -> list[str]:
    benefits: list[str] = []
    if upgrade.room_size > current.room_size:
        benefits.append(
            f"Larger room (+{upgrade.room_size - current.room_size:g} {upgrade.size_unit})"
        )
    if upgrade.max_occupancy > current.max_occupancy:
        benefits.append(f"Higher occupancy ({upgrade.max_occupancy} guests)")
    extra_amenities = len(upgrade.amenities) - len(current.amenities)
    if extra_amenities > 0:
        benefits.append(f"More amenities (+{extra_amenities})")
    if upgrade.category != current.category:
        benefits.append(f"Upgraded to {upgrade.category} category")
    return benefits


class OverbookingAdvisor:
    """Best-effort suggestions for staff when nothing is truly available.

    Suggestions may include occupied rooms; nothing is held or guaranteed.
    """

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def propose_overbooking(self, request: StayRequest) -> list[Alternative]:
        rooms = self._repository.find_rooms(
            RoomFilter(
                property_id=request.property_id,
                statuses=OVERBOOKABLE_ROOM_STATUSES,
                active_only=True,
            )
        )
        limit = self._settings.overbooking_alternatives_limit
        alternatives = [
            Alternative(
                room_id=room.room_id,
                room_number=room.room_number,
                room_type_name=room.room_type_name or "Unknown",
                price=float(room.base_rate or 0.0),
                reason=OVERBOOKING_REASON,
            )
            for room in rooms[:limit]
        ]
        logger.warning(
            "Overbooking proposed | property_id=%s | alternatives=%s",
            request.property_id,
            len(alternatives),
        )
        return alternatives


class UpgradeAdvisor:
    """Finds available higher-tier room types and prices the difference."""

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        candidate_finder: Optional[CandidateFinder] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._candidate_finder = candidate_finder or CandidateFinder(
            repository=self._repository,
            settings=self._settings,
        )

    def get_upgrade_options(
        self,
        property_id: str,
        current_room_type_id: int,
        check_in: date,
        check_out: date,
        guest_count: int,
    ) -> list[UpgradeOption]:
        nights = count_nights(check_in, check_out)
        if guest_count < 1:
            raise InvalidStayRequestError("guest_count must be at least 1")

        current_type = self._repository.get_room_type(current_room_type_id)
        if current_type is None:
            raise RoomTypeNotFoundError(f"Room type {current_room_type_id} not found")

        current_rank = category_rank(current_type.category)
        upgrade_types = [
            room_type
            for room_type in self._repository.find_room_types(
                RoomTypeFilter(property_id=property_id, min_occupancy=guest_count)
            )
            if room_type.room_type_id != current_type.room_type_id
            and (
                room_type.base_price > current_type.base_price
                or category_rank(room_type.category) > current_rank
            )
        ]

        current_price = current_type.base_price * nights
        options: list[UpgradeOption] = []
        for room_type in upgrade_types:
            rooms = self._candidate_finder.find_candidates(
                property_id,
                check_in,
                check_out,
                guest_count,
                StayPreferences(room_type_id=room_type.room_type_id),
            )
            if not rooms:
                continue
            room = rooms[0]
            upgrade_price = price_stay(room, check_in, check_out).total_price
            options.append(
                UpgradeOption(
                    room_id=room.room_id,
                    room_number=room.room_number,
                    room_type_name=room_type.name,
                    current_price=current_price,
                    upgrade_price=upgrade_price,
                    price_difference=upgrade_price - current_price,
                    benefits=upgrade_benefits(current_type, room_type),
                    available=True,
                )
            )

        options.sort(key=lambda option: option.price_difference)
        logger.info(
            "Upgrade options | property_id=%s | current_room_type_id=%s | options=%s",
            property_id,
            current_room_type_id,
            len(options),
        )
        return options
