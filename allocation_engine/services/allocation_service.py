"""Allocation orchestration: find, score, price and hold a room."""

from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from allocation_engine.domain.constraints import (
    AllocationConfig,
    validate_allocation_config,
    validate_stay_request,
)
from allocation_engine.domain.errors import (
    AllocationError,
    AllocationTimeoutError,
    HoldConflictError,
    NoAvailabilityError,
    RepositoryError,
)
from allocation_engine.domain.models import AllocatedRoom, AllocationResult, StayRequest
from allocation_engine.repository.base import InventoryRepository
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.services.advisory_service import OverbookingAdvisor, build_alternatives
from allocation_engine.services.availability_service import AvailabilityChecker, CandidateFinder
from allocation_engine.services.hold_service import HoldManager
from allocation_engine.services.pricing_service import PricingCalculator
from allocation_engine.services.scoring_service import select_optimal_room
from allocation_engine.utils.clock import Clock, utc_now
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)

NO_AVAILABILITY_MESSAGE = "No rooms available for the selected dates"


class AllocationState(str, Enum):
    STARTED = "started"
    CANDIDATES_FOUND = "candidates_found"
    NO_CANDIDATES = "no_candidates"
    SCORED = "scored"
    PRICED = "priced"
    HELD = "held"
    SUCCESS = "success"
    OVERBOOKING_PROPOSED = "overbooking_proposed"
    FAILURE = "failure"


def build_allocation_config(settings: Settings) -> AllocationConfig:
    config = AllocationConfig(
        hold_ttl_minutes=settings.hold_ttl_minutes,
        hold_conflict_max_retries=settings.hold_conflict_max_retries,
        alternatives_limit=settings.alternatives_limit,
        overbooking_alternatives_limit=settings.overbooking_alternatives_limit,
        maintenance_recency_days=settings.maintenance_recency_days,
    )
    validate_allocation_config(config)
    return config


class RoomAllocationService:
    """Single entry point for allocating a room to a stay request.

    States: started -> candidates_found | no_candidates;
    candidates_found -> scored -> priced -> held -> success;
    no_candidates -> overbooking_proposed -> failure.
    The hold is written last, so any failure before it leaves nothing behind.
    """

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        candidate_finder: Optional[CandidateFinder] = None,
        pricing_calculator: Optional[PricingCalculator] = None,
        hold_manager: Optional[HoldManager] = None,
        overbooking_advisor: Optional[OverbookingAdvisor] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = build_allocation_config(self._settings)
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock
        self._candidate_finder = candidate_finder or CandidateFinder(
            repository=self._repository,
            availability_checker=AvailabilityChecker(
                repository=self._repository,
                settings=self._settings,
                clock=clock,
            ),
            settings=self._settings,
        )
        self._pricing_calculator = pricing_calculator or PricingCalculator(
            repository=self._repository,
            settings=self._settings,
        )
        self._hold_manager = hold_manager or HoldManager(
            repository=self._repository,
            settings=self._settings,
            clock=clock,
        )
        self._overbooking_advisor = overbooking_advisor or OverbookingAdvisor(
            repository=self._repository,
            settings=self._settings,
        )

    @staticmethod
    def _transition(request: StayRequest, state: AllocationState) -> AllocationState:
        logger.debug(
            "Allocation state | property_id=%s | holder=%s | state=%s",
            request.property_id,
            request.holder,
            state.value,
        )
        return state

    @staticmethod
    def _check_deadline(deadline: Optional[float]) -> None:
        if deadline is not None and time.monotonic() >= deadline:
            raise AllocationTimeoutError("Allocation deadline exceeded before the room was held")

    def allocate_room(
        self,
        request: StayRequest,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> AllocationResult:
        validate_stay_request(request)
        if timeout_seconds is None:
            timeout_seconds = self._settings.allocation_timeout_seconds
        deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

        state = self._transition(request, AllocationState.STARTED)
        excluded_room_ids: set[int] = set()
        conflicts = 0

        try:
            while True:
                candidates = self._candidate_finder.find_candidates(
                    request.property_id,
                    request.check_in,
                    request.check_out,
                    request.guest_count,
                    request.preferences,
                    exclude_room_ids=excluded_room_ids,
                )
                if not candidates:
                    break
                state = self._transition(request, AllocationState.CANDIDATES_FOUND)

                self._check_deadline(deadline)
                selected = select_optimal_room(
                    candidates,
                    request,
                    now=self._clock(),
                    maintenance_recency_days=self._config.maintenance_recency_days,
                )
                state = self._transition(request, AllocationState.SCORED)

                self._check_deadline(deadline)
                pricing = self._pricing_calculator.calculate_price(
                    selected.room_id,
                    request.check_in,
                    request.check_out,
                )
                state = self._transition(request, AllocationState.PRICED)

                self._check_deadline(deadline)
                try:
                    hold = self._hold_manager.place_hold(
                        selected.room_id,
                        request.check_in,
                        request.check_out,
                        holder=request.holder,
                        quoted_price=pricing.total_price,
                    )
                except HoldConflictError:
                    conflicts += 1
                    excluded_room_ids.add(selected.room_id)
                    if conflicts > self._config.hold_conflict_max_retries:
                        raise
                    logger.info(
                        "Retrying allocation after hold conflict | room_id=%s | attempt=%s",
                        selected.room_id,
                        conflicts,
                    )
                    continue
                state = self._transition(request, AllocationState.HELD)

                remaining = [room for room in candidates if room.room_id != selected.room_id]
                result = AllocationResult(
                    success=True,
                    state=self._transition(request, AllocationState.SUCCESS).value,
                    allocated_room=AllocatedRoom(
                        room_id=selected.room_id,
                        room_number=selected.room_number,
                        room_type_id=selected.room_type_id,
                        room_type_name=selected.room_type_name or "Unknown",
                        floor=selected.floor,
                        amenities=selected.amenity_labels,
                        price=pricing.total_price,
                    ),
                    hold=hold,
                    pricing=pricing,
                    alternatives=build_alternatives(remaining, self._config.alternatives_limit),
                )
                logger.info(
                    "Room allocated | property_id=%s | room_id=%s | hold_id=%s | total_price=%.2f",
                    request.property_id,
                    selected.room_id,
                    hold.hold_id,
                    pricing.total_price,
                )
                return result
        except RepositoryError:
            logger.exception("Inventory store failed during allocation | last_state=%s", state.value)
            raise
        except AllocationError as exc:
            logger.warning(
                "Allocation failed | property_id=%s | last_state=%s | error=%s",
                request.property_id,
                state.value,
                exc,
            )
            return AllocationResult(
                success=False,
                state=self._transition(request, AllocationState.FAILURE).value,
                error=str(exc),
                error_code=exc.code,
            )

        self._transition(request, AllocationState.NO_CANDIDATES)
        alternatives = self._overbooking_advisor.propose_overbooking(request)
        self._transition(request, AllocationState.OVERBOOKING_PROPOSED)
        return AllocationResult(
            success=False,
            state=self._transition(request, AllocationState.FAILURE).value,
            alternatives=alternatives,
            error=NO_AVAILABILITY_MESSAGE,
            error_code=NoAvailabilityError.code,
            overbooking_warning=bool(alternatives),
        )
