"""Domain-level validation rules for stay intervals and allocation tuning."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from allocation_engine.domain.errors import InvalidDateRangeError, InvalidStayRequestError
from allocation_engine.domain.models import StayRequest


@dataclass(frozen=True)
class AllocationConfig:
    hold_ttl_minutes: int
    hold_conflict_max_retries: int
    alternatives_limit: int
    overbooking_alternatives_limit: int
    maintenance_recency_days: int


def validate_allocation_config(config: AllocationConfig) -> None:
    if config.hold_ttl_minutes <= 0:
        raise ValueError("hold_ttl_minutes must be > 0")
    if config.hold_conflict_max_retries < 0:
        raise ValueError("hold_conflict_max_retries must be >= 0")
    if config.alternatives_limit < 0:
        raise ValueError("alternatives_limit must be >= 0")
    if config.overbooking_alternatives_limit < 0:
        raise ValueError("overbooking_alternatives_limit must be >= 0")
    if config.maintenance_recency_days <= 0:
        raise ValueError("maintenance_recency_days must be > 0")


def intervals_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Half-open overlap test: [a_start, a_end) meets [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def count_nights(check_in: date, check_out: date) -> int:
    """Whole nights in [check_in, check_out); bounds are calendar dates only."""
    if isinstance(check_in, datetime) or isinstance(check_out, datetime):
        raise InvalidDateRangeError("check_in and check_out must be dates, not datetimes")
    if check_out <= check_in:
        raise InvalidDateRangeError("check_out must be after check_in")
    return (check_out - check_in).days


def validate_stay_request(request: StayRequest) -> int:
    """Reject malformed requests before any I/O; return the night count."""
    nights = count_nights(request.check_in, request.check_out)
    if request.guest_count < 1:
        raise InvalidStayRequestError("guest_count must be at least 1")
    if not request.property_id or not request.property_id.strip():
        raise InvalidStayRequestError("property_id must be non-empty")
    return nights
