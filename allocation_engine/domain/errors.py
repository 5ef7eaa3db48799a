"""Error taxonomy shared by the allocation services."""

from __future__ import annotations


class AllocationError(Exception):
    """Base exception for allocation workflow failures."""

    code = "allocation_error"


class NoAvailabilityError(AllocationError):
    """Raised when no room passes filtering and availability checks."""

    code = "no_availability"


class InvalidDateRangeError(AllocationError):
    """Raised when check-out is not after check-in."""

    code = "invalid_date_range"


class InvalidStayRequestError(AllocationError):
    """Raised when a stay request is malformed beyond its dates."""

    code = "invalid_request"


class RoomNotFoundError(AllocationError):
    """Raised when a room id does not exist in persisted state."""

    code = "room_not_found"


class RoomTypeNotFoundError(AllocationError):
    """Raised when a room type id does not exist in persisted state."""

    code = "room_type_not_found"


class HoldConflictError(AllocationError):
    """Raised when another holder won the check-and-hold race."""

    code = "hold_conflict"


class HoldExpiredError(AllocationError):
    """Raised when confirming a hold that is no longer live."""

    code = "hold_expired"


class AllocationTimeoutError(AllocationError):
    """Raised when the caller's deadline passes before hold placement."""

    code = "timeout"


class RepositoryError(AllocationError):
    """Raised when the inventory store fails."""

    code = "repository_error"
