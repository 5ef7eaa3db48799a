"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, Request, status

from allocation_engine.domain.errors import (
    AllocationError,
    AllocationTimeoutError,
    HoldConflictError,
    HoldExpiredError,
    InvalidDateRangeError,
    InvalidStayRequestError,
    RepositoryError,
    RoomNotFoundError,
    RoomTypeNotFoundError,
)
from allocation_engine.services.advisory_service import UpgradeAdvisor
from allocation_engine.services.allocation_service import RoomAllocationService
from allocation_engine.services.hold_service import HoldManager
from allocation_engine.services.report_service import AvailabilityReportService
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AllocationError], int], ...] = (
    (InvalidDateRangeError, status.HTTP_400_BAD_REQUEST),
    (InvalidStayRequestError, status.HTTP_400_BAD_REQUEST),
    (RoomNotFoundError, status.HTTP_404_NOT_FOUND),
    (RoomTypeNotFoundError, status.HTTP_404_NOT_FOUND),
    (HoldConflictError, status.HTTP_409_CONFLICT),
    (HoldExpiredError, status.HTTP_409_CONFLICT),
    (AllocationTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (RepositoryError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def raise_http_error(exc: AllocationError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    logger.exception("Unmapped allocation failure")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    ) from exc


def _service(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_allocation_service(request: Request) -> RoomAllocationService:
    return _service(request, "allocation_service", "Allocation service")


def get_hold_manager(request: Request) -> HoldManager:
    return _service(request, "hold_manager", "Hold manager")


def get_upgrade_advisor(request: Request) -> UpgradeAdvisor:
    return _service(request, "upgrade_advisor", "Upgrade advisor")


def get_report_service(request: Request) -> AvailabilityReportService:
    return _service(request, "report_service", "Report service")


def get_repository(request: Request):
    return _service(request, "repository", "Repository")
