"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from allocation_engine.controllers.allocation_controller import router as allocation_router
from allocation_engine.controllers.report_controller import router as report_router
from allocation_engine.repository.base import InventoryRepository
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.services.advisory_service import OverbookingAdvisor, UpgradeAdvisor
from allocation_engine.services.allocation_service import RoomAllocationService
from allocation_engine.services.availability_service import AvailabilityChecker, CandidateFinder
from allocation_engine.services.hold_service import HoldManager
from allocation_engine.services.pricing_service import PricingCalculator
from allocation_engine.services.report_service import AvailabilityReportService
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[InventoryRepository] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and one HoldManager, so the per-room
    hold locks are common to all request threads.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite unless a store is injected) ---
    repository = repository or DataRepository(settings)

    # --- Services (business logic, no direct DB access) ---
    availability_checker = AvailabilityChecker(repository=repository, settings=settings)
    candidate_finder = CandidateFinder(
        repository=repository,
        availability_checker=availability_checker,
        settings=settings,
    )
    pricing_calculator = PricingCalculator(repository=repository, settings=settings)
    hold_manager = HoldManager(repository=repository, settings=settings)
    overbooking_advisor = OverbookingAdvisor(repository=repository, settings=settings)
    allocation_service = RoomAllocationService(
        repository=repository,
        settings=settings,
        candidate_finder=candidate_finder,
        pricing_calculator=pricing_calculator,
        hold_manager=hold_manager,
        overbooking_advisor=overbooking_advisor,
    )
    upgrade_advisor = UpgradeAdvisor(
        repository=repository,
        candidate_finder=candidate_finder,
        settings=settings,
    )
    report_service = AvailabilityReportService(
        repository=repository,
        availability_checker=availability_checker,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(allocation_router)
    app.include_router(report_router)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok", "version": settings.app_version}

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.allocation_service = allocation_service
    app.state.hold_manager = hold_manager
    app.state.upgrade_advisor = upgrade_advisor
    app.state.report_service = report_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Order matters:
      1. Schema must exist before seeding.
      2. Demo inventory is seeded only into an empty store.
      3. Stale holds are purged last.
    """
    repository = app.state.repository
    hold_manager: HoldManager = app.state.hold_manager

    if isinstance(repository, DataRepository):
        logger.info("Startup: initializing database schema")
        repository.initialize_database()
        if settings.seed_demo_inventory:
            logger.info("Startup: seeding demo inventory (skipped if Rooms table not empty)")
            repository.seed_demo_inventory()

    logger.info("Startup: purging stale holds")
    hold_manager.purge_expired_holds()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
