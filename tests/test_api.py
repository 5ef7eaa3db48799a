from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from allocation_engine.controllers.allocation_controller import router as allocation_router
from allocation_engine.controllers.report_controller import router as report_router
from allocation_engine.services.advisory_service import OverbookingAdvisor, UpgradeAdvisor
from allocation_engine.services.allocation_service import RoomAllocationService
from allocation_engine.services.availability_service import AvailabilityChecker, CandidateFinder
from allocation_engine.services.hold_service import HoldManager
from allocation_engine.services.pricing_service import PricingCalculator
from allocation_engine.services.report_service import AvailabilityReportService


PROPERTY_ID = "harbour-view"


def _build_test_app(repository, settings) -> FastAPI:
    checker = AvailabilityChecker(repository=repository, settings=settings)
    finder = CandidateFinder(repository=repository, availability_checker=checker, settings=settings)
    hold_manager = HoldManager(repository=repository, settings=settings)

    app = FastAPI()
    app.include_router(allocation_router)
    app.include_router(report_router)
    app.state.repository = repository
    app.state.hold_manager = hold_manager
    app.state.allocation_service = RoomAllocationService(
        repository=repository,
        settings=settings,
        candidate_finder=finder,
        pricing_calculator=PricingCalculator(repository=repository, settings=settings),
        hold_manager=hold_manager,
        overbooking_advisor=OverbookingAdvisor(repository=repository, settings=settings),
    )
    app.state.upgrade_advisor = UpgradeAdvisor(
        repository=repository,
        candidate_finder=finder,
        settings=settings,
    )
    app.state.report_service = AvailabilityReportService(
        repository=repository,
        availability_checker=checker,
        settings=settings,
    )
    return app


def _allocation_payload(**overrides) -> dict:
    payload = {
        "property_id": PROPERTY_ID,
        "check_in": "2025-07-15",
        "check_out": "2025-07-18",
        "guest_count": 2,
        "holder": "front-desk",
        "preferences": {"views": ["Sea"]},
    }
    payload.update(overrides)
    return payload


def test_allocate_confirm_and_release_flow(inventory, settings):
    repository, ids = inventory
    client = TestClient(_build_test_app(repository, settings))

    response = client.post("/allocations", json=_allocation_payload())
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["state"] == "success"
    assert body["allocated_room"]["room_id"] == ids["room_301"]
    assert body["pricing"]["total_price"] == 4500.0
    hold_id = body["hold"]["hold_id"]

    confirm = client.post(f"/holds/{hold_id}/confirm", json={"guest_name": "Ada Lovelace"})
    assert confirm.status_code == 201
    assert confirm.json()["room_id"] == ids["room_301"]
    assert confirm.json()["total_price"] == 4500.0

    again = client.post(f"/holds/{hold_id}/confirm", json={"guest_name": "Ada Lovelace"})
    assert again.status_code == 409

    release = client.delete(f"/holds/{hold_id}")
    assert release.status_code == 200
    assert release.json() == {"hold_id": hold_id, "released": False}


def test_release_live_hold(inventory, settings):
    repository, _ = inventory
    client = TestClient(_build_test_app(repository, settings))
    hold_id = client.post("/allocations", json=_allocation_payload()).json()["hold"]["hold_id"]

    assert client.delete(f"/holds/{hold_id}").json()["released"] is True
    assert client.delete(f"/holds/{hold_id}").json()["released"] is False


def test_allocation_validation_errors(inventory, settings):
    repository, _ = inventory
    client = TestClient(_build_test_app(repository, settings))

    reversed_dates = client.post(
        "/allocations",
        json=_allocation_payload(check_in="2025-07-18", check_out="2025-07-15"),
    )
    no_guests = client.post("/allocations", json=_allocation_payload(guest_count=0))
    blank_view = client.post("/allocations", json=_allocation_payload(preferences={"views": [" "]}))

    assert reversed_dates.status_code == 400
    assert no_guests.status_code == 422
    assert blank_view.status_code == 422


def test_unavailable_dates_return_overbooking_alternatives(inventory, settings):
    repository, ids = inventory
    client = TestClient(_build_test_app(repository, settings))

    response = client.post(
        "/allocations",
        json=_allocation_payload(guest_count=4, preferences={"accessibility": True}),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["error_code"] == "no_availability"
    assert body["overbooking_warning"] is True
    assert len(body["alternatives"]) == 3


def test_upgrade_options_endpoint(inventory, settings):
    repository, ids = inventory
    client = TestClient(_build_test_app(repository, settings))

    response = client.get(
        f"/properties/{PROPERTY_ID}/upgrade-options",
        params={
            "current_room_type_id": ids["standard_type"],
            "check_in": "2025-07-15",
            "check_out": "2025-07-16",
            "guest_count": 2,
        },
    )
    missing = client.get(
        f"/properties/{PROPERTY_ID}/upgrade-options",
        params={
            "current_room_type_id": 999,
            "check_in": "2025-07-15",
            "check_out": "2025-07-16",
            "guest_count": 2,
        },
    )

    assert response.status_code == 200
    assert [option["price_difference"] for option in response.json()] == [200.0, 500.0]
    assert missing.status_code == 404


def test_availability_report_endpoint(inventory, settings):
    repository, ids = inventory
    repository.update_room(ids["room_301"], {"status": "out_of_order"})
    client = TestClient(_build_test_app(repository, settings))

    response = client.get(
        f"/properties/{PROPERTY_ID}/availability-report",
        params={"start": "2025-07-01", "end": "2025-07-03"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["total_rooms"] == 4
    assert body["available_rooms"] == 3
    assert body["out_of_order_rooms"] == 1
    assert [row["night"] for row in body["nightly_occupancy"]] == ["2025-07-01", "2025-07-02"]


def test_patch_room_updates_status(inventory, settings):
    repository, ids = inventory
    client = TestClient(_build_test_app(repository, settings))

    response = client.patch(
        f"/rooms/{ids['room_101']}",
        json={"status": "maintenance", "maintenance_issue_count": 1},
    )
    invalid = client.patch(f"/rooms/{ids['room_101']}", json={"status": "haunted"})
    missing = client.patch("/rooms/9999", json={"status": "clean"})

    assert response.status_code == 200
    assert response.json()["status"] == "maintenance"
    assert repository.get_room(ids["room_101"]).maintenance_issue_count == 1
    assert invalid.status_code == 422
    assert missing.status_code == 404


def test_missing_services_return_503(settings):
    app = FastAPI()
    app.include_router(allocation_router)
    client = TestClient(app)

    response = client.post("/allocations", json=_allocation_payload())

    assert response.status_code == 503


def test_create_app_runs_startup_against_sqlite(tmp_path, settings):
    from app import create_app

    app = create_app(
        settings=replace(
            settings,
            database_path=tmp_path / "api.db",
            demo_property_id="demo",
            seed_demo_inventory=True,
        ),
    )

    with TestClient(app) as client:
        health = client.get("/health")
        response = client.post(
            "/allocations",
            json=_allocation_payload(
                property_id="demo",
                check_in="2030-03-01",
                check_out="2030-03-03",
                preferences={},
            ),
        )

    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert response.status_code == 200
    assert response.json()["success"] is True
