#!/usr/bin/env python3
"""Validate local allocation engine environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from allocation_engine.domain.models import StayRequest
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.services.allocation_service import RoomAllocationService
from allocation_engine.services.report_service import AvailabilityReportService
from allocation_engine.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="allocation-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("numpy", "numpy"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    from importlib.metadata import PackageNotFoundError, version

    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        base_settings = get_settings()
        validation_settings = replace(
            base_settings,
            database_path=Path(temp_dir) / "allocation_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo inventory seeding (5 rooms)
        try:
            seeded_rooms = repository.seed_demo_inventory()
            if seeded_rooms != 5:
                raise RuntimeError(f"expected 5 rooms, got {seeded_rooms}")
            ok, line = _print_result("Demo inventory: 5 rooms", True)
        except Exception as exc:
            ok, line = _print_result("Demo inventory", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        check_in = date.today() + timedelta(days=7)
        check_out = check_in + timedelta(days=2)

        # CHECK 5: Smoke allocation
        service = RoomAllocationService(repository=repository, settings=validation_settings)
        try:
            result = service.allocate_room(
                StayRequest(
                    property_id=validation_settings.demo_property_id,
                    check_in=check_in,
                    check_out=check_out,
                    guest_count=2,
                    holder="environment-check",
                )
            )
            if not result.success or result.hold is None:
                raise RuntimeError(f"allocation failed: {result.error}")
            ok, line = _print_result(
                "Smoke allocation",
                True,
                f": room={result.allocated_room.room_number} total={result.pricing.total_price:.2f}",
            )
        except Exception as exc:
            ok, line = _print_result("Smoke allocation", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 6: Availability report
        report_service = AvailabilityReportService(
            repository=repository,
            settings=validation_settings,
        )
        try:
            report = report_service.get_availability_report(
                validation_settings.demo_property_id,
                check_in,
                check_out,
            )
            if report.total_rooms != 5 or len(report.nightly_occupancy) != 2:
                raise RuntimeError("unexpected report shape")
            ok, line = _print_result(
                "Availability report",
                True,
                f": occupancy={report.occupancy_rate:.2f}%",
            )
        except Exception as exc:
            ok, line = _print_result("Availability report", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Allocation Engine Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
