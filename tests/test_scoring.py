from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from allocation_engine.domain.models import Room, StayPreferences, StayRequest
from allocation_engine.services import scoring_service
from allocation_engine.services.scoring_service import rank_rooms, score_room, select_optimal_room


NOW = datetime(2025, 7, 1, tzinfo=timezone.utc)


def _room(room_id: int, **attributes) -> Room:
    defaults = {
        "room_number": str(100 + room_id),
        "property_id": "p1",
        "room_type_id": 1,
        "floor": 1,
        "base_rate": 1000.0,
        "condition": "good",
        "cleaning_status": "clean",
    }
    defaults.update(attributes)
    return Room(room_id=room_id, **defaults)


def _request(**preferences) -> StayRequest:
    return StayRequest(
        property_id="p1",
        check_in=date(2025, 7, 15),
        check_out=date(2025, 7, 18),
        guest_count=2,
        preferences=StayPreferences(**preferences),
    )


def test_single_candidate_is_returned_without_scoring(monkeypatch):
    def _fail(*args, **kwargs):
        raise AssertionError("score_room must not be called for one candidate")

    monkeypatch.setattr(scoring_service, "score_room", _fail)
    only = _room(1)

    assert select_optimal_room([only], _request(), now=NOW) is only


def test_empty_candidate_list_raises():
    with pytest.raises(ValueError):
        select_optimal_room([], _request(), now=NOW)


def test_score_room_adds_each_component():
    room = _room(
        1,
        floor=3,
        wing="east",
        views=("sea", "garden"),
        condition="excellent",
        cleaning_status="inspected",
        feedback_rating=4.5,
        last_maintenance=NOW - timedelta(days=10),
    )
    preferences = StayPreferences(floor=3, wing="east", views=("sea", "garden"))

    # 10 + 8 + 5*2 + 15 + 10 + 9 + 5
    assert score_room(room, preferences, now=NOW) == pytest.approx(67.0)


def test_score_room_penalizes_open_issues_and_ignores_stale_maintenance():
    room = _room(
        1,
        condition="poor",
        cleaning_status="dirty",
        maintenance_issue_count=2,
        housekeeping_issue_count=1,
        last_maintenance=NOW - timedelta(days=45),
    )

    assert score_room(room, StayPreferences(), now=NOW) == pytest.approx(-30.0)


def test_naive_maintenance_timestamps_are_treated_as_utc():
    room = _room(1, last_maintenance=datetime(2025, 6, 25))

    assert score_room(room, StayPreferences(), now=NOW) == pytest.approx(10.0 + 8.0 + 5.0)


def test_preference_match_wins():
    plain = _room(1, floor=1)
    preferred = _room(2, floor=4)

    assert select_optimal_room([plain, preferred], _request(floor=4), now=NOW) is preferred


def test_ties_keep_candidate_order():
    first = _room(1)
    second = _room(2)

    ranking = rank_rooms([first, second], _request(), now=NOW)

    assert [room.room_id for room, _ in ranking] == [1, 2]
    assert ranking[0][1] == ranking[1][1]


def test_scoring_is_pure():
    candidates = [_room(1, condition="fair"), _room(2, condition="excellent"), _room(3)]
    snapshot = [replace(room) for room in candidates]
    request = _request(wing="west")

    first = select_optimal_room(candidates, request, now=NOW)
    second = select_optimal_room(candidates, request, now=NOW)

    assert first == second
    assert first.room_id == 2
    assert candidates == snapshot
