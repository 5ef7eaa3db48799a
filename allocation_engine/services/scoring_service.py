"""Pure tie-breaking heuristic over available room snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from allocation_engine.domain.models import Room, StayPreferences, StayRequest


FLOOR_MATCH_POINTS = 10.0
WING_MATCH_POINTS = 8.0
VIEW_MATCH_POINTS = 5.0
CONDITION_POINTS = {"excellent": 15.0, "good": 10.0, "fair": 5.0}
CLEANING_POINTS = {"inspected": 10.0, "clean": 8.0, "cleaning_in_progress": 3.0}
MAINTENANCE_ISSUE_PENALTY = 20.0
HOUSEKEEPING_ISSUE_PENALTY = 10.0
FEEDBACK_WEIGHT = 2.0
RECENT_MAINTENANCE_POINTS = 5.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def score_room(
    room: Room,
    preferences: StayPreferences,
    *,
    now: datetime,
    maintenance_recency_days: int = 30,
) -> float:
    score = 0.0

    if preferences.floor is not None and room.floor == preferences.floor:
        score += FLOOR_MATCH_POINTS
    if preferences.wing is not None and room.wing == preferences.wing:
        score += WING_MATCH_POINTS
    if preferences.views:
        matching_views = sum(1 for view in room.views if view in preferences.views)
        score += matching_views * VIEW_MATCH_POINTS

    score += CONDITION_POINTS.get(room.condition, 0.0)
    score += CLEANING_POINTS.get(room.cleaning_status, 0.0)

    if room.maintenance_issue_count > 0:
        score -= MAINTENANCE_ISSUE_PENALTY
    if room.housekeeping_issue_count > 0:
        score -= HOUSEKEEPING_ISSUE_PENALTY

    score += (room.feedback_rating or 0.0) * FEEDBACK_WEIGHT

    if room.last_maintenance is not None:
        days_since = (_as_utc(now) - _as_utc(room.last_maintenance)).days
        if days_since < maintenance_recency_days:
            score += RECENT_MAINTENANCE_POINTS

    return score


def rank_rooms(
    candidates: Sequence[Room],
    request: StayRequest,
    *,
    now: datetime,
    maintenance_recency_days: int = 30,
) -> list[tuple[Room, float]]:
    """Score every candidate and sort best-first.

    `sorted` is stable, so equal scores keep the caller's (floor, room number)
    order.
    """
    scored = [
        (
            room,
            score_room(
                room,
                request.preferences,
                now=now,
                maintenance_recency_days=maintenance_recency_days,
            ),
        )
        for room in candidates
    ]
    return sorted(scored, key=lambda item: -item[1])


def select_optimal_room(
    candidates: Sequence[Room],
    request: StayRequest,
    *,
    now: datetime,
    maintenance_recency_days: int = 30,
) -> Room:
    if not candidates:
        raise ValueError("select_optimal_room requires at least one candidate")
    if len(candidates) == 1:
        return candidates[0]
    ranking = rank_rooms(
        candidates,
        request,
        now=now,
        maintenance_recency_days=maintenance_recency_days,
    )
    return ranking[0][0]
