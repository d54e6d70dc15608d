"""Sprint burndown (burn-up) calculation.

Produces a day-indexed series comparing an *ideal* linear ramp of story
points against the *actual* cumulative points of tasks verified by each day.

Usage::

    result = compute_burndown(sprint, tasks)
    for point in result.series:
        print(point.date, point.ideal, point.actual)

The calculation is pure: it performs no I/O and mutates nothing. Pass
``now`` explicitly to make the output deterministic.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any, Protocol

_DAY_SECONDS = 24 * 60 * 60


class SprintLike(Protocol):
    start_date: datetime | date
    end_date: datetime | date


class TaskLike(Protocol):
    story_points: Any
    is_verified: bool
    verified_at: datetime | None
    completed_at: datetime | None


@dataclass(frozen=True)
class BurndownPoint:
    """Ideal and actual secured points for one calendar day."""

    date: str
    ideal: int
    actual: int | None


@dataclass(frozen=True)
class BurndownResult:
    """Summary totals plus the per-day series."""

    total_points: int
    secured_points: int
    series: list[BurndownPoint] = field(default_factory=list)


def coerce_points(value: Any) -> int:
    """Story points as an int; missing or unparseable values count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_utc_datetime(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return datetime(value.year, value.month, value.day, tzinfo=UTC)


def _utc_day(value: datetime | date) -> date:
    return _as_utc_datetime(value).date()


def sprint_duration_days(start: datetime | date, end: datetime | date) -> int:
    """Inclusive day count between two instants, never less than 1."""
    delta = abs(_as_utc_datetime(end) - _as_utc_datetime(start))
    return math.ceil(delta.total_seconds() / _DAY_SECONDS) + 1


def _verification_day(task: TaskLike, now: datetime) -> date:
    # Verified but undated tasks count as verified "now"
    stamp = task.verified_at or task.completed_at or now
    return _utc_day(stamp)


def compute_burndown(
    sprint: SprintLike,
    tasks: Iterable[TaskLike],
    now: datetime | None = None,
) -> BurndownResult:
    """Compute the burndown series for *sprint* over *tasks*.

    The chart window runs from the sprint's start day through the later of
    its end day and today, so an overrunning sprint stays visible. ``actual``
    is ``None`` for days after today, except the first day, which always
    carries a value.
    """
    now = _as_utc_datetime(now or datetime.now(UTC))
    tasks = list(tasks)

    total_points = sum(coerce_points(t.story_points) for t in tasks)
    duration = sprint_duration_days(sprint.start_date, sprint.end_date)
    points_per_day = total_points / duration

    verified = [
        (_verification_day(t, now), coerce_points(t.story_points))
        for t in tasks
        if t.is_verified
    ]

    start_day = _utc_day(sprint.start_date)
    today = now.date()
    chart_end = max(_utc_day(sprint.end_date), today)

    series: list[BurndownPoint] = []
    current = start_day
    while current <= chart_end:
        days_passed = (current - start_day).days + 1
        ideal = min(total_points, (days_passed - 1) * points_per_day)

        actual: int | None = None
        if current <= today or current == start_day:
            actual = sum(points for day, points in verified if day <= current)

        series.append(
            BurndownPoint(
                date=current.isoformat(),
                ideal=_round_half_up(ideal),
                actual=actual,
            )
        )
        current += timedelta(days=1)

    secured_points = sum(points for _, points in verified)

    return BurndownResult(
        total_points=total_points,
        secured_points=secured_points,
        series=series,
    )
