"""
Rollup & Analytics Engine.

Pure functions over an in-memory snapshot of activities: overall project
KPIs, per-system analytics with trend classification, a simulated weekly
S-curve, and BOQ-quantity project metrics.  Nothing here touches the
database; callers build the snapshot (see activity_store) and hand it in.

Usage:
    from fieldprogress.services.rollup_engine import (
        compute_overall_kpis, compute_system_analytics, generate_progress_series,
    )
    kpi = compute_overall_kpis(snapshot, planned_progress=75)
    systems = compute_system_analytics(snapshot)
    for point in generate_progress_series(kpi.actual_progress):
        ...
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Iterator, Mapping

DEFAULT_PLANNED_BASELINE = 75.0
DEFAULT_WEEK_COUNT = 12

# Simulated S-curve: expected weekly gain and noise amplitude (percent)
WEEKLY_ACTUAL_STEP = 6.25
SERIES_NOISE = 5.0

COMPLETE_FRACTION = 1.0
METRICS_WINDOW_DAYS = 30


# ═════════════════════════════════════════════════════════════════════════════
# Snapshot & result types
# ═════════════════════════════════════════════════════════════════════════════

class Trend(str, Enum):
    UP = "up"
    STABLE = "stable"
    DOWN = "down"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ActivitySnapshot:
    """Read-only view of one activity with its resolved ancestry.

    ``system_code`` is None when the activity has no resolvable system
    ancestor.  ``progress_fraction`` is the latest recorded completion
    (0 when nothing has been captured).
    """
    id: int | None
    code: str
    name: str
    weight: float | None = 0.0
    progress_fraction: float | None = 0.0
    unit: str = ""
    boq_qty: float = 0.0
    qty_accum: float = 0.0
    system_code: str | None = None
    system_name: str | None = None
    area_name: str | None = None

    @property
    def is_complete(self) -> bool:
        return (self.progress_fraction or 0.0) >= COMPLETE_FRACTION

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "unit": self.unit,
            "boq_qty": self.boq_qty,
            "weight": self.weight,
            "qty_accum": self.qty_accum,
            "progress_fraction": self.progress_fraction or 0.0,
            "system_code": self.system_code,
            "system_name": self.system_name,
            "area_name": self.area_name,
        }


@dataclass
class OverallKPI:
    planned_progress: float = 0.0
    actual_progress: float = 0.0
    efficiency: float = 0.0
    total_activities: int = 0
    completed_activities: int = 0

    def to_dict(self) -> dict:
        return {
            "planned_progress": round(self.planned_progress, 2),
            "actual_progress": round(self.actual_progress, 2),
            "efficiency": round(self.efficiency, 2),
            "total_activities": self.total_activities,
            "completed_activities": self.completed_activities,
        }


@dataclass
class SystemAnalytic:
    system_code: str
    system_name: str
    planned_progress: float
    total_weight: float = 0.0
    actual_progress: float = 0.0
    efficiency: float = 0.0
    trend: Trend = Trend.DOWN
    total_activities: int = 0
    completed_activities: int = 0

    def to_dict(self) -> dict:
        return {
            "system_code": self.system_code,
            "system_name": self.system_name,
            "planned_progress": round(self.planned_progress, 2),
            "total_weight": round(self.total_weight, 4),
            "actual_progress": round(self.actual_progress, 2),
            "efficiency": round(self.efficiency, 2),
            "trend": self.trend.value,
            "total_activities": self.total_activities,
            "completed_activities": self.completed_activities,
        }


@dataclass(frozen=True)
class ProgressPoint:
    week: int
    planned_cumulative: float
    actual_cumulative: float

    def to_dict(self) -> dict:
        return {
            "week": self.week,
            "planned": round(self.planned_cumulative, 2),
            "actual": round(self.actual_cumulative, 2),
        }


@dataclass
class ProjectMetrics:
    total_activities: int = 0
    completed_activities: int = 0
    total_progress: float = 0.0
    completion_percentage: float = 0.0
    average_daily_progress: float = 0.0
    estimated_completion_date: date | None = None
    risk_level: RiskLevel = RiskLevel.HIGH
    daily_progress: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_activities": self.total_activities,
            "completed_activities": self.completed_activities,
            "total_progress": round(self.total_progress, 2),
            "completion_percentage": round(self.completion_percentage, 2),
            "average_daily_progress": round(self.average_daily_progress, 2),
            "estimated_completion_date": (
                self.estimated_completion_date.isoformat()
                if self.estimated_completion_date else None
            ),
            "risk_level": self.risk_level.value,
            "daily_progress": self.daily_progress,
        }


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def _weight(activity: ActivitySnapshot) -> float:
    return activity.weight or 0.0


def _fraction(activity: ActivitySnapshot) -> float:
    return activity.progress_fraction or 0.0


def classify_trend(actual_progress: float) -> Trend:
    """Three-way trend bucket: >70 up, >40 stable, otherwise down."""
    if actual_progress > 70:
        return Trend.UP
    elif actual_progress > 40:
        return Trend.STABLE
    return Trend.DOWN


def classify_risk(completion_percentage: float) -> RiskLevel:
    if completion_percentage < 30:
        return RiskLevel.HIGH
    elif completion_percentage < 60:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# ═════════════════════════════════════════════════════════════════════════════
# Core rollups
# ═════════════════════════════════════════════════════════════════════════════

def compute_overall_kpis(
    activities: Iterable[ActivitySnapshot],
    planned_progress: float,
) -> OverallKPI:
    """Project-wide KPIs.

    actual = Σ(progress_i × weight_i) / count × 100.  The denominator is the
    activity count, not the weight sum; per-system analytics normalise by
    weight instead and the two must stay distinct.
    """
    activities = list(activities)
    if not activities:
        return OverallKPI()

    weighted = sum(_fraction(a) * _weight(a) for a in activities)
    actual = weighted / len(activities) * 100
    efficiency = actual / planned_progress * 100 if planned_progress > 0 else 0.0

    return OverallKPI(
        planned_progress=planned_progress,
        actual_progress=actual,
        efficiency=efficiency,
        total_activities=len(activities),
        completed_activities=sum(1 for a in activities if a.is_complete),
    )


def compute_system_analytics(
    activities: Iterable[ActivitySnapshot],
    planned_baseline: float = DEFAULT_PLANNED_BASELINE,
) -> list[SystemAnalytic]:
    """Per-system weighted progress, efficiency and trend.

    Systems come back in first-seen order.  Activities without a system
    code are left out of this view.
    """
    groups: dict[str, list[ActivitySnapshot]] = {}
    names: dict[str, str] = {}
    for activity in activities:
        if not activity.system_code:
            continue
        groups.setdefault(activity.system_code, []).append(activity)
        names.setdefault(activity.system_code, activity.system_name or activity.system_code)

    results = []
    for code, members in groups.items():
        total_weight = sum(_weight(a) for a in members)
        weighted = sum(_fraction(a) * _weight(a) for a in members)
        actual = weighted / total_weight * 100 if total_weight > 0 else 0.0
        efficiency = actual / planned_baseline * 100 if planned_baseline > 0 else 0.0
        results.append(SystemAnalytic(
            system_code=code,
            system_name=names[code],
            planned_progress=planned_baseline,
            total_weight=total_weight,
            actual_progress=actual,
            efficiency=efficiency,
            trend=classify_trend(actual),
            total_activities=len(members),
            completed_activities=sum(1 for a in members if a.is_complete),
        ))
    return results


# ═════════════════════════════════════════════════════════════════════════════
# S-curve
# ═════════════════════════════════════════════════════════════════════════════

class ProgressSeries:
    """Weekly planned-vs-actual cumulative series.

    Iterating produces ``week_count`` ProgressPoints; every new iteration
    starts again from week 1 and draws fresh noise.  Planned is a linear ramp
    reaching 100 on the last week; actual is ``week × 6.25 ± 5`` clamped to
    ``[0, overall_actual]``.
    """

    def __init__(
        self,
        overall_actual: float,
        week_count: int = DEFAULT_WEEK_COUNT,
        rng: random.Random | None = None,
    ) -> None:
        self.overall_actual = overall_actual
        self.week_count = max(int(week_count), 0)
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return self.week_count

    def __iter__(self) -> Iterator[ProgressPoint]:
        if not self.week_count:
            return
        step = 100 / self.week_count
        for week in range(1, self.week_count + 1):
            planned = min(week * step, 100.0)
            noise = self._rng.uniform(-SERIES_NOISE, SERIES_NOISE)
            actual = min(week * WEEKLY_ACTUAL_STEP + noise, self.overall_actual)
            yield ProgressPoint(
                week=week,
                planned_cumulative=planned,
                actual_cumulative=max(actual, 0.0),
            )

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self]


def generate_progress_series(
    overall_actual: float,
    week_count: int = DEFAULT_WEEK_COUNT,
    rng: random.Random | None = None,
) -> ProgressSeries:
    return ProgressSeries(overall_actual, week_count, rng=rng)


# ═════════════════════════════════════════════════════════════════════════════
# BOQ quantity metrics
# ═════════════════════════════════════════════════════════════════════════════

def compute_project_metrics(
    activities: Iterable[ActivitySnapshot],
    daily_quantities: Mapping[date, float] | None = None,
    today: date | None = None,
) -> ProjectMetrics:
    """Quantity-based completion, daily pace and a naive finish forecast.

    ``daily_quantities`` maps a capture date to the total quantity reported
    that day; only the last 30 days count towards the average pace.
    """
    activities = list(activities)
    today = today or date.today()
    total_boq = sum(a.boq_qty or 0.0 for a in activities)
    total_progress = sum(a.qty_accum or 0.0 for a in activities)
    completion = total_progress / total_boq * 100 if total_boq > 0 else 0.0

    window_start = today - timedelta(days=METRICS_WINDOW_DAYS)
    daily = []
    daily_pcts = []
    for day, qty in sorted((daily_quantities or {}).items()):
        if day < window_start or day > today:
            continue
        pct = qty / total_boq * 100 if total_boq > 0 else 0.0
        daily_pcts.append(pct)
        daily.append({"date": day.isoformat(), "quantity": qty, "progress": round(pct, 2)})
    average = sum(daily_pcts) / len(daily_pcts) if daily_pcts else 0.0

    estimated = None
    if average > 0:
        remaining_days = math.ceil(max(100 - completion, 0) / average)
        estimated = today + timedelta(days=remaining_days)

    return ProjectMetrics(
        total_activities=len(activities),
        completed_activities=sum(
            1 for a in activities if (a.qty_accum or 0.0) >= (a.boq_qty or 0.0)
        ),
        total_progress=total_progress,
        completion_percentage=completion,
        average_daily_progress=average,
        estimated_completion_date=estimated,
        risk_level=classify_risk(completion),
        daily_progress=daily,
    )
