"""
Project analytics service.

Loads a project's activity snapshot from the store and runs the pure
rollup engine over it.  Planning inputs default to the app config
(PLANNED_PROGRESS_PCT, PLANNED_BASELINE_PCT, PROGRESS_SERIES_WEEKS).

Usage:
    from fieldprogress.services import analytics_service
    data = analytics_service.get_executive_dashboard(project_id=1)
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from flask import current_app

from fieldprogress.services import rollup_engine
from fieldprogress.services.activity_store import SqlActivityStore
from fieldprogress.services.project_service import get_project

logger = logging.getLogger(__name__)


def _cfg(key: str, override):
    return override if override is not None else current_app.config[key]


def get_snapshot(project_id: int, store: SqlActivityStore | None = None):
    get_project(project_id)
    return (store or SqlActivityStore()).list_active_activities(project_id)


def get_overall_kpis(project_id: int, planned_progress: float | None = None) -> dict:
    planned = _cfg("PLANNED_PROGRESS_PCT", planned_progress)
    kpi = rollup_engine.compute_overall_kpis(get_snapshot(project_id), planned)
    return kpi.to_dict()


def get_system_analytics(project_id: int, planned_baseline: float | None = None) -> list[dict]:
    baseline = _cfg("PLANNED_BASELINE_PCT", planned_baseline)
    systems = rollup_engine.compute_system_analytics(get_snapshot(project_id), baseline)
    return [s.to_dict() for s in systems]


def get_progress_series(
    project_id: int,
    weeks: int | None = None,
    planned_progress: float | None = None,
) -> list[dict]:
    planned = _cfg("PLANNED_PROGRESS_PCT", planned_progress)
    kpi = rollup_engine.compute_overall_kpis(get_snapshot(project_id), planned)
    series = rollup_engine.generate_progress_series(
        kpi.actual_progress, _cfg("PROGRESS_SERIES_WEEKS", weeks),
    )
    return series.to_list()


def get_executive_dashboard(
    project_id: int,
    planned_progress: float | None = None,
    planned_baseline: float | None = None,
    weeks: int | None = None,
) -> dict:
    """Overall KPIs, per-system breakdown and S-curve from one snapshot."""
    project = get_project(project_id)
    snapshot = SqlActivityStore().list_active_activities(project_id)

    kpi = rollup_engine.compute_overall_kpis(
        snapshot, _cfg("PLANNED_PROGRESS_PCT", planned_progress),
    )
    systems = rollup_engine.compute_system_analytics(
        snapshot, _cfg("PLANNED_BASELINE_PCT", planned_baseline),
    )
    series = rollup_engine.generate_progress_series(
        kpi.actual_progress, _cfg("PROGRESS_SERIES_WEEKS", weeks),
    )
    logger.debug("Analytics computed for project %s: %d activities, %d systems",
                 project.code, kpi.total_activities, len(systems),
                 extra={"project_id": project_id})
    return {
        "project": project.to_dict(),
        "overall_kpis": kpi.to_dict(),
        "system_analytics": [s.to_dict() for s in systems],
        "progress_series": series.to_list(),
    }


def get_project_metrics(project_id: int, today: date | None = None) -> dict:
    """BOQ-quantity completion, daily pace and forecast for a project."""
    get_project(project_id)
    today = today or date.today()
    store = SqlActivityStore()
    since = today - timedelta(days=rollup_engine.METRICS_WINDOW_DAYS)
    metrics = rollup_engine.compute_project_metrics(
        store.list_active_activities(project_id),
        store.daily_quantities(project_id, since=since),
        today=today,
    )
    return metrics.to_dict()
