"""
Progress capture service.

Appends daily quantity entries for an activity and keeps its
activity_progress aggregate (accumulated quantity, completion fraction)
current.  The fraction is what the rollup engine consumes.
"""

import logging
import math
from datetime import date, datetime, timezone

from fieldprogress.core.exceptions import NotFoundError, ValidationError
from fieldprogress.models import db
from fieldprogress.models.activity import Activity, ActivityProgress, ProgressEntry

logger = logging.getLogger(__name__)


def _get_active_activity(activity_id: int) -> Activity:
    activity = db.session.get(Activity, activity_id)
    if not activity or not activity.is_active:
        raise NotFoundError(resource="Activity", resource_id=activity_id)
    return activity


def completion_fraction(qty_accum: float, boq_qty: float) -> float:
    """Accumulated / planned quantity, clamped to [0, 1]."""
    if not boq_qty or boq_qty <= 0:
        return 0.0
    return max(0.0, min(qty_accum / boq_qty, 1.0))


def record_progress(
    activity_id: int,
    qty_today: float,
    comment: str | None = None,
    entry_date: date | None = None,
) -> ProgressEntry:
    """Store one capture and refresh the activity's aggregate."""
    activity = _get_active_activity(activity_id)
    if qty_today is None or not math.isfinite(qty_today) or qty_today <= 0:
        raise ValidationError(
            "qty_today must be greater than 0",
            details={"qty_today": qty_today},
        )

    entry = ProgressEntry(
        activity_id=activity.id,
        qty_today=qty_today,
        comment=comment,
        entry_date=entry_date or date.today(),
    )
    db.session.add(entry)

    agg = activity.progress
    if agg is None:
        agg = ActivityProgress(activity_id=activity.id, qty_accum=0.0, pct=0.0)
        activity.progress = agg
    agg.qty_accum = (agg.qty_accum or 0.0) + qty_today
    agg.pct = completion_fraction(agg.qty_accum, activity.boq_qty)
    agg.last_updated = datetime.now(timezone.utc)

    db.session.commit()
    logger.info("Progress recorded for activity %s: +%s (pct=%.3f)",
                activity.code, qty_today, agg.pct,
                extra={"project_id": activity.project_id})
    return entry


def list_progress_entries(activity_id: int) -> list[ProgressEntry]:
    _get_active_activity(activity_id)
    return (
        ProgressEntry.query
        .filter_by(activity_id=activity_id)
        .order_by(ProgressEntry.entry_date.desc(), ProgressEntry.id.desc())
        .all()
    )


def get_progress(activity_id: int) -> dict:
    activity = _get_active_activity(activity_id)
    agg = activity.progress
    return {
        "activity": activity.to_dict(),
        "qty_accum": agg.qty_accum if agg else 0.0,
        "pct": agg.pct if agg else 0.0,
        "last_updated": agg.last_updated.isoformat() if agg and agg.last_updated else None,
    }
