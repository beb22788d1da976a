"""
Activity import service.

Binds the pure import pipeline to the SQL store and the app config
switches (IMPORT_REPORT_SHORT_ROWS, IMPORT_REJECT_MIXED_PROJECTS).
"""

import logging

from flask import current_app

from fieldprogress.services import import_pipeline
from fieldprogress.services.activity_store import SqlActivityStore, SqlProjectDirectory

logger = logging.getLogger(__name__)


def validate_activities_csv(file_content: str | bytes) -> import_pipeline.ImportResult:
    """Dry run: classify every row, persist nothing."""
    return import_pipeline.validate_csv(
        file_content,
        report_short_rows=current_app.config.get("IMPORT_REPORT_SHORT_ROWS", False),
    )


def import_activities_from_csv(file_content: str | bytes) -> dict:
    """
    Full pipeline: parse → classify → commit valid rows.
    Returns the review tallies plus the created activities.
    """
    result = validate_activities_csv(file_content)
    created = import_pipeline.commit(
        result.activities,
        SqlProjectDirectory(),
        SqlActivityStore(),
        reject_mixed_projects=current_app.config.get("IMPORT_REJECT_MIXED_PROJECTS", False),
    )
    skipped = result.warning_rows + result.error_rows
    return {
        "status": "completed" if not skipped else "partial",
        "message": (
            f"{len(created)} actividades importadas correctamente"
            + (f", {skipped} filas omitidas" if skipped else "")
        ),
        "import_result": result.to_dict(),
        "created": [a.to_dict() for a in created],
        "total_created": len(created),
    }
