"""
SQLAlchemy-backed Activity Store and Project Directory.

Supplies the rollup engine with immutable ActivitySnapshot lists and
persists import batches as one transaction.

Usage:
    from fieldprogress.services.activity_store import SqlActivityStore, SqlProjectDirectory
    snapshot = SqlActivityStore().list_active_activities(project_id)
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

from fieldprogress.models import db
from fieldprogress.models.activity import Activity, ActivityProgress, ProgressEntry
from fieldprogress.models.hierarchy import Area, Subsystem, System, WorkPackage
from fieldprogress.models.project import Project
from fieldprogress.services.rollup_engine import ActivitySnapshot

logger = logging.getLogger(__name__)

# Imported activities hang off one default subsystem / work package per system
IMPORT_SUBSYSTEM_CODE = "GEN"
IMPORT_SUBSYSTEM_NAME = "General"
IMPORT_WORK_PACKAGE_CODE = "IMPORT"
IMPORT_WORK_PACKAGE_NAME = "Importación"


class StoreError(Exception):
    """Activity store write failure; nothing from the batch was kept."""
    def __init__(self, message, status_code=500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def code_from_name(name: str, max_len: int = 50) -> str:
    """'Área 1' -> 'ÁREA-1'."""
    code = re.sub(r"\s+", "-", (name or "").strip()).upper()
    return code[:max_len] or "SIN-NOMBRE"


def _free_code(base: str, taken, max_len: int = 50) -> str:
    """``base``, or ``base-2``, ``base-3``... when an unrelated row already holds it."""
    code, n = base, 1
    while taken(code):
        n += 1
        suffix = f"-{n}"
        code = base[:max_len - len(suffix)] + suffix
    return code


MSG_VALUE_TOO_LONG = "Fila {row}: {field} supera {limit} caracteres"
MSG_VALUE_REJECTED = "Valores de actividad rechazados por la base de datos"

# record attribute -> Activity column
_LENGTH_CHECKED = (
    ("activity_code", "code"),
    ("activity_name", "name"),
    ("unit", "unit"),
    ("area_name", None),
    ("system_name", None),
)


def _column_limit(attr: str, column: str | None) -> int | None:
    if column:
        return Activity.__table__.c[column].type.length
    model = Area if attr == "area_name" else System
    return model.__table__.c["name"].type.length


def _check_lengths(records) -> None:
    """Reject the batch before writing if any value exceeds its column."""
    for rec in records:
        for attr, column in _LENGTH_CHECKED:
            limit = _column_limit(attr, column)
            value = getattr(rec, attr) or ""
            if limit and len(value) > limit:
                raise StoreError(
                    MSG_VALUE_TOO_LONG.format(row=rec.row_num, field=attr, limit=limit), 422,
                )


class SqlProjectDirectory:
    def find_project_by_code(self, code: str) -> Project | None:
        return Project.query.filter_by(code=code).first()


class SqlActivityStore:
    """Reads snapshots and writes import batches through ``db.session``."""

    # ── Reads ─────────────────────────────────────────────────────────────

    def list_active_activities(self, project_id: int) -> list[ActivitySnapshot]:
        rows = (
            db.session.query(Activity, ActivityProgress, System, Area)
            .outerjoin(ActivityProgress, ActivityProgress.activity_id == Activity.id)
            .outerjoin(WorkPackage, Activity.work_package_id == WorkPackage.id)
            .outerjoin(Subsystem, WorkPackage.subsystem_id == Subsystem.id)
            .outerjoin(System, Subsystem.system_id == System.id)
            .outerjoin(Area, System.area_id == Area.id)
            .filter(Activity.project_id == project_id, Activity.is_active.is_(True))
            .order_by(Activity.id)
            .all()
        )
        return [
            ActivitySnapshot(
                id=activity.id,
                code=activity.code,
                name=activity.name,
                unit=activity.unit,
                boq_qty=activity.boq_qty or 0.0,
                weight=activity.weight or 0.0,
                progress_fraction=progress.pct if progress else 0.0,
                qty_accum=progress.qty_accum if progress else 0.0,
                system_code=system.code if system else None,
                system_name=system.name if system else None,
                area_name=area.name if area else None,
            )
            for activity, progress, system, area in rows
        ]

    def daily_quantities(self, project_id: int, since=None) -> dict:
        """Total captured quantity per entry date for the project."""
        query = (
            db.session.query(ProgressEntry.entry_date, func.sum(ProgressEntry.qty_today))
            .join(Activity, ProgressEntry.activity_id == Activity.id)
            .filter(Activity.project_id == project_id, Activity.is_active.is_(True))
        )
        if since is not None:
            query = query.filter(ProgressEntry.entry_date >= since)
        rows = query.group_by(ProgressEntry.entry_date).all()
        return {day: float(qty or 0.0) for day, qty in rows}

    # ── Writes ────────────────────────────────────────────────────────────

    def insert_activities(self, project: Project, records: Sequence) -> list[Activity]:
        """Create one Activity per record inside a single transaction."""
        _check_lengths(records)
        work_packages: dict[tuple[str, str], WorkPackage] = {}
        created = []
        try:
            for rec in records:
                key = (rec.area_name, rec.system_name)
                if key not in work_packages:
                    work_packages[key] = self._resolve_work_package(project, *key)
                activity = Activity(
                    project_id=project.id,
                    work_package_id=work_packages[key].id,
                    code=rec.activity_code,
                    name=rec.activity_name,
                    unit=rec.unit,
                    boq_qty=rec.boq_qty,
                    weight=rec.weight,
                    is_active=True,
                )
                db.session.add(activity)
                created.append(activity)
            db.session.flush()
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            logger.warning("Activity import for project %s hit a constraint: %s",
                           project.code, exc.orig)
            raise StoreError(
                f"Actividades duplicadas en el proyecto {project.code}", 409,
            ) from exc
        except DataError as exc:
            db.session.rollback()
            logger.warning("Activity import for project %s rejected by the database: %s",
                           project.code, exc.orig)
            raise StoreError(MSG_VALUE_REJECTED, 422) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Activity import for project %s failed", project.code)
            raise StoreError(f"Error al guardar actividades: {exc}") from exc
        return created

    def _resolve_work_package(self, project: Project, area_name: str, system_name: str) -> WorkPackage:
        area_name = area_name or code_from_name(area_name)
        system_name = system_name or code_from_name(system_name)

        area = Area.query.filter_by(project_id=project.id, name=area_name).first()
        if not area:
            code = _free_code(
                code_from_name(area_name),
                lambda c: Area.query.filter_by(project_id=project.id, code=c).first() is not None,
            )
            area = Area(project_id=project.id, code=code, name=area_name)
            db.session.add(area)
            db.session.flush()

        system = System.query.filter_by(area_id=area.id, name=system_name).first()
        if not system:
            code = _free_code(
                code_from_name(system_name),
                lambda c: System.query.filter_by(area_id=area.id, code=c).first() is not None,
            )
            system = System(area_id=area.id, code=code, name=system_name)
            db.session.add(system)
            db.session.flush()

        subsystem = Subsystem.query.filter_by(system_id=system.id, code=IMPORT_SUBSYSTEM_CODE).first()
        if not subsystem:
            subsystem = Subsystem(system_id=system.id, code=IMPORT_SUBSYSTEM_CODE,
                                  name=IMPORT_SUBSYSTEM_NAME)
            db.session.add(subsystem)
            db.session.flush()

        wp = WorkPackage.query.filter_by(subsystem_id=subsystem.id, code=IMPORT_WORK_PACKAGE_CODE).first()
        if not wp:
            wp = WorkPackage(subsystem_id=subsystem.id, code=IMPORT_WORK_PACKAGE_CODE,
                             name=IMPORT_WORK_PACKAGE_NAME)
            db.session.add(wp)
            db.session.flush()
        return wp
