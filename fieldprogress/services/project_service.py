"""Project lookup / creation and the demo hierarchy seed."""

import logging

from fieldprogress.core.exceptions import ConflictError, NotFoundError, ValidationError
from fieldprogress.models import db
from fieldprogress.models.activity import Activity, ActivityProgress
from fieldprogress.models.hierarchy import Area, Subsystem, System, WorkPackage
from fieldprogress.models.project import Project
from fieldprogress.services.progress_service import completion_fraction

logger = logging.getLogger(__name__)

VALID_STATUSES = {"active", "completed", "on-hold"}


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if not project:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def list_projects() -> list[Project]:
    return Project.query.order_by(Project.code).all()


def create_project(data: dict) -> Project:
    code = (data.get("code") or "").strip()
    name = (data.get("name") or "").strip()
    status = (data.get("status") or "active").strip()

    errors = {}
    if not code:
        errors["code"] = "code is required"
    if not name:
        errors["name"] = "name is required"
    if status not in VALID_STATUSES:
        errors["status"] = f"status must be one of {sorted(VALID_STATUSES)}"
    if errors:
        raise ValidationError("Invalid project data", details=errors)

    if Project.query.filter_by(code=code).first():
        raise ConflictError(resource="Project", field="code", value=code)

    project = Project(code=code, name=name, status=status)
    db.session.add(project)
    db.session.commit()
    logger.info("Project created: %s", code, extra={"project_id": project.id})
    return project


# ═════════════════════════════════════════════════════════════════════════════
# Demo seed (flask seed-demo)
# ═════════════════════════════════════════════════════════════════════════════

_DEMO_TREE = [
    # area, system, subsystem, work package, contractor
    (("AR1", "Área 1"), ("SYS-101", "Sistema Proceso"), ("SUB-101P", "Sub HCN"),
     [("WP-001", "Piping Rack", "PECOM")]),
    (("AR1", "Área 1"), ("SYS-200", "Sistema Eléctrico"), ("SUB-101EL", "Sub Eléctrico"),
     [("WP-010", "Bandejas", "HYTECH"), ("WP-012", "Cableado", "HYTECH")]),
    (("AR2", "Área 2"), ("SYS-300", "Sistema Instrumentos"), ("SUB-101I", "Sub Instrumentos"),
     [("WP-020", "Instrumentación", "TM&C")]),
]

# work package, code, name, unit, boq, executed, weight
_DEMO_ACTIVITIES = [
    ("WP-001", "A-0001", 'Soldadura spool 2"', "u", 120, 78, 0.20),
    ("WP-001", "A-0002", "Soportes tubería", "m", 300, 195, 0.15),
    ("WP-010", "A-0101", "Tendido bandeja principal", "m", 200, 140, 0.25),
    ("WP-012", "A-0120", "Tendido cable 6mm2", "m", 1000, 650, 0.25),
    ("WP-020", "A-0205", "Instalación transmisores", "u", 40, 28, 0.15),
    ("WP-001", "A-0003", 'Soldadura líneas de 6" Schedule 40', "jnt", 120, 78, 0.20),
    ("WP-020", "A-0206", "Instalación transmisores de presión", "u", 45, 28, 0.15),
    ("WP-001", "A-0004", "Instalación separador trifásico", "u", 2, 1, 0.30),
    ("WP-012", "A-0121", "Tendido cableado eléctrico 480V", "m", 500, 320, 0.25),
    ("WP-020", "A-0207", "Instalación válvulas de control", "u", 25, 18, 0.15),
]


def seed_demo_project(code: str = "FP01", name: str = "FieldProgress Demo") -> Project:
    """Create the demo project tree; returns the existing project if present."""
    existing = Project.query.filter_by(code=code).first()
    if existing:
        return existing

    project = Project(code=code, name=name, status="active")
    db.session.add(project)
    db.session.flush()

    areas: dict[str, Area] = {}
    wps: dict[str, WorkPackage] = {}
    for (area_code, area_name), (sys_code, sys_name), (sub_code, sub_name), packages in _DEMO_TREE:
        area = areas.get(area_code)
        if area is None:
            area = areas[area_code] = Area(project_id=project.id, code=area_code, name=area_name)
            db.session.add(area)
            db.session.flush()
        system = System(area_id=area.id, code=sys_code, name=sys_name)
        db.session.add(system)
        db.session.flush()
        subsystem = Subsystem(system_id=system.id, code=sub_code, name=sub_name)
        db.session.add(subsystem)
        db.session.flush()
        for wp_code, wp_name, contractor in packages:
            wps[wp_code] = WorkPackage(subsystem_id=subsystem.id, code=wp_code,
                                       name=wp_name, contractor=contractor)
            db.session.add(wps[wp_code])
    db.session.flush()

    for wp_code, act_code, act_name, unit, boq, executed, weight in _DEMO_ACTIVITIES:
        activity = Activity(project_id=project.id, work_package_id=wps[wp_code].id,
                            code=act_code, name=act_name, unit=unit,
                            boq_qty=boq, weight=weight)
        db.session.add(activity)
        db.session.flush()
        db.session.add(ActivityProgress(
            activity_id=activity.id, qty_accum=executed,
            pct=completion_fraction(executed, boq),
        ))

    db.session.commit()
    logger.info("Demo project %s seeded with %d activities", code, len(_DEMO_ACTIVITIES))
    return project
