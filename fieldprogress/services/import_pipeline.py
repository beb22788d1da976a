"""
Bulk Activity Import Pipeline.

CSV-based activity plan import with per-row classification and a
commit step that only ever admits valid rows.

Flow:
  - parse_csv(): raw text -> ImportedActivityRecord list (header consumed,
    columns read by position)
  - classify_record(): valid / warning / error, first matching rule wins
  - summarize(): ImportResult tallies for review before commit
  - commit(): valid rows only, one target project, storage delegated to
    an ActivityStore collaborator

Parsing and classification are pure; re-running them on the same text
always yields the same result.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Protocol, Sequence

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Messages & errors
# ═══════════════════════════════════════════════════════════════

MSG_CODE_NAME_REQUIRED = "Código y nombre de actividad son requeridos"
MSG_BOQ_NOT_POSITIVE = "Cantidad BOQ debe ser mayor a 0"
MSG_WEIGHT_NOT_POSITIVE = "Peso debe ser mayor a 0"
MSG_INCOMPLETE_ROW = "Fila incompleta"
MSG_NO_VALID_ROWS = "No hay actividades válidas para importar"
MSG_PROJECT_NOT_FOUND = "Proyecto con código {code} no encontrado"
MSG_MIXED_PROJECTS = "El lote contiene actividades de varios proyectos: {codes}"


class ActivityImportError(Exception):
    """Commit-time import failure."""
    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NoValidRowsError(ActivityImportError):
    def __init__(self):
        super().__init__(MSG_NO_VALID_ROWS, 422)


class ProjectNotFoundError(ActivityImportError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(MSG_PROJECT_NOT_FOUND.format(code=code), 404)


class MixedProjectBatchError(ActivityImportError):
    def __init__(self, codes: Sequence[str]):
        self.codes = list(codes)
        super().__init__(MSG_MIXED_PROJECTS.format(codes=", ".join(self.codes)), 422)


# ═══════════════════════════════════════════════════════════════
# Record types
# ═══════════════════════════════════════════════════════════════

class ImportStatus(str, Enum):
    VALID = "valid"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ImportedActivityRecord:
    """One parsed import row plus its classification."""
    row_num: int
    project_code: str = ""
    area_name: str = ""
    system_name: str = ""
    activity_code: str = ""
    activity_name: str = ""
    unit: str = ""
    boq_qty: float = 0.0
    weight: float = 0.0
    status: ImportStatus = ImportStatus.VALID
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "row_num": self.row_num,
            "project_code": self.project_code,
            "area_name": self.area_name,
            "system_name": self.system_name,
            "activity_code": self.activity_code,
            "activity_name": self.activity_name,
            "unit": self.unit,
            "boq_qty": self.boq_qty,
            "weight": self.weight,
            "status": self.status.value,
            "error_message": self.message,
        }


@dataclass
class ImportResult:
    total_rows: int = 0
    valid_rows: int = 0
    warning_rows: int = 0
    error_rows: int = 0
    activities: list[ImportedActivityRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "warning_rows": self.warning_rows,
            "error_rows": self.error_rows,
            "activities": [a.to_dict() for a in self.activities],
        }


class ProjectDirectory(Protocol):
    def find_project_by_code(self, code: str): ...


class ActivityStore(Protocol):
    def insert_activities(self, project, records: Sequence[ImportedActivityRecord]) -> list: ...


# ═══════════════════════════════════════════════════════════════
# CSV Template
# ═══════════════════════════════════════════════════════════════

CSV_TEMPLATE_HEADER = [
    "project_code", "area_name", "system_name", "activity_code",
    "activity_name", "unit", "boq_qty", "weight",
]
CSV_TEMPLATE_EXAMPLE = [
    ["FP01", "Área 1", "Sistema Proceso", "A-0001", 'Soldadura spool 2"', "u", "120", "0.20"],
    ["FP01", "Área 1", "Sistema Eléctrico", "A-0101", "Tendido bandeja principal", "m", "200", "0.25"],
    ["FP01", "Área 2", "Sistema Instrumentos", "A-0205", "Instalación transmisores", "u", "40", "0.15"],
]


def generate_csv_template() -> str:
    """Plain comma-joined template; the example names need no quoting."""
    lines = [",".join(CSV_TEMPLATE_HEADER)]
    lines.extend(",".join(row) for row in CSV_TEMPLATE_EXAMPLE)
    return "\n".join(lines) + "\n"


# ═══════════════════════════════════════════════════════════════
# Parsing & Classification
# ═══════════════════════════════════════════════════════════════

# Leading numeric prefix; "12abc" reads as 12, "abc" as nothing
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _to_number(raw: str) -> float:
    match = _NUMBER_PREFIX.match((raw or "").lstrip())
    if not match:
        return 0.0
    value = float(match.group())
    return value if math.isfinite(value) else 0.0


def classify_record(record: ImportedActivityRecord) -> ImportedActivityRecord:
    """Set status/message in place; rules are checked in precedence order."""
    if not record.activity_code.strip() or not record.activity_name.strip():
        record.status, record.message = ImportStatus.ERROR, MSG_CODE_NAME_REQUIRED
    elif record.boq_qty <= 0:
        record.status, record.message = ImportStatus.WARNING, MSG_BOQ_NOT_POSITIVE
    elif record.weight <= 0:
        record.status, record.message = ImportStatus.WARNING, MSG_WEIGHT_NOT_POSITIVE
    else:
        record.status, record.message = ImportStatus.VALID, None
    return record


def parse_csv(
    file_content: str | bytes,
    *,
    report_short_rows: bool = False,
) -> list[ImportedActivityRecord]:
    """
    Parse and classify CSV content.

    The first non-blank line is the header and is not validated; columns
    are read by position.  Rows with fewer fields than the header are
    skipped, or emitted as ``error`` records when ``report_short_rows``.
    """
    if isinstance(file_content, bytes):
        file_content = file_content.decode("utf-8-sig")  # Handle BOM
    elif file_content.startswith("\ufeff"):
        file_content = file_content[1:]

    reader = csv.reader(io.StringIO(file_content))
    header = None
    records = []
    for row in reader:
        values = [v.strip() for v in row]
        if not any(values):
            continue
        if header is None:
            header = values
            continue

        row_num = reader.line_num
        if len(values) < len(header):
            if report_short_rows:
                records.append(ImportedActivityRecord(
                    row_num=row_num,
                    project_code=values[0] if values else "",
                    status=ImportStatus.ERROR,
                    message=MSG_INCOMPLETE_ROW,
                ))
            continue

        values += [""] * (len(CSV_TEMPLATE_HEADER) - len(values))
        record = ImportedActivityRecord(
            row_num=row_num,
            project_code=values[0],
            area_name=values[1],
            system_name=values[2],
            activity_code=values[3],
            activity_name=values[4],
            unit=values[5],
            boq_qty=_to_number(values[6]),
            weight=_to_number(values[7]),
        )
        records.append(classify_record(record))

    return records


def summarize(records: Iterable[ImportedActivityRecord]) -> ImportResult:
    records = list(records)
    return ImportResult(
        total_rows=len(records),
        valid_rows=sum(1 for r in records if r.status == ImportStatus.VALID),
        warning_rows=sum(1 for r in records if r.status == ImportStatus.WARNING),
        error_rows=sum(1 for r in records if r.status == ImportStatus.ERROR),
        activities=records,
    )


def validate_csv(file_content: str | bytes, *, report_short_rows: bool = False) -> ImportResult:
    """Dry run: parse + classify + tally."""
    return summarize(parse_csv(file_content, report_short_rows=report_short_rows))


# ═══════════════════════════════════════════════════════════════
# Commit
# ═══════════════════════════════════════════════════════════════

def commit(
    records: Iterable[ImportedActivityRecord],
    directory: ProjectDirectory,
    store: ActivityStore,
    *,
    reject_mixed_projects: bool = False,
) -> list:
    """
    Persist the valid subset of ``records``.

    The target project is resolved once, from the first valid row.  When
    valid rows name more than one project code everything lands in the
    first row's project, or the batch is rejected when
    ``reject_mixed_projects``.  Store failures propagate unchanged.
    """
    valid = [r for r in records if r.status == ImportStatus.VALID]
    if not valid:
        raise NoValidRowsError()

    project_code = valid[0].project_code
    codes = list(dict.fromkeys(r.project_code for r in valid))
    if len(codes) > 1 and reject_mixed_projects:
        logger.warning("Import rejected: batch spans projects %s", codes)
        raise MixedProjectBatchError(codes)

    project = directory.find_project_by_code(project_code)
    if project is None:
        logger.warning("Import rejected: project %s not found", project_code,
                       extra={"project_code": project_code})
        raise ProjectNotFoundError(project_code)

    created = store.insert_activities(project, valid)
    logger.info("Imported %d activities into project %s", len(created), project_code,
                extra={"project_code": project_code, "row_count": len(created)})
    return created
