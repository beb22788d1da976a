"""
SQL activity store — snapshot reads and transactional import writes.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import DataError

from fieldprogress.models import db
from fieldprogress.models.activity import Activity, ActivityProgress, ProgressEntry
from fieldprogress.models.hierarchy import Area, Subsystem, System, WorkPackage
from fieldprogress.services.activity_store import (
    IMPORT_WORK_PACKAGE_CODE,
    SqlActivityStore,
    SqlProjectDirectory,
    StoreError,
    code_from_name,
)
from fieldprogress.services.import_pipeline import parse_csv

HEADER = "project_code,area_name,system_name,activity_code,activity_name,unit,boq_qty,weight"


def _valid(*rows):
    return parse_csv("\n".join([HEADER, *rows]) + "\n")


@pytest.mark.parametrize("name,expected", [
    ("Área 1", "ÁREA-1"),
    ("  Sistema   Proceso ", "SISTEMA-PROCESO"),
    ("", "SIN-NOMBRE"),
    (None, "SIN-NOMBRE"),
    ("x" * 80, "X" * 50),
])
def test_code_from_name(name, expected):
    assert code_from_name(name) == expected


class TestProjectDirectory:
    def test_find_by_code(self, project):
        assert SqlProjectDirectory().find_project_by_code("FP01").id == project.id

    def test_unknown_code(self, project):
        assert SqlProjectDirectory().find_project_by_code("NOPE") is None


class TestSnapshot:
    def test_demo_snapshot_joins_hierarchy(self, demo_project):
        snapshot = SqlActivityStore().list_active_activities(demo_project.id)

        assert len(snapshot) == 10
        first = snapshot[0]
        assert first.code == "A-0001"
        assert first.system_code == "SYS-101"
        assert first.system_name == "Sistema Proceso"
        assert first.area_name == "Área 1"
        assert first.progress_fraction == pytest.approx(0.65)
        assert first.qty_accum == 78
        assert first.boq_qty == 120

    def test_inactive_activities_are_excluded(self, demo_project):
        Activity.query.filter_by(code="A-0001").first().is_active = False
        db.session.commit()
        codes = [a.code for a in SqlActivityStore().list_active_activities(demo_project.id)]
        assert "A-0001" not in codes
        assert len(codes) == 9

    def test_activity_without_progress_or_hierarchy(self, project):
        db.session.add(Activity(project_id=project.id, code="LOOSE", name="Sin sistema",
                                unit="u", boq_qty=10, weight=0.5))
        db.session.commit()

        [snap] = SqlActivityStore().list_active_activities(project.id)
        assert snap.progress_fraction == 0.0
        assert snap.qty_accum == 0.0
        assert snap.system_code is None
        assert snap.area_name is None

    def test_other_projects_are_isolated(self, demo_project):
        from fieldprogress.models.project import Project
        other = Project(code="FP02", name="Otro")
        db.session.add(other)
        db.session.commit()
        assert SqlActivityStore().list_active_activities(other.id) == []

    def test_daily_quantities_grouped_by_date(self, demo_project):
        act = Activity.query.filter_by(code="A-0001").first()
        today = date(2026, 5, 4)
        db.session.add_all([
            ProgressEntry(activity_id=act.id, entry_date=today, qty_today=3),
            ProgressEntry(activity_id=act.id, entry_date=today, qty_today=2),
            ProgressEntry(activity_id=act.id, entry_date=today - timedelta(days=45), qty_today=9),
        ])
        db.session.commit()

        store = SqlActivityStore()
        assert store.daily_quantities(demo_project.id) == {
            today: 5.0, today - timedelta(days=45): 9.0,
        }
        assert store.daily_quantities(demo_project.id, since=today - timedelta(days=30)) == {today: 5.0}


class TestInsertActivities:
    def test_creates_hierarchy_and_activities(self, project):
        records = _valid(
            "FP01,Área 1,Sistema Proceso,A-1,Soldadura,u,10,0.5",
            "FP01,Área 1,Sistema Proceso,A-2,Soportes,m,20,0.25",
            "FP01,Área 2,Sistema Eléctrico,A-3,Bandeja,m,30,0.25",
        )

        created = SqlActivityStore().insert_activities(project, records)

        assert [a.code for a in created] == ["A-1", "A-2", "A-3"]
        assert Area.query.filter_by(project_id=project.id).count() == 2
        assert System.query.count() == 2
        assert WorkPackage.query.filter_by(code=IMPORT_WORK_PACKAGE_CODE).count() == 2
        assert created[0].work_package_id == created[1].work_package_id
        assert created[0].work_package_id != created[2].work_package_id

        snapshot = SqlActivityStore().list_active_activities(project.id)
        assert [s.system_name for s in snapshot] == [
            "Sistema Proceso", "Sistema Proceso", "Sistema Eléctrico",
        ]
        assert snapshot[0].area_name == "Área 1"

    def test_reuses_existing_area_and_system(self, project):
        store = SqlActivityStore()
        store.insert_activities(project, _valid("FP01,Área 1,Sistema Proceso,A-1,N,u,1,1"))
        store.insert_activities(project, _valid("FP01,Área 1,Sistema Proceso,A-2,N,u,1,1"))

        assert Area.query.count() == 1
        assert System.query.count() == 1
        assert WorkPackage.query.count() == 1
        assert Activity.query.filter_by(project_id=project.id).count() == 2

    def test_matches_seeded_hierarchy_by_name(self, demo_project):
        created = SqlActivityStore().insert_activities(
            demo_project, _valid("FP01,Área 1,Sistema Proceso,A-0999,Nueva,u,10,0.1"),
        )

        assert Area.query.filter_by(project_id=demo_project.id).count() == 2
        assert System.query.filter_by(name="Sistema Proceso").count() == 1
        assert System.query.count() == 3
        system = created[0].work_package.subsystem.system
        assert (system.code, system.area.code) == ("SYS-101", "AR1")

    def test_derived_code_held_by_other_name(self, project):
        db.session.add(Area(project_id=project.id, code="ÁREA-X", name="Zona Norte"))
        db.session.commit()

        created = SqlActivityStore().insert_activities(project, _valid("FP01,Área X,S,A-1,N,u,1,1"))

        area = created[0].work_package.subsystem.system.area
        assert (area.code, area.name) == ("ÁREA-X-2", "Área X")
        assert Area.query.count() == 2

    def test_blank_names_share_one_branch(self, project):
        store = SqlActivityStore()
        store.insert_activities(project, _valid("FP01,,,A-1,N,u,1,1"))
        store.insert_activities(project, _valid("FP01,,,A-2,N,u,1,1"))

        assert Area.query.count() == 1
        assert System.query.count() == 1
        assert Subsystem.query.count() == 1

    def test_duplicate_code_rolls_back_whole_batch(self, project):
        store = SqlActivityStore()
        store.insert_activities(project, _valid("FP01,Área 1,Sys,A-1,N,u,1,1"))

        with pytest.raises(StoreError) as exc:
            store.insert_activities(project, _valid(
                "FP01,Área 9,Sys 9,A-9,N,u,1,1",
                "FP01,Área 1,Sys,A-1,N,u,1,1",
            ))

        assert exc.value.status_code == 409
        assert "FP01" in exc.value.message
        assert Activity.query.count() == 1
        assert Area.query.count() == 1

    def test_duplicate_within_batch(self, project):
        with pytest.raises(StoreError):
            SqlActivityStore().insert_activities(project, _valid(
                "FP01,A,S,A-1,N,u,1,1",
                "FP01,A,S,A-1,N,u,1,1",
            ))
        assert Activity.query.count() == 0

    @pytest.mark.parametrize("row", [
        "FP01,A,S," + "C" * 51 + ",N,u,1,1",
        "FP01,A,S,A-1," + "n" * 256 + ",u,1,1",
        "FP01,A,S,A-1,N," + "u" * 21 + ",1,1",
        "FP01," + "a" * 201 + ",S,A-1,N,u,1,1",
    ])
    def test_overlong_values_rejected_before_writing(self, project, row):
        with pytest.raises(StoreError) as exc:
            SqlActivityStore().insert_activities(project, _valid(row))

        assert exc.value.status_code == 422
        assert exc.value.message.startswith("Fila 2:")
        assert Activity.query.count() == 0
        assert Area.query.count() == 0

    def test_database_value_rejection_is_unprocessable(self, project, monkeypatch):
        def reject():
            raise DataError("INSERT INTO activities", {}, Exception("value too long"))

        monkeypatch.setattr(db.session, "commit", reject)
        with pytest.raises(StoreError) as exc:
            SqlActivityStore().insert_activities(project, _valid("FP01,A,S,A-1,N,u,1,1"))

        assert exc.value.status_code == 422
        assert Activity.query.count() == 0

    def test_imported_activities_have_no_progress(self, project):
        SqlActivityStore().insert_activities(project, _valid("FP01,A,S,A-1,N,u,1,1"))
        assert ActivityProgress.query.count() == 0
