"""
Analytics API — dashboard rollups over the seeded FP01 demo project.

Demo tree: 10 activities, 3 systems (SYS-101, SYS-200, SYS-300), no
activity complete.  Σ(progress·weight) = 1.3113…, so the count-normalised
overall progress is ≈ 13.11 %.
"""

import pytest


def _url(project, suffix):
    return f"/api/v1/projects/{project.id}{suffix}"


class TestOverallKpis:
    def test_demo_values(self, client, demo_project):
        res = client.get(_url(demo_project, "/analytics/kpis"))
        assert res.status_code == 200
        kpi = res.get_json()
        assert kpi["total_activities"] == 10
        assert kpi["completed_activities"] == 0
        assert kpi["planned_progress"] == 75
        assert kpi["actual_progress"] == pytest.approx(13.11, abs=0.01)
        assert kpi["efficiency"] == pytest.approx(13.1133 / 75 * 100, abs=0.01)

    def test_planned_override(self, client, demo_project):
        kpi = client.get(_url(demo_project, "/analytics/kpis?planned=50")).get_json()
        assert kpi["planned_progress"] == 50
        assert kpi["efficiency"] == pytest.approx(26.23, abs=0.01)

    def test_negative_planned_rejected(self, client, demo_project):
        res = client.get(_url(demo_project, "/analytics/kpis?planned=-1"))
        assert res.status_code == 400

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", "-inf", ""])
    def test_unparseable_or_non_finite_planned_rejected(self, client, demo_project, value):
        res = client.get(_url(demo_project, f"/analytics/kpis?planned={value}"))
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    @pytest.mark.parametrize("value", ["abc", "nan"])
    def test_bad_baseline_rejected(self, client, demo_project, value):
        res = client.get(_url(demo_project, f"/analytics/systems?baseline={value}"))
        assert res.status_code == 400

    def test_empty_project(self, client, project):
        kpi = client.get(_url(project, "/analytics/kpis")).get_json()
        assert kpi["total_activities"] == 0
        assert kpi["actual_progress"] == 0

    def test_unknown_project(self, client):
        assert client.get("/api/v1/projects/999/analytics/kpis").status_code == 404


class TestSystemAnalytics:
    def test_demo_breakdown(self, client, demo_project):
        systems = client.get(_url(demo_project, "/analytics/systems")).get_json()

        assert [s["system_code"] for s in systems] == ["SYS-101", "SYS-200", "SYS-300"]
        proceso, electrico, instrumentos = systems
        assert proceso["system_name"] == "Sistema Proceso"
        assert proceso["actual_progress"] == pytest.approx(59.71, abs=0.01)
        assert proceso["efficiency"] == pytest.approx(79.61, abs=0.01)
        assert proceso["total_activities"] == 4
        assert electrico["actual_progress"] == pytest.approx(66.33, abs=0.01)
        assert instrumentos["actual_progress"] == pytest.approx(68.07, abs=0.01)
        assert {s["trend"] for s in systems} == {"stable"}
        assert sum(s["total_activities"] for s in systems) == 10

    def test_baseline_override(self, client, demo_project):
        systems = client.get(_url(demo_project, "/analytics/systems?baseline=60")).get_json()
        assert all(s["planned_progress"] == 60 for s in systems)
        assert systems[0]["efficiency"] == pytest.approx(59.706 / 60 * 100, abs=0.01)


class TestProgressSeries:
    def test_default_weeks(self, client, demo_project):
        points = client.get(_url(demo_project, "/analytics/s-curve")).get_json()
        assert len(points) == 12
        assert points[-1]["planned"] == 100
        assert all(0 <= p["actual"] <= 13.12 for p in points)

    def test_custom_weeks(self, client, demo_project):
        points = client.get(_url(demo_project, "/analytics/s-curve?weeks=4")).get_json()
        assert [p["planned"] for p in points] == [25, 50, 75, 100]

    @pytest.mark.parametrize("weeks", ["0", "-2", "521", "abc", "4.5", ""])
    def test_weeks_out_of_range(self, client, demo_project, weeks):
        res = client.get(_url(demo_project, f"/analytics/s-curve?weeks={weeks}"))
        assert res.status_code == 400


class TestExecutiveDashboard:
    def test_combined_payload(self, client, demo_project):
        res = client.get(_url(demo_project, "/analytics"))
        assert res.status_code == 200
        data = res.get_json()
        assert set(data) == {"project", "overall_kpis", "system_analytics", "progress_series"}
        assert data["project"]["code"] == "FP01"
        assert data["overall_kpis"]["total_activities"] == 10
        assert len(data["system_analytics"]) == 3
        assert len(data["progress_series"]) == 12

    def test_response_carries_timing_headers(self, client, demo_project):
        res = client.get(_url(demo_project, "/analytics"))
        assert res.headers.get("X-Request-ID")
        assert "X-Request-Duration-Ms" in res.headers


class TestProjectMetrics:
    def test_demo_metrics(self, client, demo_project):
        data = client.get(_url(demo_project, "/metrics")).get_json()
        assert data["total_activities"] == 10
        assert data["completed_activities"] == 0
        assert data["total_progress"] == 1536
        assert data["completion_percentage"] == pytest.approx(65.31, abs=0.01)
        assert data["risk_level"] == "low"
        assert data["average_daily_progress"] == 0
        assert data["estimated_completion_date"] is None

    def test_captures_drive_forecast(self, client, demo_project):
        activity_id = client.get(_url(demo_project, "/activities")).get_json()[0]["id"]
        res = client.post(f"/api/v1/activities/{activity_id}/progress", json={"qty_today": 30})
        assert res.status_code == 201

        data = client.get(_url(demo_project, "/metrics")).get_json()
        assert data["total_progress"] == 1566
        assert data["average_daily_progress"] > 0
        assert data["estimated_completion_date"] is not None
