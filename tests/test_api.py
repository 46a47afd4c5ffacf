"""
Tests for the HTTP surface.

Run: pytest tests/test_api.py -v
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import app


client = TestClient(app)

_MODULE_ROWS = [
    {"Module": "Week 1", "# of Students Viewing": "18", "# of Students": "20", "Average View %": "0.75"},
    {"Module": "Week 2", "# of Students Viewing": "12", "# of Students": "20", "Average View %": None},
]


def test_meta_presets():
    r = client.get("/meta/presets")
    assert r.status_code == 200
    assert r.json() == {
        "charts": ["echo-modules", "gradebook-modules"],
        "tables": ["echo-modules", "echo-summary", "gradebook-modules", "gradebook-summary"],
    }


def test_chart_route():
    r = client.post("/charts/echo-modules", json={"rows": _MODULE_ROWS, "students_total": 20, "vega_lite": False})
    assert r.status_code == 200
    body = r.json()
    assert body["points"][0] == {"Module": "Week 1", "viewed": 18, "not_viewed": 2, "total": 20, "avg_view_pct": 75.0}
    assert body["points"][1]["avg_view_pct"] is None
    assert body["axes"]["count"]["domain"] == [0.0, 25.0]
    assert body["reference_line"] == 20.0
    assert body["vega_lite"] is None


def test_chart_route_threshold_option():
    rows = [{"Module": "W1", "# of Students Viewing": 3, "Average View %": "1.2"}]
    default = client.post("/charts/echo-modules", json={"rows": rows, "vega_lite": False}).json()
    strict = client.post(
        "/charts/echo-modules",
        json={"rows": rows, "vega_lite": False, "options": {"percent": {"threshold": 1.0}}},
    ).json()
    assert default["points"][0]["avg_view_pct"] == 120.0
    assert strict["points"][0]["avg_view_pct"] == 1.2


def test_table_route_keeps_preset_columns():
    r = client.post("/tables/echo-modules", json={"rows": _MODULE_ROWS})
    assert r.status_code == 200
    body = r.json()
    assert body["columns"] == ["Module", "Average View %", "# of Students Viewing", "# of Students"]
    assert body["rows"][0]["Average View %"] == "75.0%"
    assert body["caption"] == "Showing 2 rows"


def test_table_route_custom_columns():
    r = client.post("/tables/echo-summary", json={"rows": _MODULE_ROWS, "options": {"columns": ["Module", "# of Students"], "max_rows": 1}})
    body = r.json()
    assert body["columns"] == ["Module", "# of Students"]
    assert body["caption"] == "Showing 1 of 2 rows"


def test_unknown_preset_is_404():
    assert client.post("/charts/nope", json={"rows": []}).status_code == 404
    assert client.post("/tables/nope", json={"rows": []}).status_code == 404


def test_dashboard_route_empty_request():
    r = client.post("/dashboard", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["kpis"] == []
    assert body["charts"]["gradebook-modules"]["is_empty"] is True


def test_diagnostics_route():
    r = client.post("/diagnostics", json={"echo": {"modules": _MODULE_ROWS}})
    assert r.status_code == 200
    body = r.json()
    assert body["row_counts"]["echo-modules"] == 2
    assert body["row_counts"]["gradebook-summary"] == 0
