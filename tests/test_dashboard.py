"""
Tests for dashboard assembly, KPI cards, diagnostics and the memo store.

Run: pytest tests/test_dashboard.py -v
"""

from __future__ import annotations

from analytics.config import ChartConfig, normalize_chart_options, normalize_table_options
from analytics.dashboard import compute_dashboard
from analytics.diagnostics import compute_diagnostics
from analytics.kpis import compute_kpis
from analytics.memo import MemoStore, config_fingerprint
from analytics.presets import ECHO_MODULE_CHART, ECHO_MODULE_TABLE
from analytics.projection import project_chart


_PAYLOAD = {
    "echo": {
        "summary": [
            {"Media Title": "Intro", "Video Duration": "00:05:00", "Total Views": 40, "Average View %": "0.8"},
        ],
        "modules": [
            {"Module": "Week 1", "# of Students Viewing": "18", "# of Students": "20", "Average View %": "0.75", "Overall View %": "0.6"},
            {"Module": "Week 2", "# of Students Viewing": "16", "# of Students": "20", "Average View %": "0.65", "Overall View %": "0.5"},
        ],
    },
    "grades": {
        "summary": [{"Metric": "Average", "Quiz 1": "0.9"}],
        "module_metrics": [
            {"Module": "Week 1", "Avg % Turned In": "0.9", "Avg Average Excluding Zeros": "0.8", "n_assignments": 2},
        ],
    },
    "students_total": 20,
}


def _kpi(cards, key):
    return next((c for c in cards if c["key"] == key), None)


# -- KPIs --


def test_kpis_means_on_percent_scale():
    cards = compute_kpis(_PAYLOAD["echo"]["modules"], _PAYLOAD["grades"]["module_metrics"], 20)
    assert _kpi(cards, "modules")["value"] == 2
    assert _kpi(cards, "students_total")["display"] == "20"
    assert _kpi(cards, "avg_view_pct")["value"] == 70
    assert _kpi(cards, "avg_view_pct")["display"] == "70.0%"
    assert _kpi(cards, "avg_turned_in_pct")["display"] == "90.0%"


def test_kpis_mix_proportion_and_percent_cells():
    rows = [{"Module": "W1", "Average View %": "80%"}, {"Module": "W2", "Average View %": 0.6}]
    assert _kpi(compute_kpis(rows), "avg_view_pct")["value"] == 70


def test_kpis_omit_missing_metrics():
    cards = compute_kpis([{"Module": "W1"}], None, None)
    assert [c["key"] for c in cards] == ["modules"]
    assert compute_kpis() == []


# -- dashboard --


def test_dashboard_sections():
    out = compute_dashboard(_PAYLOAD)
    assert set(out) == {"students_total", "kpis", "charts", "tables", "diagnostics"}
    echo = out["charts"]["echo-modules"]
    assert echo["points"][0]["viewed"] == 18
    assert echo["points"][0]["not_viewed"] == 2
    assert echo["vega_lite"] is not None
    assert out["tables"]["gradebook-summary"]["columns"] == ["Metric", "Quiz 1"]
    assert out["tables"]["gradebook-summary"]["rows"][0]["Quiz 1"] == "90.0%"
    assert out["diagnostics"]["row_counts"]["echo-modules"] == 2


def test_dashboard_handles_empty_payload():
    out = compute_dashboard({})
    assert out["charts"]["echo-modules"]["is_empty"] is True
    assert out["charts"]["echo-modules"]["vega_lite"] is None
    assert out["tables"]["echo-summary"]["empty_message"] == "No data."
    assert out["kpis"] == []


def test_dashboard_options_skip_vega_lite():
    out = compute_dashboard(_PAYLOAD, {"vega_lite": False})
    assert out["charts"]["echo-modules"]["vega_lite"] is None


def test_dashboard_is_repeatable():
    assert compute_dashboard(_PAYLOAD, {"vega_lite": False}) == compute_dashboard(_PAYLOAD, {"vega_lite": False})


def test_dashboard_uses_memo_for_same_rows():
    memo = MemoStore()
    first = compute_dashboard(_PAYLOAD, memo=memo)
    misses = memo.misses
    second = compute_dashboard(_PAYLOAD, memo=memo)
    assert memo.hits >= 2
    assert memo.misses == misses
    assert first["charts"] == second["charts"]


def test_dashboard_memo_stable_with_absent_sections():
    memo = MemoStore()
    partial = {"echo": {"modules": _PAYLOAD["echo"]["modules"]}}
    compute_dashboard(partial, memo=memo)
    entries, misses = len(memo), memo.misses
    for _ in range(3):
        compute_dashboard(partial, memo=memo)
    assert len(memo) == entries
    assert memo.misses == misses


# -- memo store --


def test_memo_keyed_by_rows_identity_and_config():
    memo = MemoStore()
    rows = [{"a": 1}]
    calls = []

    def compute():
        calls.append(1)
        return {"n": len(calls)}

    assert memo.get_or_compute("t", rows, (ECHO_MODULE_TABLE,), compute) == {"n": 1}
    assert memo.get_or_compute("t", rows, (ECHO_MODULE_TABLE,), compute) == {"n": 1}
    # equal content, different collection
    assert memo.get_or_compute("t", [{"a": 1}], (ECHO_MODULE_TABLE,), compute) == {"n": 2}
    # different configuration
    other = normalize_table_options({"max_rows": 5}, base=ECHO_MODULE_TABLE)
    assert memo.get_or_compute("t", rows, (other,), compute) == {"n": 3}


def test_memo_invalidate():
    memo = MemoStore()
    rows = [{"a": 1}]
    memo.get_or_compute("t", rows, (), lambda: "x")
    memo.get_or_compute("u", [{"b": 2}], (), lambda: "y")
    memo.invalidate(rows)
    assert len(memo) == 1
    memo.invalidate()
    assert len(memo) == 0


def test_config_fingerprint_stable_and_sensitive():
    assert config_fingerprint(ECHO_MODULE_CHART) == config_fingerprint(ECHO_MODULE_CHART)
    changed = normalize_chart_options({"percent": {"threshold": 1.0}}, base=ECHO_MODULE_CHART)
    assert config_fingerprint(changed) != config_fingerprint(ECHO_MODULE_CHART)


# -- options & diagnostics --


def test_normalize_chart_options_falls_back_on_bad_values():
    config = normalize_chart_options(
        {"percent": {"threshold": "bogus"}, "match": "fuzzy", "eligibility": {"min_fraction": 7}, "candidates": {"nope": ["x"]}},
        base=ECHO_MODULE_CHART,
    )
    assert config.percent.threshold == 1.5
    assert config.match == "exact"
    assert config.eligibility.min_fraction == 1.0
    assert config.candidates == ECHO_MODULE_CHART.candidates


def test_normalize_chart_options_candidate_override():
    config = normalize_chart_options({"candidates": {"viewer_count": ["Viewers"]}}, base=ECHO_MODULE_CHART)
    rows = [{"Module": "W1", "Viewers": "4", "# of Students": "5"}]
    point = project_chart(rows, config).points[0]
    assert (point["viewed"], point["not_viewed"]) == (4, 1)


def test_normalize_table_options_clamps_rows():
    assert normalize_table_options({"max_rows": 10_000}).max_rows == 1000
    assert normalize_table_options({"max_rows": "x"}, base=ECHO_MODULE_TABLE).max_rows == 200


def test_diagnostics_reports_resolution():
    report = compute_diagnostics({"echo-modules": _PAYLOAD["echo"]["modules"]}, {"echo-modules": ChartConfig()})
    resolved = {r["field"]: r for r in report["datasets"]["echo-modules"]["resolved"]}
    assert resolved["viewer_count"]["column"] == "# of Students Viewing"
    assert resolved["viewer_count"]["parse_ratio"] == 1.0
    assert "turned_in_percent" in report["datasets"]["echo-modules"]["unresolved"]
