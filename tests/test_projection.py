"""
Tests for chart projections and the Vega-Lite combo chart.

Run: pytest tests/test_projection.py -v
"""

from __future__ import annotations

import copy

from analytics.charts import build_combo_chart, combo_chart_spec
from analytics.normalize import normalize_rows
from analytics.presets import ECHO_MODULE_CHART, GRADEBOOK_MODULE_CHART
from analytics.projection import count_axis_domain, project_chart
from analytics.fields import DEFAULT_CANDIDATES, CanonicalField


# -- Fixture data --

_ECHO_MODULES = [
    {"Module": "Week 1", "# of Students Viewing": "18", "# of Students": "20", "Average View %": "0.75", "Overall View %": "0.6"},
    {"Module": "Week 2", "# of Students Viewing": "15", "# of Students": "20", "Average View %": "", "Overall View %": "0.55"},
    {"Module": "Week 3", "# of Students Viewing": "25", "# of Students": "20", "Average View %": "0.8", "Overall View %": "0.7"},
]

_GRADE_MODULES = [
    {"Module": "Week 1", "Avg % Turned In": "0.9", "Avg Average Excluding Zeros": "0.85", "n_assignments": 2},
    {"Module": "Week 2", "Avg % Turned In": "0.8", "Avg Average Excluding Zeros": "0.78", "n_assignments": 3},
]


def test_end_to_end_single_module():
    rows = [{"Module": "Week 1", "# of Students Viewing": "18", "# of Students": "20", "Average View %": "0.75"}]
    projection = project_chart(rows, ECHO_MODULE_CHART, total_hint=20)

    assert len(projection.points) == 1
    point = projection.points[0]
    assert point["Module"] == "Week 1"
    assert point["viewed"] == 18
    assert point["not_viewed"] == 2
    assert point["avg_view_pct"] == 75
    assert projection.show_stacked is True
    assert projection.reference_line == 20.0


def test_no_percent_columns_means_no_lines_but_bars_remain():
    rows = [{"Module": "Week 1", "# of Students Viewing": 10, "# of Students": 12}]
    projection = project_chart(rows, ECHO_MODULE_CHART)

    assert projection.series_keys("percent") == []
    assert projection.series_keys("count") == ["viewed", "not_viewed"]
    assert projection.points[0] == {"Module": "Week 1", "viewed": 10, "not_viewed": 2, "total": 12}
    assert projection.fallback_message is None


def test_preserves_input_order():
    rows = [{"Module": m, "# of Students Viewing": 1} for m in ["Week 10", "Intro", "Week 2"]]
    projection = project_chart(rows, ECHO_MODULE_CHART)
    assert projection.categories == ("Week 10", "Intro", "Week 2")


def test_hint_clamps_over_reported_rows():
    projection = project_chart(_ECHO_MODULES, ECHO_MODULE_CHART, total_hint=20)
    week3 = projection.points[2]
    assert (week3["viewed"], week3["not_viewed"], week3["total"]) == (20, 0, 20)


def test_null_points_kept_inside_rendered_line():
    projection = project_chart(_ECHO_MODULES, ECHO_MODULE_CHART)
    assert projection.points[1]["avg_view_pct"] is None
    avg = next(s for s in projection.series if s.key == "avg_view_pct")
    assert avg.connect_nulls is True
    assert avg.axis == "percent"


def test_line_with_no_values_is_omitted():
    rows = [{"Module": "W1", "# of Students Viewing": 3, "Average View %": "", "Overall View %": "0.5"}]
    projection = project_chart(rows, ECHO_MODULE_CHART)
    assert projection.series_keys("percent") == ["overall_view_pct"]
    assert "avg_view_pct" not in projection.points[0]


def test_missing_viewer_data_suppresses_bars_with_message():
    rows = [{"Module": "W1", "Average View %": "0.5"}, {"Module": "W2", "Average View %": "0.6"}]
    projection = project_chart(rows, ECHO_MODULE_CHART, total_hint=30)

    assert projection.show_stacked is False
    assert projection.series_keys("count") == []
    assert projection.fallback_message == ECHO_MODULE_CHART.fallback_message
    assert projection.reference_line is None
    assert projection.count_domain is None
    assert "viewed" not in projection.points[0]


def test_unique_viewers_column_used_when_students_viewing_absent():
    rows = [{"Module": "W1", "# of Unique Viewers": "7", "# of Students": "9"}]
    projection = project_chart(rows, ECHO_MODULE_CHART)
    assert projection.points[0]["viewed"] == 7
    assert projection.points[0]["not_viewed"] == 2


def test_count_axis_headroom():
    assert count_axis_domain(20) == (0.0, 25.0)
    assert count_axis_domain(100) == (0.0, 112.0)
    assert count_axis_domain(0) is None
    assert count_axis_domain(None) is None


def test_percent_domain_fixed():
    projection = project_chart(_ECHO_MODULES, ECHO_MODULE_CHART)
    assert projection.to_dict()["axes"]["percent"]["domain"] == [0.0, 100.0]


def test_empty_rows_give_empty_state():
    projection = project_chart([], ECHO_MODULE_CHART)
    assert projection.is_empty
    assert projection.series == ()
    assert projection.fallback_message == "No data."
    assert build_combo_chart(projection) is None


def test_gradebook_chart_has_lines_only():
    projection = project_chart(_GRADE_MODULES, GRADEBOOK_MODULE_CHART)
    assert projection.show_stacked is False
    assert projection.fallback_message is None
    assert projection.series_keys() == ["avg_excluding_zeros", "avg_turned_in_pct"]
    assert projection.points[0]["avg_turned_in_pct"] == 90


def test_projection_does_not_mutate_rows_and_is_repeatable():
    rows = copy.deepcopy(_ECHO_MODULES)
    first = project_chart(rows, ECHO_MODULE_CHART, total_hint=20).to_dict()
    second = project_chart(rows, ECHO_MODULE_CHART, total_hint=20).to_dict()
    assert rows == _ECHO_MODULES
    assert first == second


def test_normalized_records_are_read_only():
    dataset = normalize_rows(_ECHO_MODULES, DEFAULT_CANDIDATES, [CanonicalField.AVERAGE_VIEW_PERCENT])
    record = dataset.records[0]
    assert record.get(CanonicalField.AVERAGE_VIEW_PERCENT) == 75
    try:
        record.values[CanonicalField.AVERAGE_VIEW_PERCENT] = 0  # type: ignore[index]
    except TypeError:
        pass
    else:
        raise AssertionError("record values should be immutable")


def test_combo_chart_spec_layers_bars_and_lines():
    projection = project_chart(_ECHO_MODULES, ECHO_MODULE_CHART, total_hint=20)
    spec = combo_chart_spec(projection)
    assert spec is not None
    assert "layer" in spec
    assert spec["title"] == "Echo Data"
    assert spec["resolve"]["scale"]["y"] == "independent"


def test_combo_chart_spec_lines_only():
    projection = project_chart(_GRADE_MODULES, GRADEBOOK_MODULE_CHART)
    spec = combo_chart_spec(projection)
    assert spec["mark"]["type"] == "line"
    assert spec["encoding"]["y"]["scale"]["domain"] == [0.0, 100.0]
