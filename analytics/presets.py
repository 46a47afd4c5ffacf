from __future__ import annotations

from dataclasses import replace
from typing import Dict, Optional, Sequence

from analytics.config import ChartConfig, TableConfig, TrendSeries
from analytics.fields import CanonicalField
from analytics.schema import RawRow, collect_keys


# ---------------- Charts ----------------
ECHO_MODULE_CHART = ChartConfig(
    title="Echo Data",
    trend_series=(
        TrendSeries(key="avg_view_pct", label="Avg View %", field=CanonicalField.AVERAGE_VIEW_PERCENT),
        TrendSeries(key="overall_view_pct", label="Avg Overall View %", field=CanonicalField.OVERALL_VIEW_PERCENT),
    ),
)

GRADEBOOK_MODULE_CHART = ChartConfig(
    title="Gradebook Performance",
    viewer_field=None,
    total_field=None,
    stacked=False,
    trend_series=(
        TrendSeries(key="avg_excluding_zeros", label="Avg Average Excluding Zeros", field=CanonicalField.EXCLUDING_ZEROES_AVERAGE),
        TrendSeries(key="avg_turned_in_pct", label="Avg % Turned In", field=CanonicalField.TURNED_IN_PERCENT),
    ),
)

CHART_PRESETS: Dict[str, ChartConfig] = {
    "echo-modules": ECHO_MODULE_CHART,
    "gradebook-modules": GRADEBOOK_MODULE_CHART,
}


# ---------------- Tables ----------------
ECHO_SUMMARY_TABLE = TableConfig(
    title="Echo Summary",
    columns=(
        "Media Title",
        "Video Duration",
        "# of Unique Views",
        "Total Views",
        "Total Watch Time (Min)",
        "Average View %",
        "% of Students Viewing",
        "% of Video Viewed Overall",
    ),
    percent_columns=("Average View %", "% of Students Viewing", "% of Video Viewed Overall"),
    max_rows=200,
)

ECHO_MODULE_TABLE = TableConfig(
    title="Echo Module Table",
    columns=("Module", "Average View %", "# of Students Viewing", "Overall View %", "# of Students"),
    percent_columns=("Average View %", "Overall View %"),
    max_rows=200,
)

GRADEBOOK_SUMMARY_TABLE = TableConfig(title="Gradebook Summary Rows", max_rows=50)

GRADEBOOK_MODULE_TABLE = TableConfig(
    title="Gradebook Module Metrics",
    columns=("Module", "Avg % Turned In", "Avg Average Excluding Zeros", "n_assignments"),
    percent_columns=("Avg % Turned In", "Avg Average Excluding Zeros"),
    max_rows=200,
)

TABLE_PRESETS: Dict[str, TableConfig] = {
    "echo-summary": ECHO_SUMMARY_TABLE,
    "echo-modules": ECHO_MODULE_TABLE,
    "gradebook-summary": GRADEBOOK_SUMMARY_TABLE,
    "gradebook-modules": GRADEBOOK_MODULE_TABLE,
}

METRIC_COLUMN = "Metric"


def gradebook_summary_table(rows: Optional[Sequence[RawRow]], base: TableConfig = GRADEBOOK_SUMMARY_TABLE) -> TableConfig:
    """Every assignment column of the gradebook summary is a percent; "Metric" leads when present."""
    keys = collect_keys(rows)
    others = tuple(k for k in keys if k != METRIC_COLUMN)
    columns = (METRIC_COLUMN,) + others if METRIC_COLUMN in keys else None
    return replace(base, columns=columns, percent_columns=others)


def table_config_for(name: str, rows: Optional[Sequence[RawRow]] = None) -> TableConfig:
    base = TABLE_PRESETS[name]
    if name == "gradebook-summary":
        return gradebook_summary_table(rows, base)
    return base
