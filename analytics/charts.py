from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from analytics.projection import COUNT_AXIS, PERCENT_AXIS, ChartProjection

alt.data_transformers.disable_max_rows()

CHART_HEIGHT = 420


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _long_frame(projection: ChartProjection, axis: str, value_col: str) -> pd.DataFrame:
    cat = projection.category_key
    records: List[Dict[str, Any]] = []
    for idx, point in enumerate(projection.points):
        for stack_pos, spec in enumerate(s for s in projection.series if s.axis == axis):
            value = point.get(spec.key)
            # dropping nulls per series lets the line connect across gaps
            if value is None:
                continue
            records.append({cat: point.get(cat), "_row": idx, "_stack": stack_pos, "series": spec.label, value_col: value})
    return pd.DataFrame(records, columns=[cat, "_row", "_stack", "series", value_col])


def build_combo_chart(projection: ChartProjection) -> Optional[alt.TopLevelMixin]:
    """Stacked student bars on the left axis with percent lines on a fixed [0, 100] right axis."""
    if projection.is_empty or not projection.series:
        return None

    cat = projection.category_key
    order = list(dict.fromkeys(projection.categories))
    x = alt.X(field=cat, type="nominal", sort=order, title=cat, axis=alt.Axis(labelAngle=-30))

    layers = []
    if projection.show_stacked:
        bars_df = _long_frame(projection, COUNT_AXIS, "students")
        y_scale = alt.Scale(domain=list(projection.count_domain)) if projection.count_domain else alt.Scale()
        bars = (
            alt.Chart(bars_df)
            .mark_bar()
            .encode(
                x=x,
                y=alt.Y("students:Q", stack="zero", title="Students", scale=y_scale),
                color=alt.Color("series:N", title=None, sort=[s.label for s in projection.series if s.axis == COUNT_AXIS]),
                order=alt.Order("_stack:Q"),
                tooltip=[alt.Tooltip(field=cat, type="nominal"), "series:N", alt.Tooltip("students:Q", format=",")],
            )
        )
        count_layer = bars
        if projection.reference_line is not None:
            rule = (
                alt.Chart(pd.DataFrame({"students": [projection.reference_line]}))
                .mark_rule(strokeDash=[4, 4], color="#6b7280")
                .encode(y=alt.Y("students:Q", scale=y_scale))
            )
            count_layer = alt.layer(bars, rule)
        layers.append(count_layer)

    if projection.series_keys(PERCENT_AXIS):
        lines_df = _long_frame(projection, PERCENT_AXIS, "percent")
        lines = (
            alt.Chart(lines_df)
            .mark_line(point={"filled": True, "size": 40}, interpolate="monotone", strokeWidth=2)
            .encode(
                x=x,
                y=alt.Y(
                    "percent:Q",
                    title="Percent",
                    scale=alt.Scale(domain=list(projection.percent_domain)),
                    axis=alt.Axis(orient="right", format=".0f", labelExpr="datum.label + '%'"),
                ),
                color=alt.Color("series:N", title=None),
                tooltip=[alt.Tooltip(field=cat, type="nominal"), "series:N", alt.Tooltip("percent:Q", format=".1f")],
            )
        )
        layers.append(lines)

    if len(layers) == 1:
        chart = layers[0]
    else:
        chart = alt.layer(*layers).resolve_scale(y="independent", color="independent")
    return chart.properties(title=projection.title, height=CHART_HEIGHT)


def combo_chart_spec(projection: ChartProjection) -> Optional[Dict[str, Any]]:
    chart = build_combo_chart(projection)
    return to_vega_spec(chart) if chart is not None else None
