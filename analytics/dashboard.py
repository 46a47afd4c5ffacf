from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from analytics.charts import combo_chart_spec
from analytics.config import ChartConfig, normalize_chart_options, normalize_table_options
from analytics.diagnostics import compute_diagnostics
from analytics.kpis import compute_kpis
from analytics.memo import MemoStore
from analytics.presets import CHART_PRESETS, table_config_for
from analytics.projection import project_chart
from analytics.schema import RawRow
from analytics.tables import build_table
from analytics.viewership import infer_total_students


logger = logging.getLogger(__name__)

# table preset -> (section, key) in the analysis response
TABLE_SOURCES = {
    "echo-summary": ("echo", "summary"),
    "echo-modules": ("echo", "modules"),
    "gradebook-summary": ("grades", "summary"),
    "gradebook-modules": ("grades", "module_metrics"),
}

CHART_SOURCES = {
    "echo-modules": ("echo", "modules"),
    "gradebook-modules": ("grades", "module_metrics"),
}

_NO_ROWS: Sequence[RawRow] = ()


def _rows(payload: Mapping[str, Any], section: str, key: str) -> Sequence[RawRow]:
    block = payload.get(section) or {}
    rows = block.get(key) if isinstance(block, Mapping) else None
    # one shared empty collection keeps memo keys stable for absent sections
    return rows if isinstance(rows, list) and rows else _NO_ROWS


def _memoized(memo: Optional[MemoStore], name: str, rows: Any, config: tuple, compute: Callable[[], Any]) -> Any:
    if memo is None:
        return compute()
    return memo.get_or_compute(name, rows, config, compute)


def chart_payload(rows: Sequence[RawRow], config: ChartConfig, students_total: object = None, *, with_spec: bool = True) -> Dict[str, Any]:
    projection = project_chart(rows, config, students_total)
    out = projection.to_dict()
    out["vega_lite"] = combo_chart_spec(projection) if with_spec else None
    return out


def compute_dashboard(
    payload: Mapping[str, Any],
    options: Optional[dict] = None,
    *,
    memo: Optional[MemoStore] = None,
) -> Dict[str, Any]:
    """Charts, tables, KPI cards and diagnostics for one analysis response.

    `payload` is shaped {"echo": {"summary", "modules"}, "grades": {"summary",
    "module_metrics"}, "students_total"}; any part may be missing.
    """
    options = options or {}
    students_total = payload.get("students_total")
    with_spec = bool(options.get("vega_lite", True))

    charts: Dict[str, Any] = {}
    chart_configs: Dict[str, ChartConfig] = {}
    for name, (section, key) in CHART_SOURCES.items():
        rows = _rows(payload, section, key)
        config = normalize_chart_options((options.get("charts") or {}).get(name), base=CHART_PRESETS[name])
        chart_configs[name] = config
        charts[name] = _memoized(
            memo,
            f"chart:{name}",
            rows,
            (config, students_total, with_spec),
            lambda rows=rows, config=config: chart_payload(rows, config, students_total, with_spec=with_spec),
        )

    tables: Dict[str, Any] = {}
    for name, (section, key) in TABLE_SOURCES.items():
        rows = _rows(payload, section, key)
        config = normalize_table_options((options.get("tables") or {}).get(name), base=table_config_for(name, rows))
        tables[name] = _memoized(memo, f"table:{name}", rows, (config,), lambda rows=rows, config=config: build_table(rows, config).to_dict())

    echo_modules = _rows(payload, "echo", "modules")
    grade_modules = _rows(payload, "grades", "module_metrics")
    kpi_total = students_total if students_total is not None else infer_total_students(echo_modules)
    kpis = compute_kpis(
        echo_modules,
        grade_modules,
        kpi_total,
        echo_config=chart_configs["echo-modules"],
        grade_config=chart_configs["gradebook-modules"],
    )

    diagnostics = compute_diagnostics(
        {name: _rows(payload, *src) for name, src in TABLE_SOURCES.items()},
        {name: chart_configs.get(name, CHART_PRESETS["echo-modules"]) for name in TABLE_SOURCES},
    )
    logger.debug("Dashboard computed: %s", diagnostics["row_counts"])

    return {
        "students_total": students_total,
        "kpis": kpis,
        "charts": charts,
        "tables": tables,
        "diagnostics": diagnostics,
    }
