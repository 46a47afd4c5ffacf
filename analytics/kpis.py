from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from analytics.coerce import coerce
from analytics.config import ChartConfig
from analytics.fields import CanonicalField
from analytics.normalize import NormalizedDataset, normalize_rows
from analytics.presets import ECHO_MODULE_CHART, GRADEBOOK_MODULE_CHART
from analytics.schema import RawRow
from analytics.tables import format_number, format_percent


def _mean(dataset: NormalizedDataset, f: CanonicalField) -> Optional[float]:
    values = pd.Series([r.number(f) for r in dataset.records], dtype="float64").dropna()
    if values.empty:
        return None
    return float(values.mean())


def _card(key: str, label: str, value: float, display: str) -> Dict[str, Any]:
    return {"key": key, "label": label, "value": value, "display": display}


def _normalize(rows: Optional[Sequence[RawRow]], config: ChartConfig, fields: List[CanonicalField]) -> NormalizedDataset:
    return normalize_rows(rows, config.candidates, fields, percent=config.percent, eligibility=config.eligibility, match=config.match)


def compute_kpis(
    echo_modules: Optional[Sequence[RawRow]] = None,
    grade_modules: Optional[Sequence[RawRow]] = None,
    students_total: object = None,
    *,
    echo_config: ChartConfig = ECHO_MODULE_CHART,
    grade_config: ChartConfig = GRADEBOOK_MODULE_CHART,
) -> List[Dict[str, Any]]:
    """Headline cards; a metric with no data is left out rather than shown as zero."""
    echo = _normalize(echo_modules, echo_config, [CanonicalField.AVERAGE_VIEW_PERCENT, CanonicalField.OVERALL_VIEW_PERCENT])
    grades = _normalize(grade_modules, grade_config, [CanonicalField.TURNED_IN_PERCENT, CanonicalField.EXCLUDING_ZEROES_AVERAGE])

    cards: List[Dict[str, Any]] = []
    modules = max(len(echo.records), len(grades.records))
    if modules:
        cards.append(_card("modules", "Modules", float(modules), format_number(modules)))
    total = coerce(students_total)
    if total is not None and total > 0:
        cards.append(_card("students_total", "Students", total, format_number(total)))

    for key, label, dataset, f in (
        ("avg_view_pct", "Avg View %", echo, CanonicalField.AVERAGE_VIEW_PERCENT),
        ("overall_view_pct", "Avg Overall View %", echo, CanonicalField.OVERALL_VIEW_PERCENT),
        ("avg_turned_in_pct", "Avg % Turned In", grades, CanonicalField.TURNED_IN_PERCENT),
        ("avg_excluding_zeros", "Avg Average Excluding Zeros", grades, CanonicalField.EXCLUDING_ZEROES_AVERAGE),
    ):
        value = _mean(dataset, f)
        if value is not None:
            # already on the 0-100 scale, so skip format_cell and its re-normalization
            cards.append(_card(key, label, value, format_percent(value)))
    return cards
