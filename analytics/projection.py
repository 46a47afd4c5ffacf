from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from analytics.coerce import coerce, round_half_up
from analytics.config import ChartConfig
from analytics.fields import CanonicalField
from analytics.normalize import NormalizedDataset, normalize_rows
from analytics.schema import RawRow
from analytics.viewership import UNAVAILABLE, compute_viewership


logger = logging.getLogger(__name__)

PERCENT_DOMAIN: Tuple[float, float] = (0.0, 100.0)
COUNT_AXIS = "count"
PERCENT_AXIS = "percent"
STACK_ID = "students"


@dataclass(frozen=True)
class SeriesSpec:
    key: str
    label: str
    axis: str
    kind: str
    stack: Optional[str] = None
    connect_nulls: bool = False
    value_format: str = ","


@dataclass(frozen=True)
class ChartProjection:
    title: str
    category_key: str
    categories: Tuple[str, ...]
    points: Tuple[Dict[str, Any], ...]
    series: Tuple[SeriesSpec, ...]
    show_stacked: bool
    count_domain: Optional[Tuple[float, float]]
    percent_domain: Tuple[float, float] = PERCENT_DOMAIN
    reference_line: Optional[float] = None
    fallback_message: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.points

    def series_keys(self, axis: Optional[str] = None) -> List[str]:
        return [s.key for s in self.series if axis is None or s.axis == axis]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "category_key": self.category_key,
            "categories": list(self.categories),
            "points": [dict(p) for p in self.points],
            "series": [asdict(s) for s in self.series],
            "show_stacked": self.show_stacked,
            "axes": {
                COUNT_AXIS: {"domain": list(self.count_domain) if self.count_domain else None},
                PERCENT_AXIS: {"domain": list(self.percent_domain)},
            },
            "reference_line": self.reference_line,
            "fallback_message": self.fallback_message,
            "is_empty": self.is_empty,
        }


def count_axis_domain(max_total: Optional[float]) -> Optional[Tuple[float, float]]:
    """[0, max + headroom] with headroom of 12% (at least 5); None lets the renderer autoscale."""
    if not max_total or max_total <= 0:
        return None
    headroom = max(5.0, round_half_up(max_total * 0.12) or 0.0)
    return (0.0, float(max_total) + headroom)


def _chart_fields(config: ChartConfig) -> List[CanonicalField]:
    fields = [config.category_field]
    if config.stacked:
        fields += [f for f in (config.viewer_field, config.total_field) if f is not None]
    fields += [s.field for s in config.trend_series]
    return fields


def project_dataset(dataset: NormalizedDataset, config: ChartConfig, total_hint: object = None) -> ChartProjection:
    hint = coerce(total_hint)
    hint = hint if hint is not None and hint > 0 else None

    categories: List[str] = []
    counts: List[Dict[str, Optional[int]]] = []
    viewer_resolved = config.viewer_field is not None and dataset.column_for(config.viewer_field) is not None
    for record in dataset.records:
        label = record.get(config.category_field)
        categories.append("" if label is None else str(label))
        if config.stacked and viewer_resolved:
            per_row = record.get(config.total_field) if config.total_field is not None else None
            v = compute_viewership(record.get(config.viewer_field), hint, per_row)
        else:
            v = UNAVAILABLE
        counts.append(v.to_dict())

    show_stacked = config.stacked and any(c["viewed"] is not None and c["not_viewed"] is not None for c in counts)

    lines = []
    for s in config.trend_series:
        if dataset.column_for(s.field) is None or not dataset.has_values(s.field):
            logger.debug("Omitting line %r: no values for %s", s.key, s.field.value)
            continue
        lines.append(s)

    series: List[SeriesSpec] = []
    if show_stacked:
        series.append(SeriesSpec(key="viewed", label=config.viewed_label, axis=COUNT_AXIS, kind="bar", stack=STACK_ID))
        series.append(SeriesSpec(key="not_viewed", label=config.not_viewed_label, axis=COUNT_AXIS, kind="bar", stack=STACK_ID))
    for s in lines:
        series.append(SeriesSpec(key=s.key, label=s.label, axis=PERCENT_AXIS, kind="line", connect_nulls=True, value_format=".1f"))

    points: List[Dict[str, Any]] = []
    for record, label, c in zip(dataset.records, categories, counts):
        point: Dict[str, Any] = {config.category_key: label}
        if show_stacked:
            point.update(c)
        for s in lines:
            point[s.key] = record.number(s.field)
        points.append(point)

    max_total = max((c["total"] for c in counts if c["total"] is not None), default=None) if show_stacked else None
    fallback = None
    if dataset.is_empty:
        fallback = "No data."
    elif config.stacked and not show_stacked:
        fallback = config.fallback_message
        logger.debug("Stacked bars suppressed for %r", config.title)

    return ChartProjection(
        title=config.title,
        category_key=config.category_key,
        categories=tuple(categories),
        points=tuple(points),
        series=tuple(series),
        show_stacked=show_stacked,
        count_domain=count_axis_domain(max_total),
        reference_line=float(round_half_up(hint) or 0) if hint is not None and show_stacked else None,
        fallback_message=fallback,
    )


def project_chart(rows: Optional[Sequence[RawRow]], config: ChartConfig, total_hint: object = None) -> ChartProjection:
    """One point per row in input order: stacked viewed/not-viewed counts plus percent trend lines."""
    dataset = normalize_rows(
        rows,
        config.candidates,
        _chart_fields(config),
        percent=config.percent,
        eligibility=config.eligibility,
        match=config.match,
    )
    return project_dataset(dataset, config, total_hint)
