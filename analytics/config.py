from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Tuple

from analytics.fields import DEFAULT_CANDIDATES, CanonicalField, ColumnCandidateMap


TEXT_HEAVY_PATTERN = r"(title|name|description|module|media|student|metric|assignment|comment)"

MAX_TABLE_ROWS = 1000
MAX_WIDTH_SAMPLE = 150


@dataclass(frozen=True)
class PercentPolicy:
    threshold: float = 1.5
    trust_percent_sign: bool = False


@dataclass(frozen=True)
class EligibilityPolicy:
    min_fraction: float = 0.5
    sample_size: int = 100


@dataclass(frozen=True)
class WidthBounds:
    min_width: int = 72
    text_max_width: int = 360
    numeric_max_width: int = 160
    padding: int = 24
    sample_rows: int = 100
    font_size: int = 13
    font_path: Optional[str] = None
    text_heavy_pattern: str = TEXT_HEAVY_PATTERN


@dataclass(frozen=True)
class TrendSeries:
    key: str
    label: str
    field: CanonicalField


@dataclass(frozen=True)
class ChartConfig:
    title: str = "Chart"
    category_field: CanonicalField = CanonicalField.MODULE_NAME
    category_key: str = "Module"
    viewer_field: Optional[CanonicalField] = CanonicalField.VIEWER_COUNT
    total_field: Optional[CanonicalField] = CanonicalField.TOTAL_STUDENTS
    stacked: bool = True
    viewed_label: str = "# of Unique Viewers"
    not_viewed_label: str = "Not Viewed"
    trend_series: Tuple[TrendSeries, ...] = ()
    candidates: ColumnCandidateMap = field(default_factory=lambda: dict(DEFAULT_CANDIDATES))
    percent: PercentPolicy = field(default_factory=PercentPolicy)
    eligibility: EligibilityPolicy = field(default_factory=EligibilityPolicy)
    match: str = "exact"
    fallback_message: str = "Viewer counts are not available for this data."


@dataclass(frozen=True)
class TableConfig:
    title: str = "Table"
    columns: Optional[Tuple[str, ...]] = None
    percent_columns: Tuple[str, ...] = ()
    max_rows: int = 50
    widths: WidthBounds = field(default_factory=WidthBounds)
    percent: PercentPolicy = field(default_factory=PercentPolicy)
    empty_message: str = "No data."


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except Exception:
        return default


def _as_int(value: object, default: int, lo: int, hi: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        out = default
    return max(lo, min(hi, out))


def _as_str_tuple(values: Optional[Iterable[object]]) -> Tuple[str, ...]:
    if not values or isinstance(values, str):
        return ()
    return tuple(str(v) for v in values if v is not None)


def normalize_percent_policy(raw: Optional[dict]) -> PercentPolicy:
    raw = raw or {}
    threshold = _as_float(raw.get("threshold", 1.5), 1.5)
    if not (0 < threshold <= 100):
        threshold = 1.5
    return PercentPolicy(threshold=threshold, trust_percent_sign=bool(raw.get("trust_percent_sign", False)))


def normalize_width_bounds(raw: Optional[dict]) -> WidthBounds:
    raw = raw or {}
    base = WidthBounds()
    min_width = _as_int(raw.get("min_width", base.min_width), base.min_width, 1, 2000)
    text_max = _as_int(raw.get("text_max_width", base.text_max_width), base.text_max_width, min_width, 4000)
    numeric_max = _as_int(raw.get("numeric_max_width", base.numeric_max_width), base.numeric_max_width, min_width, 4000)
    return replace(
        base,
        min_width=min_width,
        text_max_width=text_max,
        numeric_max_width=numeric_max,
        padding=_as_int(raw.get("padding", base.padding), base.padding, 0, 200),
        sample_rows=_as_int(raw.get("sample_rows", base.sample_rows), base.sample_rows, 1, MAX_WIDTH_SAMPLE),
        font_size=_as_int(raw.get("font_size", base.font_size), base.font_size, 6, 72),
        font_path=(str(raw["font_path"]) if raw.get("font_path") else None),
    )


def normalize_chart_options(raw: Optional[dict], *, base: Optional[ChartConfig] = None) -> ChartConfig:
    """Layer loosely-typed request options over a chart preset."""
    raw = raw or {}
    base = base or ChartConfig()
    candidates = base.candidates
    overrides = raw.get("candidates") or {}
    if overrides:
        valid = {}
        for key, values in overrides.items():
            try:
                valid[CanonicalField(key)] = _as_str_tuple(values)
            except ValueError:
                continue
        candidates = dict(base.candidates)
        candidates.update(valid)

    e = raw.get("eligibility") or {}
    eligibility = EligibilityPolicy(
        min_fraction=min(1.0, max(0.0, _as_float(e.get("min_fraction", base.eligibility.min_fraction), base.eligibility.min_fraction))),
        sample_size=_as_int(e.get("sample_size", base.eligibility.sample_size), base.eligibility.sample_size, 1, 1000),
    )
    match = raw.get("match", base.match)
    if match not in ("exact", "normalized"):
        match = base.match
    return replace(
        base,
        title=str(raw.get("title") or base.title),
        candidates=candidates,
        percent=normalize_percent_policy(raw.get("percent")) if "percent" in raw else base.percent,
        eligibility=eligibility,
        match=match,
    )


def normalize_table_options(raw: Optional[dict], *, base: Optional[TableConfig] = None) -> TableConfig:
    raw = raw or {}
    base = base or TableConfig()
    columns: Optional[Tuple[str, ...]] = base.columns
    if "columns" in raw:
        columns = _as_str_tuple(raw.get("columns")) or None
    percent_columns = base.percent_columns
    if "percent_columns" in raw:
        percent_columns = _as_str_tuple(raw.get("percent_columns"))
    return replace(
        base,
        title=str(raw.get("title") or base.title),
        columns=columns,
        percent_columns=percent_columns,
        max_rows=_as_int(raw.get("max_rows", base.max_rows), base.max_rows, 1, MAX_TABLE_ROWS),
        widths=normalize_width_bounds(raw.get("widths")) if "widths" in raw else base.widths,
        percent=normalize_percent_policy(raw.get("percent")) if "percent" in raw else base.percent,
    )
