from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from numbers import Number
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from PIL import ImageFont

from analytics.coerce import coerce, is_blank
from analytics.config import PercentPolicy, TableConfig, WidthBounds
from analytics.fields import FieldKind
from analytics.percent import normalize_percent_cell
from analytics.schema import RawRow, collect_keys


logger = logging.getLogger(__name__)

_NUMERIC_TEXT_RE = re.compile(r"^[\d,.\-]+%?$")
# "# of ...", "% of ...", "n_..." and "... %" headers hold counts or percents
_NUMERIC_HEADER_RE = re.compile(r"^\s*(#|%|n_)|%\s*$", re.IGNORECASE)


# ---------------- Cell formatting ----------------
def format_number(n: float) -> str:
    """Grouped thousands, at most two decimals, none for whole numbers."""
    s = f"{n:,.2f}".rstrip("0").rstrip(".")
    return "0" if s in ("-0", "") else s


def format_percent(n: float) -> str:
    return f"{n:.1f}%"


def format_cell(kind: Union[FieldKind, str], value: object, percent: Optional[PercentPolicy] = None) -> str:
    try:
        kind = FieldKind(kind)
    except ValueError:
        kind = FieldKind.TEXT
    if is_blank(value):
        return ""
    if kind is FieldKind.PERCENT:
        pct = normalize_percent_cell(value, percent or PercentPolicy())
        return format_percent(pct) if pct is not None else ""
    if kind in (FieldKind.NUMBER, FieldKind.COUNT):
        n = coerce(value)
        return format_number(n) if n is not None else ""
    return str(value)


def infer_kind(column: str, value: object, percent_columns: Iterable[str] = ()) -> FieldKind:
    if column in set(percent_columns):
        return FieldKind.PERCENT
    if isinstance(value, Number) and not isinstance(value, bool):
        return FieldKind.NUMBER
    if isinstance(value, str) and _NUMERIC_TEXT_RE.match(value.strip()) and coerce(value) is not None:
        return FieldKind.NUMBER
    return FieldKind.TEXT


def format_row(row: RawRow, columns: Sequence[str], percent_columns: Sequence[str] = (), percent: Optional[PercentPolicy] = None) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for col in columns:
        value = row.get(col)
        out[col] = format_cell(infer_kind(col, value, percent_columns), value, percent)
    return out


# ---------------- Column selection ----------------
def select_columns(keys: Sequence[str], desired: Optional[Sequence[str]] = None) -> List[str]:
    """Desired columns that exist, in requested order.

    Falls back to every available column when fewer than two requested columns
    exist but the data has more to show.
    """
    keys = list(keys)
    if not keys:
        return []
    if not desired:
        return keys
    present = set(keys)
    kept = [c for c in dict.fromkeys(desired) if c in present]
    if len(kept) < 2 and len(keys) > len(kept):
        logger.debug("Only %d of %d requested columns present; showing all %d", len(kept), len(desired), len(keys))
        return keys
    return kept


# ---------------- Width estimation ----------------
@lru_cache(maxsize=8)
def _reference_font(font_path: Optional[str], size: int) -> ImageFont.FreeTypeFont:
    if font_path:
        return ImageFont.truetype(font_path, size)
    return ImageFont.load_default(size=size)


def text_width(text: str, bounds: WidthBounds = WidthBounds()) -> float:
    """Rendered width in pixels of `text` in the reference font."""
    if not text:
        return 0.0
    return float(_reference_font(bounds.font_path, bounds.font_size).getlength(text))


def is_text_heavy(column: str, bounds: WidthBounds = WidthBounds()) -> bool:
    if _NUMERIC_HEADER_RE.search(str(column)):
        return False
    return re.search(bounds.text_heavy_pattern, str(column), flags=re.IGNORECASE) is not None


def estimate_column_width(header: str, cells: Iterable[str], bounds: WidthBounds = WidthBounds()) -> int:
    widest = text_width(str(header), bounds)
    for i, cell in enumerate(cells):
        if i >= bounds.sample_rows:
            break
        widest = max(widest, text_width(cell, bounds))
    ceiling = bounds.text_max_width if is_text_heavy(header, bounds) else bounds.numeric_max_width
    width = math.ceil(widest) + bounds.padding
    return int(max(bounds.min_width, min(max(ceiling, bounds.min_width), width)))


def estimate_column_widths(
    columns: Sequence[str], rows: Sequence[Mapping[str, str]], bounds: WidthBounds = WidthBounds()
) -> Dict[str, int]:
    sample = rows[: bounds.sample_rows]
    return {col: estimate_column_width(col, (r.get(col, "") for r in sample), bounds) for col in columns}


# ---------------- Table assembly ----------------
@dataclass(frozen=True)
class TableView:
    title: str
    columns: Tuple[str, ...]
    rows: Tuple[Dict[str, str], ...]
    widths: Dict[str, int]
    total_rows: int
    empty_message: Optional[str] = None

    @property
    def shown_rows(self) -> int:
        return len(self.rows)

    @property
    def caption(self) -> str:
        caption = f"Showing {self.shown_rows:,}"
        if self.total_rows > self.shown_rows:
            caption += f" of {self.total_rows:,}"
        return caption + " rows"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "columns": list(self.columns),
            "rows": [dict(r) for r in self.rows],
            "widths": dict(self.widths),
            "total_rows": self.total_rows,
            "shown_rows": self.shown_rows,
            "caption": self.caption,
            "empty_message": self.empty_message,
        }


def build_table(rows: Optional[Sequence[RawRow]], config: TableConfig) -> TableView:
    rows = list(rows or [])
    if not rows:
        return TableView(title=config.title, columns=(), rows=(), widths={}, total_rows=0, empty_message=config.empty_message)

    columns = select_columns(collect_keys(rows), config.columns)
    shown = [format_row(r, columns, config.percent_columns, config.percent) for r in rows[: config.max_rows]]
    widths = estimate_column_widths(columns, shown, config.widths)
    return TableView(
        title=config.title,
        columns=tuple(columns),
        rows=tuple(shown),
        widths=widths,
        total_rows=len(rows),
    )
