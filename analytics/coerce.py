from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Number
from typing import Iterable, Optional

import pandas as pd


_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if not pd.api.types.is_scalar(value):
        return False
    return bool(pd.isna(value))


def coerce(value: object) -> Optional[float]:
    """Convert a loosely-typed cell to a finite float, or None.

    "12.5%" -> 12.5, "1,234" -> 1234.0, "" / None / NaN / "abc" -> None.
    Never raises.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Number):
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError, OverflowError):
            return None
        return out if math.isfinite(out) else None
    try:
        s = str(value)
    except Exception:
        return None
    s = s.strip().replace("%", "").replace(",", "").strip()
    if not s or not _DECIMAL_RE.match(s):
        return None
    try:
        out = float(s)
    except (ValueError, OverflowError):
        return None
    return out if math.isfinite(out) else None


def has_percent_sign(value: object) -> bool:
    return isinstance(value, str) and "%" in value


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    try:
        return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None


def coerce_count(value: object) -> Optional[int]:
    """Coerce to a non-negative whole count (half-up rounded), or None."""
    n = coerce(value)
    if n is None:
        return None
    rounded = round_half_up(max(n, 0.0))
    return int(rounded) if rounded is not None else None


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    """Copy of `df` with `cols` coerced cell-by-cell; unparsable cells become NaN."""
    out = df.copy()
    for col in cols:
        if col in out.columns:
            out[col] = pd.to_numeric(out[col].map(coerce), errors="coerce")
    return out
