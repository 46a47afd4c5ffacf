from __future__ import annotations

from decimal import Decimal
from typing import Optional

from analytics.coerce import coerce, has_percent_sign
from analytics.config import PercentPolicy


DEFAULT_POLICY = PercentPolicy()


def normalize_percent(value: Optional[float], policy: PercentPolicy = DEFAULT_POLICY) -> Optional[float]:
    """Canonicalize to the 0-100 scale.

    Values at or below `policy.threshold` are read as proportions and scaled by
    100; anything larger is assumed to be percent-scaled already. The default
    1.5 threshold misreads small true percentages ("1.2" meaning 1.2%) as
    proportions. Negative inputs fall under the threshold too and are scaled
    without clamping, so -0.05 becomes -5.0 and -5 becomes -500.0.
    """
    if value is None:
        return None
    if value <= policy.threshold:
        # Decimal keeps 0.42 -> 42.0 instead of 42.00000000000001
        return float(Decimal(str(value)) * 100)
    return float(value)


def normalize_percent_cell(raw: object, policy: PercentPolicy = DEFAULT_POLICY) -> Optional[float]:
    n = coerce(raw)
    if n is None:
        return None
    if policy.trust_percent_sign and has_percent_sign(raw):
        return n
    return normalize_percent(n, policy)
