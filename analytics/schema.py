from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Mapping, Optional, Sequence

from analytics.coerce import coerce, is_blank
from analytics.config import EligibilityPolicy
from analytics.fields import CanonicalField, ColumnCandidateMap, is_numeric_field


logger = logging.getLogger(__name__)

RawRow = Mapping[str, object]


@dataclass(frozen=True)
class FieldResolution:
    field: CanonicalField
    column: Optional[str]
    eligible: bool
    sampled: int = 0
    parsed: int = 0

    @property
    def parse_ratio(self) -> Optional[float]:
        return (self.parsed / self.sampled) if self.sampled else None

    @property
    def usable_column(self) -> Optional[str]:
        return self.column if self.eligible else None


def collect_keys(rows: Optional[Sequence[RawRow]]) -> List[str]:
    """Union of row keys in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows or ():
        for key in row.keys():
            seen.setdefault(str(key), None)
    return list(seen)


def _normalize_col(col: str) -> str:
    c = str(col).strip().lower()
    c = re.sub(r"[_\-]+", " ", c)
    c = re.sub(r"[^a-z0-9 %#:()]+", "", c)
    c = re.sub(r"\s+", " ", c)
    return c.strip()


def resolve_field(
    present_keys: Optional[AbstractSet[str] | Iterable[str]],
    candidates: Sequence[str],
    *,
    match: str = "exact",
) -> Optional[str]:
    """First candidate present in `present_keys`, else None.

    With match="normalized" an exact pass runs first, then candidates are
    compared case/punctuation-insensitively. The returned name is always one of
    the present keys.
    """
    if not present_keys:
        return None
    keys = present_keys if isinstance(present_keys, (set, frozenset)) else set(present_keys)
    for cand in candidates:
        if cand in keys:
            return cand
    if match != "normalized":
        return None
    norm_map: Dict[str, str] = {}
    for key in sorted(keys):
        norm_map.setdefault(_normalize_col(key), key)
    for cand in candidates:
        hit = norm_map.get(_normalize_col(cand))
        if hit is not None:
            return hit
    return None


def assess_column(rows: Sequence[RawRow], column: str, policy: EligibilityPolicy) -> tuple[int, int]:
    """(non-blank sampled cells, cells that coerce to a number) over the first rows."""
    sampled = parsed = 0
    for row in rows[: policy.sample_size]:
        value = row.get(column)
        if is_blank(value):
            continue
        sampled += 1
        if coerce(value) is not None:
            parsed += 1
    return sampled, parsed


def resolve_fields(
    rows: Optional[Sequence[RawRow]],
    candidates: ColumnCandidateMap,
    fields: Iterable[CanonicalField],
    *,
    policy: Optional[EligibilityPolicy] = None,
    match: str = "exact",
) -> Dict[CanonicalField, FieldResolution]:
    """Resolve each field once against the row set and record numeric eligibility.

    Text fields are eligible whenever a column resolves. Numeric fields also
    need `policy.min_fraction` of their sampled non-blank cells to coerce.
    """
    policy = policy or EligibilityPolicy()
    rows = list(rows or [])
    keys = set(collect_keys(rows))
    out: Dict[CanonicalField, FieldResolution] = {}
    for f in fields:
        if f in out:
            continue
        column = resolve_field(keys, candidates.get(f, ()), match=match)
        if column is None:
            out[f] = FieldResolution(field=f, column=None, eligible=False)
            continue
        if not is_numeric_field(f):
            out[f] = FieldResolution(field=f, column=column, eligible=True)
            continue
        sampled, parsed = assess_column(rows, column, policy)
        eligible = sampled > 0 and (parsed / sampled) >= policy.min_fraction
        if not eligible:
            logger.debug("Column %r for %s failed eligibility (%d/%d parsed)", column, f.value, parsed, sampled)
        out[f] = FieldResolution(field=f, column=column, eligible=eligible, sampled=sampled, parsed=parsed)
    return out
