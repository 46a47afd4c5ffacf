from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from analytics.coerce import coerce, coerce_count, is_blank
from analytics.config import EligibilityPolicy, PercentPolicy
from analytics.fields import CanonicalField, ColumnCandidateMap, FieldKind, field_kind
from analytics.percent import normalize_percent_cell
from analytics.schema import FieldResolution, RawRow, collect_keys, resolve_fields


logger = logging.getLogger(__name__)

Value = Union[str, int, float, None]


@dataclass(frozen=True)
class NormalizedRecord:
    """One row keyed by canonical field; percents on 0-100, counts as non-negative ints."""

    index: int
    values: Mapping[CanonicalField, Value]

    def get(self, f: CanonicalField) -> Value:
        return self.values.get(f)

    def number(self, f: CanonicalField) -> Optional[float]:
        v = self.values.get(f)
        return None if v is None or isinstance(v, str) else float(v)


@dataclass(frozen=True)
class NormalizedDataset:
    records: Tuple[NormalizedRecord, ...]
    resolutions: Mapping[CanonicalField, FieldResolution]
    keys: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def column_for(self, f: CanonicalField) -> Optional[str]:
        res = self.resolutions.get(f)
        return res.usable_column if res is not None else None

    def has_values(self, f: CanonicalField) -> bool:
        return any(r.get(f) is not None for r in self.records)


def normalize_value(kind: FieldKind, raw: object, percent: PercentPolicy) -> Value:
    if kind is FieldKind.TEXT:
        return None if is_blank(raw) else str(raw).strip()
    if kind is FieldKind.COUNT:
        return coerce_count(raw)
    if kind is FieldKind.PERCENT:
        return normalize_percent_cell(raw, percent)
    return coerce(raw)


def normalize_rows(
    rows: Optional[Sequence[RawRow]],
    candidates: ColumnCandidateMap,
    fields: Iterable[CanonicalField],
    *,
    percent: Optional[PercentPolicy] = None,
    eligibility: Optional[EligibilityPolicy] = None,
    match: str = "exact",
) -> NormalizedDataset:
    """Resolve, coerce and percent-normalize `rows` into new records.

    Input rows are never modified. Unresolved or ineligible fields are None in
    every record.
    """
    percent = percent or PercentPolicy()
    rows = list(rows or [])
    wanted = list(dict.fromkeys(fields))
    resolutions = resolve_fields(rows, candidates, wanted, policy=eligibility, match=match)
    logger.debug(
        "Resolved %d/%d fields over %d rows: %s",
        sum(1 for r in resolutions.values() if r.usable_column),
        len(wanted),
        len(rows),
        {f.value: r.usable_column for f, r in resolutions.items()},
    )

    records: List[NormalizedRecord] = []
    for idx, row in enumerate(rows):
        values: Dict[CanonicalField, Value] = {}
        for f in wanted:
            column = resolutions[f].usable_column
            values[f] = normalize_value(field_kind(f), row.get(column), percent) if column else None
        records.append(NormalizedRecord(index=idx, values=MappingProxyType(values)))
    return NormalizedDataset(
        records=tuple(records),
        resolutions=MappingProxyType(dict(resolutions)),
        keys=tuple(collect_keys(rows)),
    )
