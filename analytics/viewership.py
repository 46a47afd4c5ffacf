from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

import pandas as pd

from analytics.coerce import coerce, is_blank, numericize, round_half_up
from analytics.fields import DEFAULT_CANDIDATES, CanonicalField, ColumnCandidateMap
from analytics.schema import RawRow, collect_keys, resolve_field


logger = logging.getLogger(__name__)

GRADEBOOK_STUDENT_COLUMN = "Student"
GRADEBOOK_NON_STUDENT_TOKENS = ("Points Possible", "Student, Test")


@dataclass(frozen=True)
class Viewership:
    viewed: Optional[int]
    not_viewed: Optional[int]
    total: Optional[int]

    @property
    def is_available(self) -> bool:
        return self.viewed is not None and self.not_viewed is not None

    def to_dict(self) -> Dict[str, Optional[int]]:
        return asdict(self)


UNAVAILABLE = Viewership(viewed=None, not_viewed=None, total=None)


def _whole(n: float) -> int:
    return int(round_half_up(n) or 0)


def compute_viewership(
    raw_viewer_count: object,
    total_hint: object = None,
    per_row_students: object = None,
) -> Viewership:
    """Split a module's students into viewed / not viewed.

    With a positive course-level `total_hint` the total is fixed and the viewer
    count is clamped into [0, total]. Otherwise the total is the larger of the
    viewer count and the row's own student count. When neither count nor hint
    exists the result is UNAVAILABLE. viewed + not_viewed == total always.
    """
    hint = coerce(total_hint)
    raw = coerce(raw_viewer_count)
    per_row = coerce(per_row_students)

    if hint is not None and hint > 0:
        total = _whole(hint)
        viewed = max(0, min(total, _whole(raw or 0.0)))
        return Viewership(viewed=viewed, not_viewed=total - viewed, total=total)

    if raw is None and per_row is None:
        return UNAVAILABLE

    raw_n = max(raw or 0.0, 0.0)
    per_row_n = max(per_row or 0.0, 0.0)
    total = _whole(max(raw_n, per_row_n))
    viewed = min(_whole(raw_n), total)
    return Viewership(viewed=viewed, not_viewed=max(0, total - viewed), total=total)


def _mode_count(rows: Sequence[RawRow], column: str) -> Optional[int]:
    frame = numericize(pd.DataFrame({column: [r.get(column) for r in rows]}), [column])
    values = frame[column].dropna()
    values = values[values > 0]
    if values.empty:
        return None
    return _whole(float(values.mode().iloc[0]))


def _roster_count(rows: Sequence[RawRow]) -> Optional[int]:
    names = [str(r.get(GRADEBOOK_STUDENT_COLUMN)).strip() for r in rows if not is_blank(r.get(GRADEBOOK_STUDENT_COLUMN))]
    students = [n for n in names if not any(n.startswith(tok) for tok in GRADEBOOK_NON_STUDENT_TOKENS)]
    return len(students) or None


def infer_total_students(
    module_rows: Optional[Sequence[RawRow]] = None,
    gradebook_rows: Optional[Sequence[RawRow]] = None,
    *,
    candidates: ColumnCandidateMap = DEFAULT_CANDIDATES,
) -> Optional[int]:
    """Best-effort class size: most common per-module student count, else gradebook roster size."""
    module_rows = list(module_rows or [])
    if module_rows:
        col = resolve_field(set(collect_keys(module_rows)), candidates.get(CanonicalField.TOTAL_STUDENTS, ()))
        if col is not None:
            found = _mode_count(module_rows, col)
            if found is not None:
                logger.debug("Inferred %d students from module column %r", found, col)
                return found
    gradebook_rows = list(gradebook_rows or [])
    if gradebook_rows:
        found = _roster_count(gradebook_rows)
        if found is not None:
            logger.debug("Inferred %d students from gradebook roster", found)
        return found
    return None
