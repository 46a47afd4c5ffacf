from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from analytics.config import ChartConfig
from analytics.fields import CanonicalField
from analytics.schema import RawRow, collect_keys, resolve_fields


def compute_diagnostics(
    datasets: Mapping[str, Optional[Sequence[RawRow]]],
    configs: Mapping[str, ChartConfig],
) -> Dict[str, Any]:
    """Which columns each dataset resolved to, and how well numeric columns parsed."""
    payload: Dict[str, Any] = {"row_counts": {}, "datasets": {}}
    for name, rows in datasets.items():
        rows = list(rows or [])
        config = configs.get(name, ChartConfig())
        resolutions = resolve_fields(
            rows, config.candidates, list(CanonicalField), policy=config.eligibility, match=config.match
        )
        payload["row_counts"][name] = len(rows)
        payload["datasets"][name] = {
            "keys": collect_keys(rows),
            "resolved": [
                {
                    "field": f.value,
                    "column": r.column,
                    "eligible": r.eligible,
                    "sampled": r.sampled,
                    "parsed": r.parsed,
                    "parse_ratio": r.parse_ratio,
                }
                for f, r in resolutions.items()
                if r.column is not None
            ],
            "unresolved": [f.value for f, r in resolutions.items() if r.column is None],
        }
    return payload
