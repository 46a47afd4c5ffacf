"""Core (UI-agnostic) course analytics logic.

This package contains:
- schema resolution (variant column names -> canonical fields)
- value coercion and percent-scale normalization
- derived viewership counts
- chart projections (JSON-serializable payloads + Altair -> Vega-Lite spec dict)
- table formatting and column width estimation
"""
