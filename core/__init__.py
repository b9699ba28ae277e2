"""Core (UI-agnostic) car sales dashboard logic.

This package contains:
- data loading (CSV -> validated pandas records)
- filter state and dropdown option derivation
- aggregations for the ranked bar, monthly trend and parallel-coordinates charts
- scales, layout and chart helpers (Altair -> Vega-Lite spec dict)
"""
