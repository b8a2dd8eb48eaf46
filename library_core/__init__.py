"""Core (UI-agnostic) library reporting logic.

This package contains:
- record parsing (delimited text -> frozen dataclasses)
- data loading from the source directory
- filter normalization and search
- aggregations (dashboard totals, genres, top borrowers, overdue loans)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- report exports (xlsx workbook, overdue CSV)
"""
