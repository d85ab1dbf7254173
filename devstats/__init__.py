"""Core (UI-agnostic) device usage dashboard logic.

This package contains:
- data loading (remote CSV -> records -> pandas)
- filter normalization and the filter engine
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
