"""Core (UI-agnostic) team workload analytics.

This package contains:
- ledger parsing (semicolon text -> ProjectRecord)
- filter normalization and the filter stage with empty-result diagnostics
- metric compute functions (timeline, members, distributions, debug)
- result assembly into a JSON-serializable AnalyticsResult
- a key-value store for the last upload, used only by the API layer
"""
