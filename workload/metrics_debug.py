from __future__ import annotations

from typing import Any, Dict

from workload.data import ExtractionResult, FilterOutcome, unique_values
from workload.filters import AnalyticsFilter, filter_to_dict


def compute_debug(filters: AnalyticsFilter, extraction: ExtractionResult, outcome: FilterOutcome) -> Dict[str, Any]:
    records = extraction.records
    report = extraction.report
    invalid_lines = set(report.invalid_dates)
    payload = {
        "filters": filter_to_dict(filters),
        "row_counts": {
            "lines": report.total_lines,
            "data_lines": report.data_lines,
            "records": len(records),
            "records_with_valid_dates": sum(1 for r in records if r.has_valid_dates),
            "filtered_records": len(outcome.records),
        },
        "cleaning_checks": {
            "blank_lines": report.blank_lines,
            "rows_dropped_missing_identity": len(report.dropped_rows),
            "rows_with_invalid_hours": len(report.invalid_hours),
            "rows_with_invalid_dates": len(report.invalid_dates),
        },
        "filter_steps": [{"name": s.name, "count": s.count} for s in outcome.steps],
        "notices": [n.to_dict() for n in outcome.notices],
        "members": unique_values(records, "team_member"),
        "streams": unique_values(records, "stream"),
        "invalid_date_rows": [],
    }

    if invalid_lines:
        payload["invalid_date_rows"] = [
            {"line": r.line_number, "name": r.name, "start": r.start_raw, "end": r.end_raw}
            for r in records
            if r.line_number in invalid_lines
        ][:50]
    return payload
