"""Result assembly: ledger text + filter -> AnalyticsResult."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Tuple, Union

from workload.data import (
    ExtractionReport,
    FilterNotice,
    filter_records,
    ledger_range,
    load_ledger,
    records_frame,
    validate_source,
)
from workload.filters import AnalyticsFilter, filter_to_dict, normalize_filter
from workload.metrics_distribution import TopProject, compute_distributions
from workload.metrics_members import MemberSummary, StreamSummary, TeamTotals, compute_members
from workload.metrics_timeline import TimelineBucket, build_timeline


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsFailure:
    reason: str
    message: str
    details: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason, "details": list(self.details)}


@dataclass(frozen=True)
class AnalyticsResult:
    filters: AnalyticsFilter
    timeline: Tuple[TimelineBucket, ...]
    members: Tuple[MemberSummary, ...]
    team: TeamTotals
    status_distribution: Dict[str, int]
    priority_distribution: Dict[str, int]
    type_distribution: Dict[str, int]
    stream_distribution: Tuple[StreamSummary, ...]
    stream_totals: Tuple[StreamSummary, ...]
    top_projects: Tuple[TopProject, ...]
    extraction: ExtractionReport
    excluded_invalid_dates: Tuple[int, ...] = ()
    notices: Tuple[FilterNotice, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.members

    def to_dict(self) -> dict:
        return {
            "filters": filter_to_dict(self.filters),
            "timeline": [b.to_dict() for b in self.timeline],
            "members": [m.to_dict() for m in self.members],
            "team": self.team.to_dict(),
            "distributions": {
                "status": dict(self.status_distribution),
                "priority": dict(self.priority_distribution),
                "type": dict(self.type_distribution),
            },
            "stream_distribution": [asdict(s) for s in self.stream_distribution],
            "stream_totals": [asdict(s) for s in self.stream_totals],
            "top_projects": [asdict(p) for p in self.top_projects],
            "diagnostics": {
                "extraction": self.extraction.to_dict(),
                "excluded_invalid_dates": list(self.excluded_invalid_dates),
                "notices": [n.to_dict() for n in self.notices],
            },
        }


def resolve_filter(raw: Union[dict, AnalyticsFilter], source_text: str) -> AnalyticsFilter:
    if isinstance(raw, AnalyticsFilter):
        return raw
    return normalize_filter(raw, available_range=ledger_range(load_ledger(source_text).records))


def compute_analytics(
    source_text: str, filters: Union[dict, AnalyticsFilter]
) -> Union[AnalyticsResult, AnalyticsFailure]:
    """Full pipeline over an in-memory ledger.

    Malformed rows and dates are skipped and reported in the diagnostics; only
    whole-input defects come back as an AnalyticsFailure. Raises ValueError
    when ``filters`` is a dict that cannot be normalised.
    """
    problems = validate_source(source_text)
    if problems:
        reason = "empty_source" if not (source_text or "").strip() else "invalid_source"
        logger.info("Ledger rejected (%s): %s", reason, "; ".join(problems))
        return AnalyticsFailure(reason=reason, message="The ledger could not be read", details=tuple(problems))

    extraction = load_ledger(source_text)
    if not extraction.records:
        logger.info("Ledger rejected: no usable records in %d lines", extraction.report.total_lines)
        return AnalyticsFailure(
            reason="no_records",
            message="The ledger has no rows with both a project name and a team member",
            details=(f"{len(extraction.report.dropped_rows)} rows dropped",),
        )

    if (
        not isinstance(filters, AnalyticsFilter)
        and not (filters.get("start") and filters.get("end"))
        and ledger_range(extraction.records) is None
    ):
        logger.info("Ledger rejected: no record has valid dates and the filter has no date range")
        return AnalyticsFailure(
            reason="no_dated_records",
            message="No row has a valid start date and delivery deadline, so no date range can be derived",
            details=(f"{len(extraction.report.invalid_dates)} rows with invalid dates",),
        )

    filt = resolve_filter(filters, source_text)
    outcome = filter_records(extraction.records, filt)
    df = records_frame(outcome.records)

    timeline = build_timeline(df, filt)
    members, team = compute_members(df, filt)
    dist = compute_distributions(df, filt)

    logger.info(
        "Analytics for %s..%s member=%s: %d/%d records, %d months",
        filt.start.isoformat(),
        filt.end.isoformat(),
        filt.member or "*",
        len(outcome.records),
        len(extraction.records),
        len(timeline),
    )
    return AnalyticsResult(
        filters=filt,
        timeline=tuple(timeline),
        members=tuple(members),
        team=team,
        status_distribution=dist["status"],
        priority_distribution=dist["priority"],
        type_distribution=dist["type"],
        stream_distribution=dist["stream_distribution"],
        stream_totals=dist["stream_totals"],
        top_projects=dist["top_projects"],
        extraction=extraction.report,
        excluded_invalid_dates=outcome.excluded_invalid_dates,
        notices=outcome.notices,
    )
