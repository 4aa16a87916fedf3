from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from workload.filters import AnalyticsFilter


logger = logging.getLogger(__name__)

# Positional layout of a ledger row.
LEDGER_COLUMNS = (
    "name",
    "stream",
    "team_member",
    "start_date",
    "end_date",
    "status",
    "priority",
    "group_driven",
    "needed_hours",
    "notes",
    "stakeholder",
    "type",
)

MIN_YEAR = 1990
MAX_YEAR = 2050
TWO_DIGIT_PIVOT = 30
DAYS_PER_APPORTIONED_MONTH = 30

FRAME_COLUMNS = [
    "name",
    "stream",
    "team_member",
    "status",
    "priority",
    "type",
    "needed_hours",
    "start_date",
    "end_date",
    "monthly_hours",
]

_DATE_NOISE = re.compile(r"[^0-9/]")
_HOURS_PREFIX = re.compile(r"\d+(?:\.\d+)?")


# ---------------- Dates ----------------
def parse_ledger_date(value: object) -> Optional[date]:
    """Parse a DD/MM/YY (or DD/MM/YYYY) ledger date, None when malformed."""
    if value is None:
        return None
    parts = _DATE_NOISE.sub("", str(value)).split("/")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    day, month, year = (int(p) for p in parts)
    if not 1 <= day <= 31 or not 1 <= month <= 12:
        return None
    if len(parts[2]) <= 2:
        year += 2000 if year <= TWO_DIGIT_PIVOT else 1900
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_ledger_date(value: date) -> str:
    short = value.year % 100
    expanded = short + (2000 if short <= TWO_DIGIT_PIVOT else 1900)
    if expanded == value.year:
        return f"{value.day:02d}/{value.month:02d}/{short:02d}"
    return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"


# ---------------- Records ----------------
@dataclass(frozen=True)
class ProjectRecord:
    name: str
    stream: str
    team_member: str
    start_date: Optional[date]
    end_date: Optional[date]
    status: str = ""
    priority: str = ""
    group_driven: str = ""
    needed_hours: float = 0.0
    notes: str = ""
    stakeholder: str = ""
    type: str = ""
    line_number: int = 0
    start_raw: str = ""
    end_raw: str = ""

    @property
    def has_valid_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def months_active(self) -> int:
        # Only meaningful for records with valid dates.
        span_days = (self.end_date - self.start_date).days  # type: ignore[operator]
        return max(1, math.ceil(span_days / DAYS_PER_APPORTIONED_MONTH))

    @property
    def monthly_hours(self) -> float:
        return self.needed_hours / self.months_active


@dataclass(frozen=True)
class ExtractionReport:
    total_lines: int = 0
    data_lines: int = 0
    blank_lines: int = 0
    dropped_rows: Tuple[int, ...] = ()
    invalid_hours: Tuple[int, ...] = ()
    invalid_dates: Tuple[int, ...] = ()

    def to_dict(self) -> dict:
        return {
            "total_lines": self.total_lines,
            "data_lines": self.data_lines,
            "blank_lines": self.blank_lines,
            "dropped_rows": list(self.dropped_rows),
            "invalid_hours": list(self.invalid_hours),
            "invalid_dates": list(self.invalid_dates),
        }


@dataclass(frozen=True)
class ExtractionResult:
    records: Tuple[ProjectRecord, ...]
    report: ExtractionReport


def _split_lines(text: str) -> List[str]:
    cleaned = (text or "").lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n").strip()
    return cleaned.split("\n") if cleaned else []


def _clean_field(value: str) -> str:
    return value.replace('"', "").strip()


def _coerce_hours(raw: str) -> Tuple[float, bool]:
    """Leading number of the field (``"12h"`` -> 12), comma or dot decimals."""
    text = raw.strip().replace(",", ".")
    if not text:
        return 0.0, True
    match = _HOURS_PREFIX.match(text)
    if match is None:
        return 0.0, False
    return float(match.group(0)), True


def validate_source(text: str) -> List[str]:
    """Whole-input checks, an empty list means the text is worth extracting."""
    if not text or not text.strip():
        return ["The ledger content is empty"]
    lines = _split_lines(text)
    if len(lines) < 2:
        return ["The ledger needs a header line and at least one data line"]
    if not lines[0].strip():
        return ["The first line (header) is empty"]
    if not any(line.strip() for line in lines[1:]):
        return ["The ledger has no non-empty data lines"]
    return []


def extract_records(text: str) -> ExtractionResult:
    lines = _split_lines(text)
    records: List[ProjectRecord] = []
    dropped: List[int] = []
    bad_hours: List[int] = []
    bad_dates: List[int] = []
    blank = 0

    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            blank += 1
            continue
        values = [_clean_field(v) for v in line.split(";")]
        values += [""] * (len(LEDGER_COLUMNS) - len(values))
        row = dict(zip(LEDGER_COLUMNS, values))

        if not row["name"] or not row["team_member"]:
            logger.debug("Line %d dropped: missing project name or team member", line_number)
            dropped.append(line_number)
            continue

        hours, hours_ok = _coerce_hours(row["needed_hours"])
        if not hours_ok:
            logger.debug("Line %d: unparseable hours %r, using 0", line_number, row["needed_hours"])
            bad_hours.append(line_number)

        record = ProjectRecord(
            name=row["name"],
            stream=row["stream"],
            team_member=row["team_member"],
            start_date=parse_ledger_date(row["start_date"]),
            end_date=parse_ledger_date(row["end_date"]),
            status=row["status"],
            priority=row["priority"],
            group_driven=row["group_driven"],
            needed_hours=hours,
            notes=row["notes"],
            stakeholder=row["stakeholder"],
            type=row["type"],
            line_number=line_number,
            start_raw=row["start_date"],
            end_raw=row["end_date"],
        )
        if not record.has_valid_dates:
            logger.debug(
                "Line %d: invalid dates start=%r end=%r", line_number, record.start_raw, record.end_raw
            )
            bad_dates.append(line_number)
        records.append(record)

    report = ExtractionReport(
        total_lines=len(lines),
        data_lines=max(0, len(lines) - 1) - blank,
        blank_lines=blank,
        dropped_rows=tuple(dropped),
        invalid_hours=tuple(bad_hours),
        invalid_dates=tuple(bad_dates),
    )
    logger.info(
        "Extracted %d records (%d dropped, %d with invalid dates, %d with invalid hours)",
        len(records),
        len(dropped),
        len(bad_dates),
        len(bad_hours),
    )
    return ExtractionResult(records=tuple(records), report=report)


def unique_values(records: Iterable[ProjectRecord], field_name: str) -> List[str]:
    values = {str(getattr(r, field_name)).strip() for r in records}
    return sorted(v for v in values if v)


def ledger_range(records: Iterable[ProjectRecord]) -> Optional[Tuple[date, date]]:
    dated = [r for r in records if r.has_valid_dates]
    if not dated:
        return None
    return min(r.start_date for r in dated), max(r.end_date for r in dated)  # type: ignore[type-var]


# ---------------- Filter stage ----------------
@dataclass(frozen=True)
class FilterStep:
    name: str
    count: int


@dataclass(frozen=True)
class FilterSuggestion:
    filter_type: str
    action: str
    message: str
    values: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FilterNotice:
    stage: str
    message: str
    suggestions: Tuple[FilterSuggestion, ...] = ()

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "message": self.message,
            "suggestions": [
                {"filter_type": s.filter_type, "action": s.action, "message": s.message, "values": list(s.values)}
                for s in self.suggestions
            ],
        }


@dataclass(frozen=True)
class FilterOutcome:
    records: Tuple[ProjectRecord, ...]
    steps: Tuple[FilterStep, ...] = ()
    excluded_invalid_dates: Tuple[int, ...] = ()
    notices: Tuple[FilterNotice, ...] = ()


def filter_records(records: Sequence[ProjectRecord], filt: AnalyticsFilter) -> FilterOutcome:
    current = list(records)
    steps: List[FilterStep] = []

    if filt.member:
        current = [r for r in current if r.team_member == filt.member]
        steps.append(FilterStep("member", len(current)))

    for stage, attr, wanted in (
        ("streams", "stream", filt.streams),
        ("statuses", "status", filt.statuses),
        ("types", "type", filt.types),
    ):
        if wanted:
            allowed = set(wanted)
            current = [r for r in current if getattr(r, attr) in allowed]
            steps.append(FilterStep(stage, len(current)))

    invalid = tuple(r.line_number for r in current if not r.has_valid_dates)
    dated = [r for r in current if r.has_valid_dates]
    steps.append(FilterStep("dates", len(dated)))
    if invalid:
        logger.info("Excluded %d records with unparseable dates (lines %s)", len(invalid), list(invalid))

    current = [r for r in dated if r.end_date >= filt.start and r.start_date <= filt.end]  # type: ignore[operator]
    steps.append(FilterStep("date_range", len(current)))

    notices: Tuple[FilterNotice, ...] = ()
    if records and not current:
        notices = (_diagnose_empty(records, dated, filt, steps),)

    return FilterOutcome(
        records=tuple(current),
        steps=tuple(steps),
        excluded_invalid_dates=invalid,
        notices=notices,
    )


def _diagnose_empty(
    records: Sequence[ProjectRecord],
    dated: Sequence[ProjectRecord],
    filt: AnalyticsFilter,
    steps: Sequence[FilterStep],
) -> FilterNotice:
    failing = next(step for step in steps if step.count == 0)

    if failing.name == "member":
        return FilterNotice(
            stage="member",
            message=f"No projects found for team member {filt.member!r}",
            suggestions=(FilterSuggestion("member", "remove", "Remove the team member filter"),),
        )

    if failing.name == "streams":
        message = f"No projects found for the selected streams: {', '.join(filt.streams)}"
        suggestions: List[FilterSuggestion] = []
        if filt.member:
            available = unique_values([r for r in records if r.team_member == filt.member], "stream")
            if available:
                message = (
                    f"Team member {filt.member!r} has no projects in the selected streams. "
                    f"Available streams: {', '.join(available)}"
                )
                suggestions.append(
                    FilterSuggestion("streams", "replace", "Use the available streams", tuple(available))
                )
        suggestions.append(FilterSuggestion("streams", "remove", "Remove the stream filter"))
        return FilterNotice(stage="streams", message=message, suggestions=tuple(suggestions))

    if failing.name in ("statuses", "types"):
        selected = filt.statuses if failing.name == "statuses" else filt.types
        return FilterNotice(
            stage=failing.name,
            message=f"No projects found for the selected {failing.name}: {', '.join(selected)}",
            suggestions=(FilterSuggestion(failing.name, "remove", f"Remove the {failing.name} filter"),),
        )

    if failing.name == "dates":
        return FilterNotice(
            stage="dates",
            message="None of the matching projects has a valid start date and delivery deadline",
        )

    span = ledger_range(dated)
    message = f"No projects are active between {filt.start.isoformat()} and {filt.end.isoformat()}"
    suggestions = []
    if span is not None:
        message += f"; matching projects run from {span[0].isoformat()} to {span[1].isoformat()}"
        suggestions.append(
            FilterSuggestion(
                "date_range",
                "replace",
                "Widen the date range to cover the matching projects",
                (span[0].isoformat(), span[1].isoformat()),
            )
        )
    return FilterNotice(stage="date_range", message=message, suggestions=tuple(suggestions))


# ---------------- Frames ----------------
def records_frame(records: Iterable[ProjectRecord]) -> pd.DataFrame:
    """Tabular view of date-valid records used by the metrics modules."""
    rows = [
        {
            "name": r.name,
            "stream": r.stream,
            "team_member": r.team_member,
            "status": r.status,
            "priority": r.priority,
            "type": r.type,
            "needed_hours": float(r.needed_hours),
            "start_date": pd.Timestamp(r.start_date),
            "end_date": pd.Timestamp(r.end_date),
            "monthly_hours": float(r.monthly_hours),
        }
        for r in records
        if r.has_valid_dates
    ]
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def rank_streams(df: pd.DataFrame, value_col: str) -> pd.DataFrame:
    """Hours and project counts per stream, highest hours first."""
    if df.empty:
        return pd.DataFrame(columns=["stream", "hours", "projects"])
    grouped = (
        df.groupby("stream", sort=True)
        .agg(hours=(value_col, "sum"), projects=(value_col, "count"))
        .reset_index()
    )
    return grouped.sort_values(["hours", "stream"], ascending=[False, True]).reset_index(drop=True)


def collapse_top_n(ranked: pd.DataFrame, n: int, other_label: str) -> pd.DataFrame:
    """Keep the first ``n`` ranked rows and fold the remainder into one ``other_label`` row.

    A real stream already named ``other_label`` always goes into the folded row,
    so the label appears at most once.
    """
    if len(ranked) <= n:
        return ranked.reset_index(drop=True)
    clashing = ranked["stream"] == other_label
    rest = ranked[~clashing]
    tail = pd.concat([rest.iloc[n:], ranked[clashing]])
    other = pd.DataFrame(
        [{"stream": other_label, "hours": float(tail["hours"].sum()), "projects": int(tail["projects"].sum())}]
    )
    return pd.concat([rest.iloc[:n], other], ignore_index=True)


# ---------------- Public API ----------------
@lru_cache(maxsize=4)
def _extract_records_cached(source_text: str) -> ExtractionResult:
    return extract_records(source_text)


def load_ledger(source_text: str) -> ExtractionResult:
    return _extract_records_cached(source_text or "")
