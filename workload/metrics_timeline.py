from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterator, List

import pandas as pd

from workload.data import collapse_top_n, rank_streams
from workload.filters import AnalyticsFilter


MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class TimelineBucket:
    month: str
    month_start: date
    stream_hours: Dict[str, float]
    total_hours: float
    total_projects: int

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "date": self.month_start.isoformat(),
            "stream_data": dict(self.stream_hours),
            "total_hours": self.total_hours,
            "total_projects": self.total_projects,
        }


def month_label(anchor: date) -> str:
    return f"{MONTH_ABBR[anchor.month - 1]}-{anchor.year % 100:02d}"


def month_end(anchor: date) -> date:
    return date(anchor.year, anchor.month, monthrange(anchor.year, anchor.month)[1])


def month_starts(start: date, end: date) -> Iterator[date]:
    """First-of-month anchors from the month of ``start`` through the month of ``end``."""
    current = date(start.year, start.month, 1)
    while current <= end:
        yield current
        current = date(current.year + current.month // 12, current.month % 12 + 1, 1)


def build_timeline(df: pd.DataFrame, filters: AnalyticsFilter) -> List[TimelineBucket]:
    """One bucket per calendar month of the filter range, empty months included.

    Each active record contributes ``needed_hours / months_active`` to every
    month it overlaps, so a project spanning several months is counted in each
    of them. Downstream totals depend on this, keep it.
    """
    settings = filters.settings
    buckets: List[TimelineBucket] = []
    for anchor in month_starts(filters.start, filters.end):
        if df.empty:
            active = df
        else:
            active = df[(df["start_date"] <= pd.Timestamp(month_end(anchor))) & (df["end_date"] >= pd.Timestamp(anchor))]

        by_stream = rank_streams(active, "monthly_hours")
        if not filters.has_member:
            by_stream = collapse_top_n(by_stream, settings.top_streams, settings.other_label)

        buckets.append(
            TimelineBucket(
                month=month_label(anchor),
                month_start=anchor,
                stream_hours={str(r.stream): float(r.hours) for r in by_stream.itertuples(index=False)},
                total_hours=float(active["monthly_hours"].sum()) if not active.empty else 0.0,
                total_projects=int(len(active)),
            )
        )
    return buckets
