from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import List, Tuple

import numpy as np
import pandas as pd

from workload.data import collapse_top_n, rank_streams
from workload.filters import AnalyticsFilter, AnalyticsSettings


WORK_DAYS_PER_WEEK = 5


@dataclass(frozen=True)
class StreamSummary:
    stream: str
    hours: float
    projects: int


@dataclass(frozen=True)
class MemberSummary:
    name: str
    total_hours: float
    total_projects: int
    streams: Tuple[StreamSummary, ...]
    work_pressure: float
    raw_work_pressure: float
    over_cap: bool

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["streams"] = [asdict(s) for s in self.streams]
        return payload


@dataclass(frozen=True)
class TeamTotals:
    members: int
    total_hours: float
    total_projects: int
    available_hours_per_member: float
    available_hours: float
    work_pressure: float
    raw_work_pressure: float
    over_cap: bool

    def to_dict(self) -> dict:
        return asdict(self)


def stream_summaries(ranked: pd.DataFrame) -> Tuple[StreamSummary, ...]:
    return tuple(
        StreamSummary(stream=str(r.stream), hours=float(r.hours), projects=int(r.projects))
        for r in ranked.itertuples(index=False)
    )


def available_work_hours(start: date, end: date, settings: AnalyticsSettings) -> float:
    """Weekday hours in [start, end], never less than ``min_period_weeks`` of work."""
    weekdays = int(np.busday_count(np.datetime64(start, "D"), np.datetime64(end + timedelta(days=1), "D")))
    floor = settings.min_period_weeks * WORK_DAYS_PER_WEEK * settings.hours_per_day
    return max(weekdays * settings.hours_per_day, floor)


def workload_pressure(hours: float, available: float, cap: float) -> Tuple[float, float, bool]:
    """Return (capped pressure %, raw pressure %, over cap)."""
    raw = (hours / available) * 100.0 if available > 0 else 0.0
    return max(0.0, min(raw, cap)), raw, raw > cap


def compute_members(df: pd.DataFrame, filters: AnalyticsFilter) -> Tuple[List[MemberSummary], TeamTotals]:
    settings = filters.settings
    available = available_work_hours(filters.start, filters.end, settings)

    members: List[MemberSummary] = []
    if not df.empty:
        totals = (
            df.groupby("team_member", sort=True)
            .agg(total_hours=("needed_hours", "sum"), total_projects=("needed_hours", "count"))
            .reset_index()
            .sort_values(["total_hours", "team_member"], ascending=[False, True])
        )
        for row in totals.itertuples(index=False):
            ranked = rank_streams(df[df["team_member"] == row.team_member], "needed_hours")
            if not filters.has_member:
                ranked = collapse_top_n(ranked, settings.top_member_streams, settings.other_label)
            pressure, raw, over_cap = workload_pressure(float(row.total_hours), available, settings.pressure_cap)
            members.append(
                MemberSummary(
                    name=str(row.team_member),
                    total_hours=float(row.total_hours),
                    total_projects=int(row.total_projects),
                    streams=stream_summaries(ranked),
                    work_pressure=pressure,
                    raw_work_pressure=raw,
                    over_cap=over_cap,
                )
            )

    team_hours = float(sum(m.total_hours for m in members))
    team_available = available * len(members)
    pressure, raw, over_cap = workload_pressure(team_hours, team_available, settings.pressure_cap)
    team = TeamTotals(
        members=len(members),
        total_hours=team_hours,
        total_projects=int(sum(m.total_projects for m in members)),
        available_hours_per_member=float(available),
        available_hours=float(team_available),
        work_pressure=pressure,
        raw_work_pressure=raw,
        over_cap=over_cap,
    )
    return members, team
