from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import pandas as pd

from workload.data import collapse_top_n, rank_streams
from workload.filters import AnalyticsFilter
from workload.metrics_members import StreamSummary, stream_summaries


@dataclass(frozen=True)
class TopProject:
    name: str
    hours: float
    stream: str
    member: str


def count_by(df: pd.DataFrame, column: str) -> Dict[str, int]:
    """Record counts per raw category value, most frequent first."""
    if df.empty:
        return {}
    counts = df.groupby(column, sort=True).size()
    ordered = sorted(((str(k), int(v)) for k, v in counts.items()), key=lambda kv: (-kv[1], kv[0]))
    return dict(ordered)


def top_projects(df: pd.DataFrame, n: int) -> Tuple[TopProject, ...]:
    if df.empty:
        return ()
    ranked = df.sort_values(["needed_hours", "name"], ascending=[False, True]).head(n)
    return tuple(
        TopProject(name=str(r.name), hours=float(r.needed_hours), stream=str(r.stream), member=str(r.team_member))
        for r in ranked.itertuples(index=False)
    )


def compute_distributions(df: pd.DataFrame, filters: AnalyticsFilter) -> Dict[str, Any]:
    settings = filters.settings
    ranked = rank_streams(df, "needed_hours")
    charted = ranked if filters.has_member else collapse_top_n(ranked, settings.top_streams, settings.other_label)

    stream_totals: Tuple[StreamSummary, ...] = stream_summaries(ranked)
    return {
        "status": count_by(df, "status"),
        "priority": count_by(df, "priority"),
        "type": count_by(df, "type"),
        "stream_distribution": stream_summaries(charted),
        "stream_totals": stream_totals,
        "top_projects": top_projects(df, settings.top_projects),
    }
