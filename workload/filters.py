from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class AnalyticsSettings:
    top_streams: int = 8
    top_member_streams: int = 5
    top_projects: int = 5
    pressure_cap: float = 150.0
    hours_per_day: float = 8.0
    min_period_weeks: int = 4
    other_label: str = "Other"


@dataclass(frozen=True)
class AnalyticsFilter:
    start: date
    end: date
    member: Optional[str] = None
    streams: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    settings: AnalyticsSettings = field(default_factory=AnalyticsSettings)

    @property
    def has_member(self) -> bool:
        return bool(self.member)


def _as_date(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid filter date {value!r}, expected YYYY-MM-DD") from exc


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _bounded_int(value: object, default: int, low: int, high: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        out = default
    return max(low, min(high, out))


def _positive_float(value: object, default: float) -> float:
    try:
        out = float(value)  # type: ignore[arg-type]
    except Exception:
        return default
    return out if out > 0 else default


def normalize_settings(raw: Optional[dict]) -> AnalyticsSettings:
    s = raw or {}
    defaults = AnalyticsSettings()
    other_label = str(s.get("other_label") or defaults.other_label).strip() or defaults.other_label
    return AnalyticsSettings(
        top_streams=_bounded_int(s.get("top_streams", defaults.top_streams), defaults.top_streams, 1, 100),
        top_member_streams=_bounded_int(
            s.get("top_member_streams", defaults.top_member_streams), defaults.top_member_streams, 1, 100
        ),
        top_projects=_bounded_int(s.get("top_projects", defaults.top_projects), defaults.top_projects, 1, 100),
        pressure_cap=_positive_float(s.get("pressure_cap", defaults.pressure_cap), defaults.pressure_cap),
        hours_per_day=_positive_float(s.get("hours_per_day", defaults.hours_per_day), defaults.hours_per_day),
        min_period_weeks=_bounded_int(s.get("min_period_weeks", defaults.min_period_weeks), defaults.min_period_weeks, 0, 52),
        other_label=other_label,
    )


def normalize_filter(raw: dict, *, available_range: Optional[Tuple[date, date]] = None) -> AnalyticsFilter:
    """Build an AnalyticsFilter from loosely-typed input.

    Missing dates fall back to ``available_range`` (the span of the ledger);
    an inverted range is swapped rather than producing an empty timeline.
    """
    start = _as_date(raw.get("start"))
    end = _as_date(raw.get("end"))
    if available_range is not None:
        start = start or available_range[0]
        end = end or available_range[1]
    if start is None or end is None:
        raise ValueError("A start and end date are required when the ledger has no dated records")
    if start > end:
        start, end = end, start

    member = (raw.get("member") or "").strip() or None

    return AnalyticsFilter(
        start=start,
        end=end,
        member=member,
        streams=_as_str_list(raw.get("streams")),
        statuses=_as_str_list(raw.get("statuses")),
        types=_as_str_list(raw.get("types")),
        settings=normalize_settings(raw.get("settings")),
    )


def filter_to_dict(filt: AnalyticsFilter) -> dict:
    return {
        "start": filt.start.isoformat(),
        "end": filt.end.isoformat(),
        "member": filt.member,
        "streams": list(filt.streams),
        "statuses": list(filt.statuses),
        "types": list(filt.types),
        "settings": asdict(filt.settings),
    }
