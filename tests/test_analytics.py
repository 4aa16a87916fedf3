import pytest

from workload.analytics import AnalyticsFailure, AnalyticsResult, compute_analytics

JAN_LEDGER = "H;S;M;Start;End;Status;Priority;Group;Hours;Notes;Stakeholder;Type\nH;S;M;01/01/25;31/01/25;Si;Alta;;80;;;TypeA\n"


def test_single_january_record():
    result = compute_analytics(JAN_LEDGER, {"start": "2025-01-01", "end": "2025-01-31"})
    assert isinstance(result, AnalyticsResult)

    assert len(result.timeline) == 1
    bucket = result.timeline[0]
    assert (bucket.month, bucket.total_hours, bucket.total_projects) == ("Jan-25", 80.0, 1)

    member = result.members[0]
    assert member.name == "M"
    assert member.total_hours == 80.0
    assert member.work_pressure == pytest.approx(80.0 / 184.0 * 100.0)
    assert result.status_distribution == {"Si": 1}
    assert result.type_distribution == {"TypeA": 1}
    assert result.top_projects[0].name == "H"


def test_invalid_calendar_date_is_excluded_without_raising(ledger):
    text = ledger(
        "Good;Core;Ann;01/01/25;31/01/25;Si;Alta;;80;;;Build",
        "Bad;Core;Bob;31/02/25;31/03/25;Si;Alta;;50;;;Build",
    )
    result = compute_analytics(text, {"start": "2025-01-01", "end": "2025-03-31"})
    assert isinstance(result, AnalyticsResult)
    assert [m.name for m in result.members] == ["Ann"]
    assert result.excluded_invalid_dates == (3,)
    assert result.extraction.invalid_dates == (3,)
    assert sum(b.total_projects for b in result.timeline) == 1


def test_payload_is_idempotent(small_ledger):
    filters = {"start": "2025-01-01", "end": "2025-03-31"}
    first = compute_analytics(small_ledger, filters).to_dict()
    second = compute_analytics(small_ledger, filters).to_dict()
    assert first == second
    assert first["filters"]["start"] == "2025-01-01"
    assert [b["month"] for b in first["timeline"]] == ["Jan-25", "Feb-25", "Mar-25"]


def test_missing_dates_default_to_ledger_span(small_ledger):
    result = compute_analytics(small_ledger, {})
    assert result.filters.start.isoformat() == "2025-01-01"
    assert result.filters.end.isoformat() == "2025-03-15"


def test_inverted_range_is_swapped(small_ledger):
    result = compute_analytics(small_ledger, {"start": "2025-03-31", "end": "2025-01-01"})
    assert result.filters.start.isoformat() == "2025-01-01"
    assert len(result.timeline) == 3


def test_empty_filter_result_has_notice(small_ledger):
    result = compute_analytics(small_ledger, {"start": "2025-01-01", "end": "2025-02-28", "member": "Zoe"})
    assert isinstance(result, AnalyticsResult)
    assert result.is_empty
    assert result.team.work_pressure == 0.0
    assert len(result.timeline) == 2
    payload = result.to_dict()
    assert payload["diagnostics"]["notices"][0]["stage"] == "member"


def test_pressure_never_exceeds_cap(ledger):
    result = compute_analytics(
        ledger("Big;Core;Ann;01/01/25;31/01/25;Si;Alta;;5000;;;Build"), {"start": "2025-01-01", "end": "2025-01-31"}
    )
    assert result.members[0].work_pressure == 150.0
    assert result.members[0].over_cap
    assert result.team.work_pressure == 150.0


def test_custom_settings(small_ledger):
    result = compute_analytics(
        small_ledger, {"start": "2025-01-01", "end": "2025-03-31", "settings": {"top_projects": 1, "pressure_cap": 20}}
    )
    assert len(result.top_projects) == 1
    assert all(m.work_pressure <= 20.0 for m in result.members)


@pytest.mark.parametrize(
    "text,reason",
    [
        ("", "empty_source"),
        ("   \n  ", "empty_source"),
        ("only a header", "invalid_source"),
    ],
)
def test_whole_input_failures(text, reason):
    failure = compute_analytics(text, {"start": "2025-01-01", "end": "2025-01-31"})
    assert isinstance(failure, AnalyticsFailure)
    assert failure.reason == reason
    assert failure.to_dict()["details"]


def test_no_usable_records(ledger):
    failure = compute_analytics(ledger(";Core;;01/01/25;31/01/25"), {"start": "2025-01-01", "end": "2025-01-31"})
    assert isinstance(failure, AnalyticsFailure)
    assert failure.reason == "no_records"


def test_bad_filter_date_raises(small_ledger):
    with pytest.raises(ValueError):
        compute_analytics(small_ledger, {"start": "January", "end": "2025-01-31"})


def test_no_dated_records_without_filter_range(ledger):
    text = ledger("A;Core;Ann;31/02/25;xx;Si;Alta;;8;;;Build")
    failure = compute_analytics(text, {})
    assert isinstance(failure, AnalyticsFailure)
    assert failure.reason == "no_dated_records"

    result = compute_analytics(text, {"start": "2025-01-01", "end": "2025-01-31"})
    assert isinstance(result, AnalyticsResult)
    assert result.notices[0].stage == "dates"
