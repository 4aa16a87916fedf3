from workload.data import extract_records, records_frame
from workload.filters import normalize_filter
from workload.metrics_distribution import compute_distributions, count_by, top_projects


def _twelve_streams(ledger):
    rows = [
        f"P{i:02d};S{i:02d};{'Ann' if i % 2 else 'Bob'};01/01/25;31/01/25;{'Si' if i <= 4 else 'No'};Alta;;{(13 - i) * 10};;;Build"
        for i in range(1, 13)
    ]
    return records_frame(extract_records(ledger(*rows)).records)


def test_twelve_streams_collapse_into_eight_plus_other(ledger):
    dist = compute_distributions(_twelve_streams(ledger), normalize_filter({"start": "2025-01-01", "end": "2025-01-31"}))

    charted = dist["stream_distribution"]
    assert len(charted) == 9
    assert [s.stream for s in charted[:8]] == [f"S{i:02d}" for i in range(1, 9)]
    other = charted[-1]
    assert (other.stream, other.hours, other.projects) == ("Other", 100.0, 4)
    assert len(dist["stream_totals"]) == 12
    assert sum(s.hours for s in charted) == sum(s.hours for s in dist["stream_totals"])


def test_member_filter_leaves_streams_uncollapsed(ledger):
    df = _twelve_streams(ledger)
    filt = normalize_filter({"start": "2025-01-01", "end": "2025-01-31", "member": "Ann"})
    dist = compute_distributions(df[df["team_member"] == "Ann"], filt)
    assert len(dist["stream_distribution"]) == 6
    assert all(s.stream != "Other" for s in dist["stream_distribution"])


def test_category_counts(ledger):
    dist = compute_distributions(_twelve_streams(ledger), normalize_filter({"start": "2025-01-01", "end": "2025-01-31"}))
    assert dist["status"] == {"No": 8, "Si": 4}
    assert dist["priority"] == {"Alta": 12}
    assert dist["type"] == {"Build": 12}


def test_count_by_breaks_ties_by_value(ledger):
    df = records_frame(
        extract_records(
            ledger(
                "A;S;M;01/01/25;31/01/25;Zeta;;;1;;;T",
                "B;S;M;01/01/25;31/01/25;Alpha;;;1;;;T",
                "C;S;M;01/01/25;31/01/25;Mid;;;1;;;T",
                "D;S;M;01/01/25;31/01/25;Mid;;;1;;;T",
            )
        ).records
    )
    assert list(count_by(df, "status").items()) == [("Mid", 2), ("Alpha", 1), ("Zeta", 1)]


def test_top_projects(ledger):
    ranked = top_projects(_twelve_streams(ledger), 5)
    assert [p.name for p in ranked] == ["P01", "P02", "P03", "P04", "P05"]
    assert ranked[0].hours == 120.0
    assert ranked[0].member == "Ann"
    assert ranked[1].stream == "S02"
