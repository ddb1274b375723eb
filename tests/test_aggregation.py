from datetime import datetime, timezone

from region_survey.services.aggregation import (
    active_cohorts,
    build_dashboard,
    build_region_overview,
    count_by_region,
    dedupe,
    option_stats,
    partition_by_cohort_archive_status,
    popular_regions,
    summary_stats,
)


def _row(row_id, user_name, cohort, regions, option_type=1, created_at="2026-03-01T09:00:00+00:00"):
    return {
        "id": row_id,
        "user_name": user_name,
        "cohort": cohort,
        "selected_regions": regions,
        "option_type": option_type,
        "created_at": created_at,
    }


def test_dedupe_keeps_latest_per_participant():
    older = _row("a", "Kim", "1기", ["서울 강남구 역삼동"], created_at="2026-03-01T09:00:00+00:00")
    newer = _row("b", "Kim", "1기", ["서울 서초구 방배동"], created_at="2026-03-02T09:00:00+00:00")
    other_cohort = _row("c", "Kim", "2기", ["서울 중구 명동"])

    result = dedupe([older, newer, other_cohort])

    assert [row["id"] for row in result] == ["b", "c"]


def test_dedupe_accepts_datetime_values_and_keeps_first_on_tie():
    ts = datetime(2026, 3, 1, tzinfo=timezone.utc)
    first = _row("a", "Kim", "1기", [], created_at=ts)
    second = _row("b", "Kim", "1기", [], created_at=ts)
    assert [row["id"] for row in dedupe([first, second])] == ["a"]


def test_count_by_region_counts_once_per_record():
    rows = [
        _row("a", "Kim", "1기", ["서울 강남구 역삼동", "서울 강남구 역삼동", "서울 중구 명동"]),
        _row("b", "Lee", "1기", ["서울 강남구 역삼동"]),
    ]
    assert count_by_region(rows) == {"서울 강남구 역삼동": 2, "서울 중구 명동": 1}


def test_partition_by_cohort_archive_status():
    rows = [_row("a", "Kim", "1기", []), _row("b", "Lee", "2기", []), _row("c", "Park", "3기", [])]
    partition = partition_by_cohort_archive_status(rows, ["1기", "3기"])
    assert [row["id"] for row in partition["active"]] == ["b"]
    assert [row["id"] for row in partition["archived"]] == ["a", "c"]


def test_option_and_summary_stats():
    rows = [
        _row("a", "Kim", "1기", ["서울 강남구 역삼동", "서울 중구 명동"], option_type=1),
        _row("b", "Lee", "1기", ["부산 해운대구 우동"], option_type=2),
        _row("c", "Park", "1기", ["서울 중구 명동"], option_type=None),
    ]
    assert option_stats(rows) == {"option1": 1, "option2": 1, "option3": 0, "unknown": 1}
    assert summary_stats(rows, count_by_region(rows)) == {
        "participant_count": 3,
        "region_count": 3,
        "total_votes": 4,
    }


def test_popular_regions_ranks_by_count_then_label():
    counts = {"b": 2, "a": 2, "c": 5, "d": 1}
    assert popular_regions(counts, limit=3) == [
        {"region": "c", "count": 5},
        {"region": "a", "count": 2},
        {"region": "b", "count": 2},
    ]


def test_active_cohorts_sorted_unique():
    rows = [_row("a", "Kim", "2기", []), _row("b", "Lee", "1기", []), _row("c", "Park", "2기", [])]
    assert active_cohorts(rows) == ["1기", "2기"]


def test_build_region_overview_splits_by_crawl_status():
    overview = build_region_overview(
        {"서울 강남구 역삼동": 3, "부산 해운대구 우동": 1, "경기 수원시": 2},
        [
            {"region_name": "서울 강남구 역삼동", "is_crawled": True},
            {"region_name": "경기 수원시", "is_crawled": False},
        ],
        [
            {
                "city_name": "서울",
                "district_name": "강남구",
                "neighborhood_name": "역삼동",
                "last_crawled_at": "2026-02-20T00:00:00+00:00",
            }
        ],
    )
    assert [item["region"] for item in overview["pending"]] == ["경기 수원시", "부산 해운대구 우동"]
    completed = overview["completed"]
    assert len(completed) == 1
    assert completed[0]["count"] == 3
    assert completed[0]["in_catalog"] is True
    assert completed[0]["last_crawled_at"] == "2026-02-20T00:00:00+00:00"


def test_build_dashboard_active_and_archived_views():
    rows = [
        _row("a", "Kim", "1기", ["서울 강남구 역삼동"], created_at="2026-03-01T09:00:00+00:00"),
        _row("b", "Kim", "1기", ["서울 서초구 방배동"], created_at="2026-03-02T09:00:00+00:00"),
        _row("c", "Lee", "2기", ["부산 해운대구 우동"], option_type=2),
    ]

    active = build_dashboard(rows, ["2기"], view="active")
    assert active["summary"]["participant_count"] == 1
    assert active["region_counts"] == {"서울 서초구 방배동": 1}
    assert active["active_cohorts"] == ["1기"]
    assert len(active["surveys"]) == 2

    archived = build_dashboard(rows, ["2기"], view="archived", cohort="2기")
    assert archived["option_stats"]["option2"] == 1
    assert archived["popular_regions"] == [{"region": "부산 해운대구 우동", "count": 1}]
    assert archived["active_cohorts"] == ["1기"]
