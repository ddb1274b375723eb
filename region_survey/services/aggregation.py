from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable

from region_survey.services.region_label import compose_region_label


def _to_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time(), tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


def participant_key(record: dict) -> tuple[str, str]:
    return (record.get("user_name") or "", record.get("cohort") or "")


def dedupe(records: Iterable[dict]) -> list[dict]:
    """Keep the latest record per (user_name, cohort); the first seen wins a tie."""
    latest: dict[tuple[str, str], dict] = {}
    for record in records:
        key = participant_key(record)
        current = latest.get(key)
        if current is None or _to_datetime(record.get("created_at")) > _to_datetime(current.get("created_at")):
            latest[key] = record
    return list(latest.values())


def count_by_region(records: Iterable[dict]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for record in records:
        for region in dict.fromkeys(record.get("selected_regions") or []):
            counts[region] = counts.get(region, 0) + 1
    return counts


def partition_by_cohort_archive_status(records: Iterable[dict], archived_cohorts: Iterable[str]) -> dict[str, list[dict]]:
    archived_set = set(archived_cohorts)
    partition: dict[str, list[dict]] = {"active": [], "archived": []}
    for record in records:
        bucket = "archived" if record.get("cohort") in archived_set else "active"
        partition[bucket].append(record)
    return partition


def option_stats(records: Iterable[dict]) -> dict[str, int]:
    stats = {"option1": 0, "option2": 0, "option3": 0, "unknown": 0}
    for record in records:
        option_type = record.get("option_type")
        if option_type in (1, 2, 3):
            stats[f"option{option_type}"] += 1
        else:
            stats["unknown"] += 1
    return stats


def summary_stats(records: list[dict], region_counts: dict[str, int]) -> dict[str, int]:
    return {
        "participant_count": len(records),
        "region_count": len(region_counts),
        "total_votes": sum(len(record.get("selected_regions") or []) for record in records),
    }


def popular_regions(region_counts: dict[str, int], limit: int = 10) -> list[dict]:
    ranked = sorted(region_counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"region": region, "count": count} for region, count in ranked[:limit]]


def active_cohorts(records: Iterable[dict]) -> list[str]:
    return sorted({record["cohort"] for record in records if record.get("cohort")})


def build_region_overview(
    region_counts: dict[str, int],
    crawl_statuses: Iterable[dict],
    server_regions: Iterable[dict],
) -> dict[str, list[dict]]:
    crawled = {row["region_name"]: bool(row.get("is_crawled")) for row in crawl_statuses}
    catalog = {
        compose_region_label(row["city_name"], row["district_name"], row["neighborhood_name"]): row
        for row in server_regions
    }

    overview: dict[str, list[dict]] = {"pending": [], "completed": []}
    for region in sorted(region_counts):
        catalog_row = catalog.get(region)
        is_crawled = crawled.get(region) is True
        overview["completed" if is_crawled else "pending"].append(
            {
                "region": region,
                "count": region_counts[region],
                "is_crawled": is_crawled,
                "in_catalog": catalog_row is not None,
                "last_crawled_at": catalog_row.get("last_crawled_at") if catalog_row else None,
            }
        )
    return overview


def select_view(records: list[dict], archived_cohorts: list[str], view: str, cohort: str | None = None) -> list[dict]:
    partition = partition_by_cohort_archive_status(records, archived_cohorts)
    selected = partition["archived" if view == "archived" else "active"]
    if cohort is not None:
        selected = [record for record in selected if record.get("cohort") == cohort]
    return selected


def build_dashboard(
    records: list[dict],
    archived_cohorts: list[str],
    *,
    view: str = "active",
    cohort: str | None = None,
    crawl_statuses: Iterable[dict] = (),
    server_regions: Iterable[dict] = (),
    popular_limit: int = 10,
) -> dict:
    """Recompute every admin aggregate from the raw record set."""
    scoped = select_view(records, archived_cohorts, view, cohort)
    unique = dedupe(scoped)
    region_counts = count_by_region(unique)
    return {
        "view": view,
        "cohort": cohort,
        "active_cohorts": active_cohorts(partition_by_cohort_archive_status(records, archived_cohorts)["active"]),
        "archived_cohorts": list(archived_cohorts),
        "summary": summary_stats(unique, region_counts),
        "option_stats": option_stats(unique),
        "region_counts": region_counts,
        "popular_regions": popular_regions(region_counts, popular_limit),
        "regions": build_region_overview(region_counts, crawl_statuses, server_regions),
        "surveys": scoped,
    }
