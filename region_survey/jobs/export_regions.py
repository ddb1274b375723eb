import argparse
import json
from pathlib import Path

from region_survey.db import get_connection
from region_survey.services.aggregation import build_dashboard
from region_survey.services.region_export import build_regions_csv, export_filename
from region_survey.services.repository import PostgresRepository


def collect_regions(repo, *, tab: str, cohort: str | None = None) -> list[str]:
    archived = repo.list_archived_cohorts()
    view = "archived" if cohort and cohort in archived else "active"
    dashboard = build_dashboard(
        repo.list_all_surveys(),
        archived,
        view=view,
        cohort=cohort,
        crawl_statuses=repo.list_crawl_statuses(),
    )
    tabs = ("pending", "completed") if tab == "all" else (tab,)
    return [item["region"] for name in tabs for item in dashboard["regions"][name]]


def main():
    parser = argparse.ArgumentParser(description="Export surveyed regions as a crawling CSV")
    parser.add_argument("--tab", choices=("pending", "completed", "all"), default="pending")
    parser.add_argument("--cohort", default=None, help="Restrict to a single cohort")
    parser.add_argument("--output-dir", default=".", help="Directory to write the CSV into")
    args = parser.parse_args()

    with get_connection() as conn:
        repo = PostgresRepository(conn)
        regions = collect_regions(repo, tab=args.tab, cohort=args.cohort)

    if not regions:
        print(json.dumps({"status": "empty", "region_count": 0}, ensure_ascii=False))
        return

    output_path = Path(args.output_dir) / export_filename()
    output_path.write_bytes(build_regions_csv(regions))
    print(
        json.dumps(
            {"status": "success", "region_count": len(regions), "output": str(output_path)},
            ensure_ascii=False,
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
