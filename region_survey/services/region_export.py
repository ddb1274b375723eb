from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable

from region_survey.services.region_label import split_region_label

CSV_HEADERS = ("시/도", "시/군/구", "읍/면/동")
CSV_BOM = "\ufeff"


def export_filename(on: date | None = None) -> str:
    return f"수요조사_지역목록_{(on or date.today()).isoformat()}.csv"


def build_regions_csv(regions: Iterable[str]) -> bytes:
    """Render region labels as a BOM-prefixed UTF-8 CSV, one column per division.

    The header row is written bare and every data field is quoted, matching the
    sheet the crawling team already imports.
    """
    labels = list(regions)
    if not labels:
        raise ValueError("nothing to export")

    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(split_region_label(label) for label in labels)
    return (CSV_BOM + buffer.getvalue().rstrip("\n")).encode("utf-8")
