from __future__ import annotations

from typing import Iterable, NamedTuple

SEOUL_PREFIX = "서울"


class RegionParts(NamedTuple):
    city: str
    district: str
    neighborhood: str


def is_seoul_region(label: str) -> bool:
    return label.startswith(SEOUL_PREFIX)


def count_by_kind(labels: Iterable[str]) -> tuple[int, int]:
    seoul_count = 0
    non_seoul_count = 0
    for label in labels:
        if is_seoul_region(label):
            seoul_count += 1
        else:
            non_seoul_count += 1
    return seoul_count, non_seoul_count


def compose_region_label(city: str, district: str, neighborhood: str | None = None) -> str:
    # Manual entry may leave the neighborhood blank.
    parts = (city, district, neighborhood)
    return " ".join(part.strip() for part in parts if part and part.strip())


def is_well_formed_region_label(label: str) -> bool:
    """A label needs at least a top division and a sub-division."""
    return len(label.split()) >= 2


def split_region_label(label: str) -> RegionParts:
    parts = label.split(" ")
    return RegionParts(
        city=parts[0] if parts else "",
        district=parts[1] if len(parts) > 1 else "",
        neighborhood=" ".join(parts[2:]),
    )
