from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from region_survey.services.errors import (
    DUPLICATE_REGION,
    INVALID_OPTION,
    INVALID_REGION,
    QUOTA_EXCEEDED,
    WRONG_REGION_KIND,
)
from region_survey.services.region_label import count_by_kind, is_well_formed_region_label

MALFORMED_REGION_MESSAGE = "시/도와 시/군/구를 입력해주세요."


@dataclass(frozen=True)
class OptionDefinition:
    option_id: int
    max_seoul: int
    max_non_seoul: int
    total: int
    label: str


OPTIONS: dict[int, OptionDefinition] = {
    1: OptionDefinition(option_id=1, max_seoul=5, max_non_seoul=0, total=5, label="서울 5개"),
    2: OptionDefinition(option_id=2, max_seoul=0, max_non_seoul=10, total=10, label="경기/인천/지방 10개"),
    3: OptionDefinition(option_id=3, max_seoul=3, max_non_seoul=2, total=5, label="서울 3개 + 경기/인천/지방 2개"),
}


@dataclass(frozen=True)
class AllocationCheck:
    valid: bool
    seoul_count: int = 0
    non_seoul_count: int = 0
    error_code: str | None = None
    message: str | None = None
    region_kind: str | None = None


def get_option(option_type: int | None) -> OptionDefinition | None:
    if option_type is None:
        return None
    return OPTIONS.get(option_type)


def _reject(code: str, message: str, seoul: int, non_seoul: int, region_kind: str | None = None) -> AllocationCheck:
    return AllocationCheck(
        valid=False,
        seoul_count=seoul,
        non_seoul_count=non_seoul,
        error_code=code,
        message=message,
        region_kind=region_kind,
    )


def validate_regions_by_option(
    option_type: int | None,
    regions: Sequence[str],
    existing_regions: Sequence[str] = (),
) -> AllocationCheck:
    """Check whether existing + candidate regions fit the option's quota.

    Both sequences are counted as a multiset, so a repeated label counts twice.
    The candidate batch is accepted or rejected as a whole.
    """
    seoul, non_seoul = count_by_kind([*existing_regions, *regions])

    if option_type == 1:
        if non_seoul > 0:
            return _reject(WRONG_REGION_KIND, "옵션 1은 서울 지역만 선택할 수 있습니다.", seoul, non_seoul, "non_seoul")
        if seoul > 5:
            return _reject(
                QUOTA_EXCEEDED,
                f"서울 지역은 최대 5개까지 선택 가능합니다. (현재 {seoul}개)",
                seoul,
                non_seoul,
                "seoul",
            )
    elif option_type == 2:
        if seoul > 0:
            return _reject(
                WRONG_REGION_KIND,
                "옵션 2는 경기/인천/지방 지역만 선택할 수 있습니다.",
                seoul,
                non_seoul,
                "seoul",
            )
        if non_seoul > 10:
            return _reject(
                QUOTA_EXCEEDED,
                f"경기/인천/지방 지역은 최대 10개까지 선택 가능합니다. (현재 {non_seoul}개)",
                seoul,
                non_seoul,
                "non_seoul",
            )
    elif option_type == 3:
        if seoul > 3:
            return _reject(
                QUOTA_EXCEEDED,
                f"서울 지역은 최대 3개까지 선택 가능합니다. (현재 {seoul}개)",
                seoul,
                non_seoul,
                "seoul",
            )
        if non_seoul > 2:
            return _reject(
                QUOTA_EXCEEDED,
                f"경기/인천/지방 지역은 최대 2개까지 선택 가능합니다. (현재 {non_seoul}개)",
                seoul,
                non_seoul,
                "non_seoul",
            )
    else:
        return _reject(INVALID_OPTION, "올바른 옵션을 선택해주세요.", seoul, non_seoul)

    return AllocationCheck(valid=True, seoul_count=seoul, non_seoul_count=non_seoul)


def find_duplicate_regions(regions: Iterable[str], existing_regions: Iterable[str] = ()) -> list[str]:
    seen = set(existing_regions)
    duplicates: list[str] = []
    for region in regions:
        if region in seen and region not in duplicates:
            duplicates.append(region)
        seen.add(region)
    return duplicates


def find_malformed_regions(regions: Iterable[str]) -> list[str]:
    return [region for region in regions if not is_well_formed_region_label(region)]


def check_region_addition(
    option_type: int | None,
    region: str,
    staged_regions: Sequence[str] = (),
    existing_regions: Sequence[str] = (),
) -> AllocationCheck:
    if not is_well_formed_region_label(region):
        seoul, non_seoul = count_by_kind([*existing_regions, *staged_regions])
        return _reject(INVALID_REGION, MALFORMED_REGION_MESSAGE, seoul, non_seoul)
    if region in staged_regions or region in existing_regions:
        seoul, non_seoul = count_by_kind([*existing_regions, *staged_regions])
        return _reject(DUPLICATE_REGION, "이미 선택된 지역입니다.", seoul, non_seoul)
    return validate_regions_by_option(option_type, [region], [*staged_regions, *existing_regions])


def remaining_slots(
    option_type: int | None,
    existing_regions: Sequence[str] = (),
    staged_regions: Sequence[str] = (),
) -> dict[str, int]:
    option = get_option(option_type)
    if option is None:
        return {"seoul": 0, "non_seoul": 0, "total": 0}
    seoul, non_seoul = count_by_kind([*existing_regions, *staged_regions])
    return {
        "seoul": option.max_seoul - seoul,
        "non_seoul": option.max_non_seoul - non_seoul,
        "total": option.total - len(existing_regions) - len(staged_regions),
    }
