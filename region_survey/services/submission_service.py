from __future__ import annotations

import logging
from dataclasses import dataclass, field

from region_survey.services.allocation_policy import (
    MALFORMED_REGION_MESSAGE,
    AllocationCheck,
    find_duplicate_regions,
    find_malformed_regions,
    get_option,
    validate_regions_by_option,
)
from region_survey.services.errors import (
    DUPLICATE_REGION,
    INVALID_REGION,
    AllocationError,
    DuplicateConflictError,
    OptionLockedError,
    StoreFailureError,
)

logger = logging.getLogger(__name__)

FRESH = "fresh"
OPTION_LOCKED = "option_locked"
MERGE_CANDIDATE = "merge_candidate"
MERGE_REJECTED = "merge_rejected"


@dataclass
class ReconcileOutcome:
    kind: str
    record: dict | None = None
    existing_option_type: int | None = None
    existing_regions: list[str] = field(default_factory=list)
    check: AllocationCheck | None = None


@dataclass
class SubmissionResult:
    status: str
    record: dict | None
    existing_regions: list[str]
    new_regions: list[str]
    combined_regions: list[str]
    option_type: int
    max_total: int


def check_existing_participant(repo, user_name: str, cohort: str) -> dict:
    rows = repo.find_surveys(user_name=user_name, cohort=cohort)
    if not rows:
        return {"exists": False, "existing_regions": [], "existing_option_type": None}
    existing_regions = [region for row in rows for region in row.get("selected_regions") or []]
    option_type = next((row["option_type"] for row in rows if row.get("option_type")), None)
    return {"exists": True, "existing_regions": existing_regions, "existing_option_type": option_type}


def merge_regions(existing_regions: list[str], new_regions: list[str]) -> list[str]:
    merged = list(existing_regions)
    for region in new_regions:
        if region not in merged:
            merged.append(region)
    return merged


def reconcile(repo, user_name: str, cohort: str, option_type: int, regions: list[str]) -> ReconcileOutcome:
    """Classify a submission against the stored record for (user_name, cohort).

    Read-only: nothing is written here regardless of the outcome.
    """
    rows = repo.find_surveys(user_name=user_name, cohort=cohort)
    if not rows:
        return ReconcileOutcome(kind=FRESH)

    # find_surveys orders newest first
    record = rows[0]
    existing_regions = list(record.get("selected_regions") or [])
    existing_option_type = record.get("option_type")

    # Legacy rows without an option never lock the form.
    if existing_option_type is not None and existing_option_type != option_type:
        return ReconcileOutcome(
            kind=OPTION_LOCKED,
            record=record,
            existing_option_type=existing_option_type,
            existing_regions=existing_regions,
        )

    duplicates = find_duplicate_regions(regions, existing_regions)
    if duplicates:
        check = AllocationCheck(
            valid=False,
            error_code=DUPLICATE_REGION,
            message=f"이미 선택된 지역입니다. ({', '.join(duplicates)})",
        )
    else:
        check = validate_regions_by_option(option_type, regions, existing_regions)

    return ReconcileOutcome(
        kind=MERGE_CANDIDATE if check.valid else MERGE_REJECTED,
        record=record,
        existing_option_type=existing_option_type,
        existing_regions=existing_regions,
        check=check,
    )


def _raise_for_check(check: AllocationCheck) -> None:
    raise AllocationError(check.message or "지역 추가에 실패했습니다.", error_code=check.error_code)


def _build_result(status: str, record: dict | None, option_type: int, existing: list[str], new: list[str]):
    option = get_option(option_type)
    return SubmissionResult(
        status=status,
        record=record,
        existing_regions=existing,
        new_regions=new,
        combined_regions=merge_regions(existing, new),
        option_type=option_type,
        max_total=option.total if option else 0,
    )


def _apply_outcome(repo, outcome: ReconcileOutcome, submission: dict) -> SubmissionResult:
    option_type = submission["option_type"]
    regions = submission["selected_regions"]

    if outcome.kind == OPTION_LOCKED:
        raise OptionLockedError(outcome.existing_option_type)
    if outcome.kind == MERGE_REJECTED:
        _raise_for_check(outcome.check)

    if not submission.get("confirm_merge"):
        return _build_result("confirmation_required", outcome.record, option_type, outcome.existing_regions, regions)

    combined = merge_regions(outcome.existing_regions, regions)
    # Legacy rows stored without an option pick up the one confirmed here.
    updated = repo.update_survey_regions(outcome.record["id"], combined, option_type=option_type)
    if updated is None:
        raise StoreFailureError("설문 응답을 찾을 수 없어 지역을 추가하지 못했습니다.")
    logger.info(
        "survey_merged id=%s user_name=%s cohort=%s added=%s total=%s",
        updated["id"],
        submission["user_name"],
        submission["cohort"],
        len(combined) - len(outcome.existing_regions),
        len(combined),
    )
    return _build_result("merged", updated, option_type, outcome.existing_regions, regions)


def submit_survey(repo, submission: dict) -> SubmissionResult:
    user_name = submission["user_name"]
    cohort = submission["cohort"]
    option_type = submission["option_type"]
    regions = list(submission["selected_regions"])

    malformed = find_malformed_regions(regions)
    if malformed:
        raise AllocationError(f"{MALFORMED_REGION_MESSAGE} ({', '.join(malformed)})", error_code=INVALID_REGION)

    outcome = reconcile(repo, user_name, cohort, option_type, regions)
    if outcome.kind != FRESH:
        return _apply_outcome(repo, outcome, submission)

    duplicates = find_duplicate_regions(regions)
    if duplicates:
        raise AllocationError(f"이미 선택된 지역입니다. ({', '.join(duplicates)})", error_code=DUPLICATE_REGION)
    check = validate_regions_by_option(option_type, regions)
    if not check.valid:
        _raise_for_check(check)

    try:
        record = repo.insert_survey(
            {
                "user_name": user_name,
                "cohort": cohort,
                "selected_regions": regions,
                "option_type": option_type,
            }
        )
    except DuplicateConflictError:
        # A concurrent submission created the row first; fall back to the merge path.
        logger.info("survey_insert_conflict user_name=%s cohort=%s", user_name, cohort)
        outcome = reconcile(repo, user_name, cohort, option_type, regions)
        if outcome.kind == FRESH:
            raise StoreFailureError("설문 제출 중 충돌이 발생했습니다. 다시 시도해주세요.") from None
        return _apply_outcome(repo, outcome, {**submission, "confirm_merge": False})

    logger.info("survey_created id=%s user_name=%s cohort=%s regions=%s", record["id"], user_name, cohort, len(regions))
    return _build_result("created", record, option_type, [], regions)
