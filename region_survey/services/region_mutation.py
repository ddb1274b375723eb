from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from region_survey.services.errors import RecordNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class BulkMutationResult:
    deleted_count: int = 0
    updated_ids: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    @property
    def affected_records(self) -> int:
        return self.deleted_count + len(self.updated_ids)


def remove_regions_everywhere(repo, regions: Iterable[str]) -> BulkMutationResult:
    """Strip the given labels from every survey, deleting surveys left empty.

    Items are applied independently and never rolled back; failures are
    reported in the result and excluded from the affected count.
    """
    to_remove = set(regions)
    result = BulkMutationResult()
    if not to_remove:
        return result

    delete_ids: list[str] = []
    updates: list[tuple[str, list[str]]] = []
    for record in repo.list_all_surveys():
        selected = list(record.get("selected_regions") or [])
        remaining = [region for region in selected if region not in to_remove]
        if len(remaining) == len(selected):
            continue
        if remaining:
            updates.append((record["id"], remaining))
        else:
            delete_ids.append(record["id"])

    if delete_ids:
        try:
            deleted_count = repo.delete_surveys(delete_ids)
        except Exception as exc:  # noqa: BLE001
            repo.rollback()
            logger.warning("survey_bulk_delete_failed ids=%s error=%s", delete_ids, exc)
            result.failures.extend({"id": x, "action": "delete", "error": str(exc)} for x in delete_ids)
        else:
            result.deleted_count = deleted_count
            if deleted_count != len(delete_ids):
                logger.warning("survey_bulk_delete_mismatch expected=%s deleted=%s", len(delete_ids), deleted_count)

    for survey_id, remaining in updates:
        try:
            updated = repo.update_survey_regions(survey_id, remaining)
        except Exception as exc:  # noqa: BLE001
            repo.rollback()
            logger.warning("survey_region_update_failed id=%s error=%s", survey_id, exc)
            result.failures.append({"id": survey_id, "action": "update", "error": str(exc)})
            continue
        if updated is None:
            logger.warning("survey_region_update_missing id=%s", survey_id)
            result.failures.append({"id": survey_id, "action": "update", "error": "record not found"})
            continue
        result.updated_ids.append(survey_id)

    logger.info(
        "survey_regions_removed regions=%s deleted=%s updated=%s failed=%s",
        len(to_remove),
        result.deleted_count,
        len(result.updated_ids),
        len(result.failures),
    )
    return result


def delete_record(repo, record_id: str) -> int:
    deleted = repo.delete_surveys([record_id])
    logger.info("survey_deleted id=%s deleted=%s", record_id, deleted)
    return deleted


def replace_regions(repo, record_id: str, new_regions: list[str]) -> dict | None:
    """Overwrite a survey's regions; an empty list deletes the survey and returns None."""
    if not new_regions:
        delete_record(repo, record_id)
        return None

    updated = repo.update_survey_regions(record_id, list(new_regions))
    if updated is None:
        raise RecordNotFoundError("설문 응답을 찾을 수 없습니다.")
    return updated
