import pytest

from region_survey.services.errors import RecordNotFoundError
from region_survey.services.region_mutation import delete_record, remove_regions_everywhere, replace_regions


class FakeMutationRepo:
    def __init__(self, rows):
        self.rows = {row["id"]: dict(row) for row in rows}
        self.fail_updates_for = set()
        self.rollback_count = 0

    def list_all_surveys(self):
        return [dict(row) for row in self.rows.values()]

    def delete_surveys(self, survey_ids):
        deleted = 0
        for survey_id in survey_ids:
            if self.rows.pop(survey_id, None) is not None:
                deleted += 1
        return deleted

    def update_survey_regions(self, survey_id, selected_regions, option_type=None):
        if survey_id in self.fail_updates_for:
            raise RuntimeError("statement timeout")
        row = self.rows.get(survey_id)
        if row is None:
            return None
        row["selected_regions"] = list(selected_regions)
        return dict(row)

    def rollback(self):
        self.rollback_count += 1


def _row(row_id, regions):
    return {
        "id": row_id,
        "user_name": row_id,
        "cohort": "1기",
        "selected_regions": regions,
        "option_type": 1,
        "created_at": "2026-03-01T09:00:00+00:00",
    }


def test_remove_regions_deletes_emptied_records_and_updates_others():
    repo = FakeMutationRepo(
        [
            _row("x", ["서울 강남구 역삼동"]),
            _row("y", ["서울 강남구 역삼동", "서울 중구 명동"]),
            _row("z", ["서울 마포구 합정동"]),
        ]
    )

    result = remove_regions_everywhere(repo, {"서울 강남구 역삼동"})

    assert result.affected_records == 2
    assert result.deleted_count == 1
    assert result.updated_ids == ["y"]
    assert "x" not in repo.rows
    assert repo.rows["y"]["selected_regions"] == ["서울 중구 명동"]
    assert repo.rows["z"]["selected_regions"] == ["서울 마포구 합정동"]


def test_remove_regions_is_idempotent():
    repo = FakeMutationRepo([_row("x", ["서울 강남구 역삼동"]), _row("y", ["서울 강남구 역삼동", "서울 중구 명동"])])

    assert remove_regions_everywhere(repo, ["서울 강남구 역삼동"]).affected_records == 2
    assert remove_regions_everywhere(repo, ["서울 강남구 역삼동"]).affected_records == 0


def test_remove_regions_reports_failed_items_without_counting_them():
    repo = FakeMutationRepo([_row("y", ["서울 강남구 역삼동", "서울 중구 명동"]), _row("w", ["서울 강남구 역삼동", "a"])])
    repo.fail_updates_for = {"y"}

    result = remove_regions_everywhere(repo, ["서울 강남구 역삼동"])

    assert result.affected_records == 1
    assert result.updated_ids == ["w"]
    assert result.failures == [{"id": "y", "action": "update", "error": "statement timeout"}]
    assert repo.rollback_count == 1


def test_remove_regions_with_empty_set_is_noop():
    repo = FakeMutationRepo([_row("x", ["서울 강남구 역삼동"])])
    assert remove_regions_everywhere(repo, []).affected_records == 0
    assert "x" in repo.rows


def test_replace_regions_overwrites_in_place():
    repo = FakeMutationRepo([_row("x", ["서울 강남구 역삼동"])])
    updated = replace_regions(repo, "x", ["서울 중구 명동", "서울 마포구 합정동"])
    assert updated["selected_regions"] == ["서울 중구 명동", "서울 마포구 합정동"]
    assert updated["created_at"] == "2026-03-01T09:00:00+00:00"


def test_replace_regions_with_empty_list_deletes_record():
    repo = FakeMutationRepo([_row("x", ["서울 강남구 역삼동"])])
    assert replace_regions(repo, "x", []) is None
    assert repo.list_all_surveys() == []


def test_replace_regions_missing_record():
    with pytest.raises(RecordNotFoundError):
        replace_regions(FakeMutationRepo([]), "missing", ["서울 중구 명동"])


def test_delete_record_is_unconditional():
    repo = FakeMutationRepo([_row("x", ["서울 강남구 역삼동"])])
    assert delete_record(repo, "x") == 1
    assert delete_record(repo, "x") == 0
