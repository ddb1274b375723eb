WRONG_REGION_KIND = "wrong_region_kind"
QUOTA_EXCEEDED = "quota_exceeded"
INVALID_OPTION = "invalid_option"
DUPLICATE_REGION = "duplicate_region"
INVALID_REGION = "invalid_region"
OPTION_LOCKED = "option_locked"
STORE_FAILURE = "store_failure"
RECORD_NOT_FOUND = "record_not_found"
COHORT_ALREADY_ARCHIVED = "cohort_already_archived"


class SurveyError(Exception):
    """Base class for errors that are reported back to the caller as-is."""

    error_code = "survey_error"
    status_code = 400

    def __init__(self, message: str, *, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class AllocationError(SurveyError):
    status_code = 422


class OptionLockedError(SurveyError):
    error_code = OPTION_LOCKED
    status_code = 409

    def __init__(self, existing_option_type: int):
        super().__init__(f"이미 옵션 {existing_option_type}으로 등록되어 있습니다. 옵션을 변경할 수 없습니다.")
        self.existing_option_type = existing_option_type


class RecordNotFoundError(SurveyError):
    error_code = RECORD_NOT_FOUND
    status_code = 404


class CohortAlreadyArchivedError(SurveyError):
    error_code = COHORT_ALREADY_ARCHIVED
    status_code = 409


class StoreFailureError(SurveyError):
    error_code = STORE_FAILURE
    status_code = 503


class DuplicateConflictError(RuntimeError):
    """Raised by the repository when a unique constraint rejects an insert."""
