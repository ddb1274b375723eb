import logging

from region_survey.services.errors import CohortAlreadyArchivedError

logger = logging.getLogger(__name__)


def archive_cohort(repo, cohort: str) -> None:
    # No unarchive path exists.
    if not repo.archive_cohort(cohort):
        raise CohortAlreadyArchivedError(f"'{cohort}' 기수는 이미 마무리되었습니다.")
    logger.info("cohort_archived cohort=%s", cohort)
