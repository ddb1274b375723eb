
from fastapi import APIRouter, Depends, Query, Response

from region_survey.api.dependencies import get_repository
from region_survey.models.schemas import (
    CityOut,
    DistrictOut,
    ExistingParticipantOut,
    NeighborhoodOut,
    RegionAdditionIn,
    RegionAdditionOut,
    RemainingSlotsOut,
    SurveyOut,
    SurveySubmissionIn,
    SurveySubmissionOut,
)
from region_survey.services.allocation_policy import check_region_addition, remaining_slots
from region_survey.services.region_label import is_seoul_region
from region_survey.services.submission_service import check_existing_participant, submit_survey

router = APIRouter(prefix="/api/v1", tags=["v1"])


def _filter_cities_for_option(rows: list[dict], option_type: int | None) -> list[dict]:
    if option_type == 1:
        return [row for row in rows if is_seoul_region(row["city_name"])]
    if option_type == 2:
        return [row for row in rows if not is_seoul_region(row["city_name"])]
    return rows


@router.get("/regions/cities", response_model=list[CityOut])
def list_cities(
    option_type: int | None = Query(default=None, ge=1, le=3),
    repo=Depends(get_repository),
):
    rows = _filter_cities_for_option(repo.list_cities(), option_type)
    return [CityOut(**row) for row in rows]


@router.get("/regions/cities/{city_id}/districts", response_model=list[DistrictOut])
def list_districts(city_id: int, repo=Depends(get_repository)):
    return [DistrictOut(**row) for row in repo.list_districts(city_id)]


@router.get("/regions/districts/{district_id}/neighborhoods", response_model=list[NeighborhoodOut])
def list_neighborhoods(district_id: int, repo=Depends(get_repository)):
    return [NeighborhoodOut(**row) for row in repo.list_neighborhoods(district_id)]


@router.get("/surveys/existing", response_model=ExistingParticipantOut)
def get_existing_participant(
    user_name: str = Query(..., min_length=1),
    cohort: str = Query(..., min_length=1),
    repo=Depends(get_repository),
):
    return ExistingParticipantOut(**check_existing_participant(repo, user_name, cohort))


@router.post("/surveys/regions/check", response_model=RegionAdditionOut)
def check_region(payload: RegionAdditionIn):
    check = check_region_addition(
        payload.option_type,
        payload.region,
        payload.staged_regions,
        payload.existing_regions,
    )
    staged = [*payload.staged_regions, payload.region] if check.valid else payload.staged_regions
    return RegionAdditionOut(
        valid=check.valid,
        error_code=check.error_code,
        message=check.message,
        seoul_count=check.seoul_count,
        non_seoul_count=check.non_seoul_count,
        remaining_slots=RemainingSlotsOut(**remaining_slots(payload.option_type, payload.existing_regions, staged)),
    )


@router.post("/surveys", response_model=SurveySubmissionOut)
def create_survey(payload: SurveySubmissionIn, response: Response, repo=Depends(get_repository)):
    result = submit_survey(repo, payload.model_dump())
    if result.status == "created":
        response.status_code = 201
    return SurveySubmissionOut(
        status=result.status,
        survey=SurveyOut(**result.record) if result.record else None,
        option_type=result.option_type,
        existing_regions=result.existing_regions,
        new_regions=result.new_regions,
        combined_regions=result.combined_regions,
        combined_total=len(result.combined_regions),
        max_total=result.max_total,
    )
