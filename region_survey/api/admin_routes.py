from datetime import date
from typing import Literal
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from region_survey.api.dependencies import get_repository, require_admin_token
from region_survey.config import get_settings
from region_survey.models.schemas import (
    BulkRegionRemovalOut,
    CohortArchiveIn,
    CrawlStatusBulkIn,
    CrawlStatusBulkOut,
    CrawlStatusOut,
    CrawlStatusToggleIn,
    DashboardOut,
    RegionListIn,
    SurveyOut,
    SurveyRegionsUpdateIn,
    SurveyRegionsUpdateOut,
)
from region_survey.services.aggregation import build_dashboard, select_view
from region_survey.services.cohort_archive import archive_cohort
from region_survey.services.crawl_status import bulk_update_crawl_status, toggle_crawl_status
from region_survey.services.region_export import build_regions_csv, export_filename
from region_survey.services.region_mutation import delete_record, remove_regions_everywhere, replace_regions

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin_token)])


def _popular_regions_limit() -> int:
    try:
        return get_settings().popular_regions_limit
    except Exception:  # noqa: BLE001
        return 10


def _require_cohort_for_archived_view(view: str, cohort: str | None) -> None:
    if view == "archived" and not cohort:
        raise HTTPException(status_code=422, detail="cohort is required for the archived view")


@router.get("/dashboard", response_model=DashboardOut)
def get_dashboard(
    view: Literal["active", "archived"] = Query(default="active"),
    cohort: str | None = Query(default=None),
    repo=Depends(get_repository),
):
    _require_cohort_for_archived_view(view, cohort)
    dashboard = build_dashboard(
        repo.list_all_surveys(),
        repo.list_archived_cohorts(),
        view=view,
        cohort=cohort,
        crawl_statuses=repo.list_crawl_statuses(),
        server_regions=repo.list_all_server_regions(),
        popular_limit=_popular_regions_limit(),
    )
    return DashboardOut(**dashboard)


@router.get("/surveys", response_model=list[SurveyOut])
def list_surveys(
    view: Literal["active", "archived"] = Query(default="active"),
    cohort: str | None = Query(default=None),
    repo=Depends(get_repository),
):
    _require_cohort_for_archived_view(view, cohort)
    rows = select_view(repo.list_all_surveys(), repo.list_archived_cohorts(), view, cohort)
    return [SurveyOut(**row) for row in rows]


@router.put("/surveys/{survey_id}/regions", response_model=SurveyRegionsUpdateOut)
def update_survey_regions(survey_id: str, payload: SurveyRegionsUpdateIn, repo=Depends(get_repository)):
    updated = replace_regions(repo, survey_id, payload.selected_regions)
    if updated is None:
        return SurveyRegionsUpdateOut(deleted=True)
    return SurveyRegionsUpdateOut(deleted=False, survey=SurveyOut(**updated))


@router.delete("/surveys/{survey_id}", status_code=204)
def delete_survey(survey_id: str, repo=Depends(get_repository)):
    delete_record(repo, survey_id)
    return Response(status_code=204)


@router.post("/regions/remove", response_model=BulkRegionRemovalOut)
def remove_regions(payload: RegionListIn, repo=Depends(get_repository)):
    result = remove_regions_everywhere(repo, payload.regions)
    return BulkRegionRemovalOut(
        affected_records=result.affected_records,
        deleted_count=result.deleted_count,
        updated_ids=result.updated_ids,
        failures=result.failures,
    )


@router.get("/crawl-status", response_model=list[CrawlStatusOut])
def list_crawl_status(repo=Depends(get_repository)):
    return [CrawlStatusOut(**row) for row in repo.list_crawl_statuses()]


@router.post("/crawl-status/toggle", response_model=CrawlStatusOut)
def toggle_region_crawl_status(payload: CrawlStatusToggleIn, repo=Depends(get_repository)):
    return CrawlStatusOut(**toggle_crawl_status(repo, payload.region))


@router.post("/crawl-status/bulk", response_model=CrawlStatusBulkOut)
def bulk_region_crawl_status(payload: CrawlStatusBulkIn, repo=Depends(get_repository)):
    result = bulk_update_crawl_status(repo, payload.regions, payload.is_crawled)
    return CrawlStatusBulkOut(
        is_crawled=result.is_crawled,
        updated_count=result.updated_count,
        updated=result.updated,
        failures=result.failures,
    )


@router.get("/cohorts/archived", response_model=list[str])
def list_archived_cohorts(repo=Depends(get_repository)):
    return repo.list_archived_cohorts()


@router.post("/cohorts/archive", status_code=201)
def archive_cohort_endpoint(payload: CohortArchiveIn, repo=Depends(get_repository)):
    archive_cohort(repo, payload.cohort)
    return {"cohort": payload.cohort, "archived": True}


@router.post("/export/regions.csv")
def export_regions_csv(payload: RegionListIn):
    try:
        content = build_regions_csv(payload.regions)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    filename = export_filename(date.today())
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
