from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from region_survey.services.region_label import compose_region_label


class CityOut(BaseModel):
    city_id: int
    city_name: str


class DistrictOut(BaseModel):
    district_id: int
    district_name: str
    city_id: int


class NeighborhoodOut(BaseModel):
    neighborhood_id: int
    neighborhood_name: str
    district_id: int
    last_crawled_at: datetime | None = None


class SurveyOut(BaseModel):
    id: str
    user_name: str
    cohort: str
    selected_regions: list[str] = Field(default_factory=list)
    option_type: int | None = None
    created_at: datetime


class ExistingParticipantOut(BaseModel):
    exists: bool
    existing_regions: list[str] = Field(default_factory=list)
    existing_option_type: int | None = None


class RegionAdditionIn(BaseModel):
    option_type: int
    region: str | None = None
    city: str | None = None
    district: str | None = None
    neighborhood: str | None = None
    staged_regions: list[str] = Field(default_factory=list)
    existing_regions: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def compose_manual_entry(self):
        if not (self.region or "").strip():
            self.region = compose_region_label(self.city or "", self.district or "", self.neighborhood)
        return self


class RemainingSlotsOut(BaseModel):
    seoul: int = 0
    non_seoul: int = 0
    total: int = 0


class RegionAdditionOut(BaseModel):
    valid: bool
    error_code: str | None = None
    message: str | None = None
    seoul_count: int = 0
    non_seoul_count: int = 0
    remaining_slots: RemainingSlotsOut = Field(default_factory=RemainingSlotsOut)


class SurveySubmissionIn(BaseModel):
    user_name: str = Field(..., min_length=1)
    cohort: str = Field(..., min_length=1)
    option_type: int
    selected_regions: list[str] = Field(..., min_length=1)
    confirm_merge: bool = False


class SurveySubmissionOut(BaseModel):
    status: Literal["created", "confirmation_required", "merged"]
    survey: SurveyOut | None = None
    option_type: int
    existing_regions: list[str] = Field(default_factory=list)
    new_regions: list[str] = Field(default_factory=list)
    combined_regions: list[str] = Field(default_factory=list)
    combined_total: int = 0
    max_total: int = 0


class SurveyRegionsUpdateIn(BaseModel):
    selected_regions: list[str] = Field(default_factory=list)


class SurveyRegionsUpdateOut(BaseModel):
    deleted: bool
    survey: SurveyOut | None = None


class RegionListIn(BaseModel):
    regions: list[str] = Field(..., min_length=1)


class BulkRegionRemovalOut(BaseModel):
    affected_records: int
    deleted_count: int
    updated_ids: list[str] = Field(default_factory=list)
    failures: list[dict] = Field(default_factory=list)


class CrawlStatusOut(BaseModel):
    region_name: str
    is_crawled: bool
    crawled_at: datetime | None = None


class CrawlStatusToggleIn(BaseModel):
    region: str = Field(..., min_length=1)


class CrawlStatusBulkIn(BaseModel):
    regions: list[str] = Field(..., min_length=1)
    is_crawled: bool


class CrawlStatusBulkOut(BaseModel):
    is_crawled: bool
    updated_count: int
    updated: list[str] = Field(default_factory=list)
    failures: list[dict] = Field(default_factory=list)


class CohortArchiveIn(BaseModel):
    cohort: str = Field(..., min_length=1)


class SummaryStatsOut(BaseModel):
    participant_count: int = 0
    region_count: int = 0
    total_votes: int = 0


class OptionStatsOut(BaseModel):
    option1: int = 0
    option2: int = 0
    option3: int = 0
    unknown: int = 0


class PopularRegionOut(BaseModel):
    region: str
    count: int


class RegionOverviewItemOut(BaseModel):
    region: str
    count: int
    is_crawled: bool = False
    in_catalog: bool = False
    last_crawled_at: datetime | None = None


class RegionOverviewOut(BaseModel):
    pending: list[RegionOverviewItemOut] = Field(default_factory=list)
    completed: list[RegionOverviewItemOut] = Field(default_factory=list)


class DashboardOut(BaseModel):
    view: Literal["active", "archived"]
    cohort: str | None = None
    active_cohorts: list[str] = Field(default_factory=list)
    archived_cohorts: list[str] = Field(default_factory=list)
    summary: SummaryStatsOut = Field(default_factory=SummaryStatsOut)
    option_stats: OptionStatsOut = Field(default_factory=OptionStatsOut)
    region_counts: dict[str, int] = Field(default_factory=dict)
    popular_regions: list[PopularRegionOut] = Field(default_factory=list)
    regions: RegionOverviewOut = Field(default_factory=RegionOverviewOut)
    surveys: list[SurveyOut] = Field(default_factory=list)
