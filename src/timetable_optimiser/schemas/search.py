"""Search parameter and report schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..config import settings


class SearchParameters(BaseModel):
    """Validated knobs for one search session, defaulting to the settings."""

    slack_dominance: float = Field(default_factory=lambda: settings.slack_dominance, gt=0)
    cohesion_dominance: float = Field(default_factory=lambda: settings.cohesion_dominance, gt=0)
    route_segment_minimum: int = Field(default_factory=lambda: settings.route_segment_minimum, ge=2)
    tabu_tenure: int = Field(default_factory=lambda: settings.tabu_tenure, ge=1)
    neighbourhood_size: int = Field(default_factory=lambda: settings.neighbourhood_size, ge=1)
    candidate_list_size: int = Field(default_factory=lambda: settings.candidate_list_size, ge=1)
    iteration_limit: int = Field(default_factory=lambda: settings.iteration_limit, ge=1)
    drop_off_min_minutes: int = Field(default_factory=lambda: settings.drop_off_min_minutes, ge=1)
    drop_off_max_minutes: int = Field(default_factory=lambda: settings.drop_off_max_minutes, ge=1)
    max_fetch_workers: int = Field(default_factory=lambda: settings.max_fetch_workers, ge=1)
    max_chain_workers: int = Field(default_factory=lambda: settings.max_chain_workers, ge=1)
    random_seed: Optional[int] = Field(default_factory=lambda: settings.random_seed)

    @model_validator(mode="after")
    def _check_relations(self) -> "SearchParameters":
        if self.candidate_list_size > self.neighbourhood_size:
            raise ValueError("candidate_list_size must be less than or equal to neighbourhood_size.")
        if self.drop_off_min_minutes > self.drop_off_max_minutes:
            raise ValueError("drop_off_min_minutes must not exceed drop_off_max_minutes.")
        return self

    @classmethod
    def from_settings(cls) -> "SearchParameters":
        return cls()


class MoveModel(BaseModel):
    iteration: int
    service_id: str
    stop_id: str
    journey_code: str
    running_board: str
    original_arrival: datetime
    proposed_arrival: datetime
    proposed_departure: datetime
    change_amount_minutes: float
    objective: float
    changed_record_ids: List[str]
    description: str


class LatenessReportModel(BaseModel):
    service_id: str
    on_time_percentage: float
    average_lateness_minutes: float
    sample_count: int


class SearchReport(BaseModel):
    primary_service_id: str
    services: List[str]
    dates: List[date]
    iterations_run: int
    start_objective: float
    final_objective: float
    best_objective: float
    best_iteration: int
    stopped_reason: Literal["iteration_limit", "exhausted", "stopped"]
    moves: List[MoveModel] = Field(default_factory=list)
    lateness: List[LatenessReportModel] = Field(default_factory=list)
    output_dir: Optional[str] = Field(default=None, description="Directory holding persisted outputs.")
