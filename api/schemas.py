from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AnalyticsSettingsModel(BaseModel):
    top_streams: int = 8
    top_member_streams: int = 5
    top_projects: int = 5
    pressure_cap: float = 150.0
    hours_per_day: float = 8.0
    min_period_weeks: int = 4
    other_label: str = "Other"


class AnalyticsFilterModel(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    member: Optional[str] = None
    streams: List[str] = Field(default_factory=list)
    statuses: List[str] = Field(default_factory=list)
    types: List[str] = Field(default_factory=list)
    settings: AnalyticsSettingsModel = Field(default_factory=AnalyticsSettingsModel)


class UploadModel(BaseModel):
    content: str
    file_name: Optional[str] = None
    filters: AnalyticsFilterModel = Field(default_factory=AnalyticsFilterModel)


class MetaListResponse(BaseModel):
    values: List[str]


class StateResponse(BaseModel):
    has_upload: bool
    file_name: Optional[str] = None
    last_update: Optional[str] = None


class ExportSection(str, Enum):
    timeline = "timeline"
    members = "members"
    streams = "streams"
    projects = "projects"
