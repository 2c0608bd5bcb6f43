"""
Weekly report schemas.

GET  /reports/weekly            → WeeklyReportResponse (report may be null)
POST /reports/weekly/generate   → WeeklyReportGenerateRequest → WeeklyReportResponse
"""
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from app.schemas.common import ApiModel
from app.schemas.credo import CredoSummaryResponse


class DailyTimeOut(ApiModel):
    date: str
    label: str
    seconds: int


class StatusCountsOut(ApiModel):
    total: int
    todo: int
    in_progress: int
    paused: int
    done: int


class TopTaskOut(ApiModel):
    title: str
    status: str
    seconds: int
    due_date: Optional[str] = None


class ActivitySummaryOut(ApiModel):
    total_seconds: int
    daily: list[DailyTimeOut]
    status_counts: StatusCountsOut
    top_tasks: list[TopTaskOut]


class ProfileSnapshotOut(ApiModel):
    name: Optional[str] = None
    weekly_goal: Optional[str] = None
    coach_tone: Optional[str] = None
    active_hours: Optional[str] = None


class WeeklyReportContextOut(ApiModel):
    week_label: str
    week_start: date
    week_end: date
    profile: ProfileSnapshotOut
    summary: ActivitySummaryOut
    credo_summary: CredoSummaryResponse
    condition_highlights: list[str]


class WeeklyReportOut(ApiModel):
    id: int
    week_start: date
    condition_summary: str
    activity_summary: str
    ai_analysis: str
    next_week_focus: list[str]
    supporter_export: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("next_week_focus", mode="before")
    @classmethod
    def only_strings(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]


class WeeklyReportResponse(ApiModel):
    report: Optional[WeeklyReportOut] = None
    context: WeeklyReportContextOut


class WeeklyReportGenerateRequest(ApiModel):
    week_start: Optional[date] = Field(
        default=None,
        description="Any day of the target week; defaults to the current week.",
    )


class WeeklyReportPayload(ApiModel):
    """Fields the LLM must return; coerced leniently."""
    condition_summary: str = ""
    activity_summary: str = ""
    ai_analysis: str = ""
    next_week_focus: list[str] = Field(default_factory=list)
    supporter_export: str = ""

    @field_validator(
        "condition_summary", "activity_summary", "ai_analysis", "supporter_export",
        mode="before",
    )
    @classmethod
    def to_text(cls, v: Any) -> str:
        if isinstance(v, str):
            return v
        if v is None:
            return ""
        return json.dumps(v, ensure_ascii=False)

    @field_validator("next_week_focus", mode="before")
    @classmethod
    def to_text_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]
