"""
Weekly report router.

GET  /reports/weekly
POST /reports/weekly/generate
GET  /reports/weekly/export
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.core.errors import ReportNotFoundError
from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.report import WeeklyReportGenerateRequest, WeeklyReportResponse
from app.services import reports as report_service
from app.services.llm import AnthropicLLM, get_llm

router = APIRouter(prefix="/reports", tags=["reports"])

WEEK_START_HELP = "Any day of the target week (YYYY-MM-DD). Defaults to the current week."


@router.get(
    "/weekly",
    response_model=WeeklyReportResponse,
    summary="Stored weekly report (if any) and its live context",
)
def get_weekly(
    week_start: Optional[date] = Query(default=None, alias="weekStart", description=WEEK_START_HELP),
    user: User = Depends(RateLimit("reports/weekly:get", 60)),
    db: Session = Depends(get_db),
):
    context = report_service.build_context(db, user, week_start)
    report = report_service.get_report(db, user.id, context.week_start)
    return WeeklyReportResponse(report=report, context=context)


@router.post(
    "/weekly/generate",
    response_model=WeeklyReportResponse,
    summary="Generate (or regenerate) the weekly report with the LLM",
    responses={502: {"description": "The LLM call failed or returned unusable JSON."}},
)
def generate_weekly(
    payload: Optional[WeeklyReportGenerateRequest] = None,
    user: User = Depends(RateLimit("reports/weekly:generate", 10)),
    db: Session = Depends(get_db),
    llm: AnthropicLLM = Depends(get_llm),
):
    reference = payload.week_start if payload else None
    report, context = report_service.generate_report(db, user, llm, reference)
    return WeeklyReportResponse(report=report, context=context)


@router.get(
    "/weekly/export",
    summary="Download the weekly report as Markdown",
    response_class=Response,
    responses={
        200: {"content": {"text/markdown": {}}},
        404: {"description": "No report generated for that week."},
    },
)
def export_weekly(
    week_start: Optional[date] = Query(default=None, alias="weekStart", description=WEEK_START_HELP),
    user: User = Depends(RateLimit("reports/weekly:export", 20)),
    db: Session = Depends(get_db),
):
    context = report_service.build_context(db, user, week_start)
    report = report_service.get_report(db, user.id, context.week_start)
    if report is None:
        raise ReportNotFoundError(context.week_start)
    body = report_service.export_markdown(report, context)
    filename = f"weekly-report-{context.week_start.isoformat()}.md"
    return Response(
        content=body,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
