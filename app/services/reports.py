"""
Weekly report service.

Public API
----------
build_context(db, user, reference, now)        → WeeklyReportContext
get_report(db, user_id, week_start)            → WeeklyReport | None
generate_report(db, user, llm, reference, now) → (WeeklyReport, WeeklyReportContext)
export_markdown(report, context)               → str

Rules
-----
- Tasks feeding a week are those due OR created inside its window.
- Credo logs feeding a week are those dated inside its window.
- One stored report per (user, week_start); regeneration overwrites it.
- An LLM failure is surfaced as AIGenerationFailedError (502); nothing is
  written in that case.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AIGenerationFailedError, LLMError
from app.models.task import StudyTask
from app.models.user import User
from app.models.weekly_report import WeeklyReport
from app.schemas.report import WeeklyReportPayload
from app.services.accounts import get_profile_row
from app.services.credo import logs_in_range
from app.services.llm import AnthropicLLM
from app.services.time_accrual import as_utc, format_duration
from app.services.weekly_aggregator import (
    CredoSummary,
    TaskSummary,
    WeekWindow,
    condition_highlights,
    summarize_credo,
    summarize_tasks,
    week_window,
)

logger = logging.getLogger(__name__)

REPORT_MAX_TOKENS = 900
REPORT_TEMPERATURE = 0.45


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

@dataclass
class ProfileSnapshot:
    name: Optional[str] = None
    weekly_goal: Optional[str] = None
    coach_tone: Optional[str] = None
    active_hours: Optional[str] = None


@dataclass
class WeeklyReportContext:
    window: WeekWindow
    profile: ProfileSnapshot
    summary: TaskSummary
    credo_summary: CredoSummary
    condition_highlights: list[str]

    @property
    def week_label(self) -> str:
        return self.window.label

    @property
    def week_start(self) -> date:
        return self.window.start

    @property
    def week_end(self) -> date:
        return self.window.end


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _tasks_touching(db: Session, user_id: int, window: WeekWindow) -> list[StudyTask]:
    tasks = (
        db.query(StudyTask)
        .filter(StudyTask.user_id == user_id)
        .order_by(StudyTask.created_at, StudyTask.id)
        .all()
    )

    def _inside(value: Optional[datetime]) -> bool:
        return value is not None and window.start_at <= as_utc(value) < window.end_before

    return [t for t in tasks if _inside(t.due_at) or _inside(t.created_at)]


def build_context(
    db: Session,
    user: User,
    reference: Optional[date] = None,
    now: Optional[datetime] = None,
) -> WeeklyReportContext:
    now = now or _now()
    window = week_window(reference or now.date())

    profile = get_profile_row(db, user.id)
    snapshot = ProfileSnapshot(
        name=user.name,
        weekly_goal=profile.weekly_goal if profile else None,
        coach_tone=profile.coach_tone if profile else None,
        active_hours=profile.active_hours if profile else None,
    )

    summary = summarize_tasks(_tasks_touching(db, user.id, window), window, now)
    credo = summarize_credo(logs_in_range(db, user.id, window.start, window.end))

    return WeeklyReportContext(
        window=window,
        profile=snapshot,
        summary=summary,
        credo_summary=credo,
        condition_highlights=condition_highlights(credo),
    )


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_system_prompt() -> str:
    return (
        "You are the weekly report assistant of a study coaching app. Summarise the "
        "student's study time, tasks, credo habits and condition into a review that "
        "can also be handed to parents or teachers.\n"
        "Reply with a single JSON object and nothing else. It must contain:\n"
        "1. conditionSummary: a short look back at condition and credo habits (max 220 characters).\n"
        "2. activitySummary: impressions and achievements, touching on study time and task "
        "progress (max 220 characters).\n"
        "3. aiAnalysis: one sentence of insight into growth areas or behaviour (max 220 characters).\n"
        "4. nextWeekFocus: an array of 2 to 3 short, action-oriented suggestions.\n"
        "5. supporterExport: a polite message for parents and teachers covering the student's "
        "state and how to support them next week (max 240 characters).\n"
        "Write natural sentences, not bullet points."
    )


def build_user_prompt(context: WeeklyReportContext) -> str:
    summary = context.summary
    credo = context.credo_summary
    profile = context.profile

    daily = " / ".join(f"{row.label}:{format_duration(row.seconds)}" for row in summary.daily)
    if summary.top_tasks:
        top = " / ".join(
            f"{t.title}({t.status.replace('_', '')}) {format_duration(t.seconds)}"
            + (f" / {t.due_date}" if t.due_date else "")
            for t in summary.top_tasks
        )
    else:
        top = "no matching tasks"
    ranking = (
        " / ".join(f"{r.title}({r.count}x)" for r in credo.ranking[:3])
        if credo.ranking else "no records"
    )
    missing = " / ".join(m.title for m in credo.missing[:3]) if credo.missing else "none"
    counts = summary.status_counts

    return (
        f"Week: {context.week_label}\n"
        "Profile:\n"
        f"- Name: {profile.name or 'not set'}\n"
        f"- Weekly goal: {profile.weekly_goal or 'not set'}\n"
        f"- Active hours: {profile.active_hours or 'not set'}\n"
        f"- Coach tone: {profile.coach_tone or 'gentle'}\n"
        "Study time:\n"
        f"- Total: {format_duration(summary.total_seconds)}\n"
        f"- Daily: {daily}\n"
        "Tasks:\n"
        f"- Counts (todo:{counts.todo}, in progress:{counts.in_progress}, "
        f"paused:{counts.paused}, done:{counts.done})\n"
        f"- Highlights: {top}\n"
        "Credo:\n"
        f"- Practiced rate: {credo.practiced_rate}%\n"
        f"- Most practiced: {ranking}\n"
        f"- Not yet practiced: {missing}\n"
        f"Condition highlights: {' / '.join(context.condition_highlights)}\n"
        "Use this to write the condition, activity, analysis, next week focus and "
        "supporter message as JSON. Keep next week focus concrete, actionable and at most 3 items."
    )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def get_report(db: Session, user_id: int, week_start: date) -> Optional[WeeklyReport]:
    return (
        db.query(WeeklyReport)
        .filter(WeeklyReport.user_id == user_id, WeeklyReport.week_start == week_start)
        .first()
    )


def _apply(report: WeeklyReport, payload: WeeklyReportPayload) -> None:
    report.condition_summary = payload.condition_summary
    report.activity_summary = payload.activity_summary
    report.ai_analysis = payload.ai_analysis
    report.next_week_focus = list(payload.next_week_focus)
    report.supporter_export = payload.supporter_export


def upsert_report(
    db: Session,
    user_id: int,
    week_start: date,
    payload: WeeklyReportPayload,
) -> WeeklyReport:
    report = get_report(db, user_id, week_start)
    if report is None:
        report = WeeklyReport(user_id=user_id, week_start=week_start)
        db.add(report)
    _apply(report, payload)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent generation inserted the row first; overwrite it.
        db.rollback()
        report = get_report(db, user_id, week_start)
        _apply(report, payload)
        db.commit()
    db.refresh(report)
    return report


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate_report(
    db: Session,
    user: User,
    llm: AnthropicLLM,
    reference: Optional[date] = None,
    now: Optional[datetime] = None,
) -> tuple[WeeklyReport, WeeklyReportContext]:
    context = build_context(db, user, reference, now)
    messages = [
        {"role": "system", "content": build_system_prompt()},
        {"role": "user", "content": build_user_prompt(context)},
    ]
    try:
        raw = llm.chat_json(messages, max_tokens=REPORT_MAX_TOKENS, temperature=REPORT_TEMPERATURE)
        payload = WeeklyReportPayload.model_validate(raw)
    except (LLMError, ValidationError) as exc:
        logger.warning("Weekly report generation failed for user %s: %s", user.id, exc)
        raise AIGenerationFailedError() from exc

    report = upsert_report(db, user.id, context.week_start, payload)
    logger.info("Weekly report %s stored for week %s", report.id, context.week_start)
    return report, context


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------

def export_markdown(report: WeeklyReport, context: WeeklyReportContext) -> str:
    summary = context.summary
    credo = context.credo_summary
    counts = summary.status_counts

    daily_lines = "\n".join(
        f"- {row.date} ({row.label}): {format_duration(row.seconds)}" for row in summary.daily
    )
    if summary.top_tasks:
        top_lines = "\n".join(
            f"- {t.title} ({t.status.replace('_', '')})"
            + (f" / due {t.due_date}" if t.due_date else "")
            + f": {format_duration(t.seconds)}"
            for t in summary.top_tasks
        )
    else:
        top_lines = "- none"
    focus = report.next_week_focus or []
    focus_lines = "\n".join(f"- {item}" for item in focus) if focus else "- none"
    most = credo.ranking[0].title if credo.ranking else "no records"
    missing = " / ".join(m.title for m in credo.missing[:3]) or "none"

    return (
        f"# Weekly report ({context.week_label})\n"
        "\n"
        "## Condition and credo\n"
        f"{report.condition_summary}\n"
        "\n"
        f"- Highlights: {' / '.join(context.condition_highlights)}\n"
        f"- Credo practiced rate: {credo.practiced_rate}% (most practiced: {most}) "
        f"not yet practiced: {missing}\n"
        "\n"
        "## Activity summary\n"
        f"{report.activity_summary}\n"
        "\n"
        f"### Study time (total: {format_duration(summary.total_seconds)})\n"
        f"{daily_lines}\n"
        "\n"
        "### Tasks\n"
        f"- Total: {counts.total}, done: {counts.done}, in progress: {counts.in_progress}, "
        f"paused: {counts.paused}, todo: {counts.todo}\n"
        "- Top tasks:\n"
        f"{top_lines}\n"
        "\n"
        "## AI analysis\n"
        f"{report.ai_analysis}\n"
        "\n"
        "## Next week focus\n"
        f"{focus_lines}\n"
        "\n"
        "## Message for supporters\n"
        f"{report.supporter_export}\n"
    )
