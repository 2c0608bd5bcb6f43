"""
Coach service: AI chat and the daily study plan.

Public API
----------
recent_messages(db, user_id, limit)      → list[ChatMessage]   (oldest first)
post_chat(db, user, message, llm, now)   → (ChatMessage, ChatMessage)
make_plan(db, user, llm, day, now)       → StudyPlan

Rules
-----
- Chat never fails because of the LLM: when it is not configured or the
  call fails, a deterministic fallback reply is stored instead.
- Each chat POST stores exactly one (user, assistant) pair in one commit,
  then trims the user's history to CHAT_MAX_KEEP, oldest first.
- The plan is validated against StudyPlan; an invalid or failed LLM reply
  falls back to a rule-based plan built from the same context.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import LLMError
from app.models.chat_message import ChatMessage
from app.models.task import StudyTask, TaskStatus
from app.models.user import User
from app.schemas.coach import PlanTask, StudyPlan
from app.services.accounts import get_profile_row
from app.services.credo import logs_in_range
from app.services.tasks import day_bounds
from app.services.time_accrual import as_utc
from app.services.weekly_aggregator import CredoSummary, summarize_credo, week_window

logger = logging.getLogger(__name__)

CHAT_MAX_TOKENS = 500
CHAT_TEMPERATURE = 0.7
CHAT_PROMPT_TURNS = 10
PLAN_MAX_TOKENS = 1000
PLAN_TEMPERATURE = 0.5
PLAN_TASK_LIMIT = 20

ACTIVE_HOURS_LABELS = {
    "morning": "morning (6-9)",
    "day": "midday (12-15)",
    "evening": "evening (18-21)",
}

ACTIVE_HOURS_SLOTS = {
    "morning": ["6:00-7:00", "7:00-8:00", "8:00-9:00", "9:00-10:00"],
    "day": ["12:00-13:00", "13:00-14:00", "14:00-15:00", "15:00-16:00"],
    "evening": ["18:00-19:00", "19:00-20:00", "20:00-21:00", "21:00-22:00"],
}

FALLBACK_SLOTS = {
    "morning": ("7:00-7:05", "7:30-7:45", "8:00-8:05"),
    "day": ("12:00-12:05", "13:00-13:15", "14:00-14:05"),
    "evening": ("19:00-19:05", "19:30-19:45", "20:00-20:05"),
}

TONE_INSTRUCTIONS = {
    "gentle": "Encourage kindly and suggest one small step. Use phrases like \"let's try\".",
    "logical": "Organise the situation logically and give concrete ordered steps: first, then.",
    "energetic": "Cheer the student on with energy and push them to act now.",
}


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

@dataclass
class CoachContext:
    name: Optional[str]
    weekly_goal: Optional[str]
    active_hours: Optional[str]
    coach_tone: Optional[str]
    credo_summary: CredoSummary
    recent: list[ChatMessage] = field(default_factory=list)
    tasks: list[StudyTask] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def recent_messages(db: Session, user_id: int, limit: Optional[int] = None) -> list[ChatMessage]:
    limit = limit or settings.CHAT_MAX_HISTORY
    rows = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == user_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(rows))


def build_context(db: Session, user: User, now: datetime) -> CoachContext:
    profile = get_profile_row(db, user.id)
    window = week_window(now)
    return CoachContext(
        name=user.name,
        weekly_goal=profile.weekly_goal if profile else None,
        active_hours=profile.active_hours if profile else None,
        coach_tone=profile.coach_tone if profile else None,
        credo_summary=summarize_credo(logs_in_range(db, user.id, window.start, window.end)),
        recent=recent_messages(db, user.id),
    )


def _plan_tasks(db: Session, user_id: int, day: date) -> list[StudyTask]:
    """Open tasks due on `day` or undated, oldest first."""
    start, end = day_bounds(day)
    rows = (
        db.query(StudyTask)
        .filter(
            StudyTask.user_id == user_id,
            StudyTask.status.in_([TaskStatus.todo, TaskStatus.in_progress, TaskStatus.paused]),
        )
        .order_by(StudyTask.created_at, StudyTask.id)
        .all()
    )
    picked = [
        t for t in rows
        if t.due_at is None or start <= as_utc(t.due_at) < end
    ]
    return picked[:PLAN_TASK_LIMIT]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

def fallback_reply(message: str) -> str:
    trimmed = message.strip()
    if not trimmed:
        return "Tell me a little more about it."
    excerpt = trimmed[:30] + ("..." if len(trimmed) > 30 else "")
    return (
        f"Let's think about \"{excerpt}\" together. "
        "Start with one small action you can finish in five minutes."
    )


def build_chat_system_prompt(context: CoachContext) -> str:
    credo = context.credo_summary
    active = ACTIVE_HOURS_LABELS.get(context.active_hours or "", context.active_hours or "not set")
    ranking = ", ".join(r.title for r in credo.ranking[:3]) or "no data yet"
    missing = ", ".join(m.title for m in credo.missing[:3]) or "all practiced!"
    tone = TONE_INSTRUCTIONS.get(context.coach_tone or "gentle", TONE_INSTRUCTIONS["gentle"])

    return (
        "You are a study coach AI supporting students aged 14 to 18, including students "
        "who find it hard to attend school.\n"
        "\n"
        "## Your role\n"
        "- Listen to the student and work out the next step together\n"
        "- Encourage practice of the credo (11 habits)\n"
        "- Break big goals into small actions\n"
        "\n"
        "## Student profile\n"
        f"- Name: {context.name or 'student'}\n"
        f"- Weekly goal: {context.weekly_goal or 'not set'}\n"
        f"- Preferred hours: {active}\n"
        "\n"
        "## Credo practice this week\n"
        f"- Practiced rate: {credo.practiced_rate}%\n"
        f"- Often practiced: {ranking}\n"
        f"- Not yet practiced: {missing}\n"
        "\n"
        "## Tone\n"
        f"{tone}\n"
        "\n"
        "## Answer rules\n"
        "1. Conclusion, then reason, then next step\n"
        "2. At most 3 suggested actions per reply\n"
        "3. Always include one thing that can be done in the first 5 minutes\n"
        "4. Offer options instead of deciding for the student\n"
        "5. Keep it short\n"
        "\n"
        "## Never\n"
        "- Open with negative words\n"
        "- Lecture or use jargon"
    )


def generate_reply(llm, message: str, context: CoachContext) -> str:
    if not llm.configured:
        logger.warning("ANTHROPIC_API_KEY is not set, using fallback chat reply")
        return fallback_reply(message)

    history = [
        {"role": m.role, "content": m.message}
        for m in context.recent[-CHAT_PROMPT_TURNS:]
        if m.role in ("user", "assistant")
    ]
    messages = [
        {"role": "system", "content": build_chat_system_prompt(context)},
        *history,
        {"role": "user", "content": message},
    ]
    try:
        reply = llm.chat(messages, max_tokens=CHAT_MAX_TOKENS, temperature=CHAT_TEMPERATURE).content
    except LLMError as exc:
        logger.warning("Chat generation failed, using fallback: %s", exc)
        return fallback_reply(message)
    return reply.strip() or fallback_reply(message)


def _trim_history(db: Session, user_id: int, keep: int) -> int:
    total = db.query(ChatMessage).filter(ChatMessage.user_id == user_id).count()
    overflow = total - keep
    if overflow <= 0:
        return 0
    old_ids = [
        row_id for (row_id,) in
        db.query(ChatMessage.id)
        .filter(ChatMessage.user_id == user_id)
        .order_by(ChatMessage.created_at, ChatMessage.id)
        .limit(overflow)
        .all()
    ]
    db.query(ChatMessage).filter(ChatMessage.id.in_(old_ids)).delete(synchronize_session=False)
    return len(old_ids)


def post_chat(
    db: Session,
    user: User,
    message: str,
    llm,
    now: Optional[datetime] = None,
) -> tuple[ChatMessage, ChatMessage]:
    now = now or _now()
    context = build_context(db, user, now)
    reply = generate_reply(llm, message, context)

    try:
        user_msg = ChatMessage(user_id=user.id, role="user", message=message.strip())
        db.add(user_msg)
        db.flush()
        assistant_msg = ChatMessage(user_id=user.id, role="assistant", message=reply)
        db.add(assistant_msg)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user_msg)
    db.refresh(assistant_msg)

    removed = _trim_history(db, user.id, settings.CHAT_MAX_KEEP)
    if removed:
        db.commit()
        logger.info("Trimmed %d old chat messages for user %s", removed, user.id)
    return user_msg, assistant_msg


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

def build_plan_system_prompt() -> str:
    return (
        "You are a study planner AI. Build today's study plan for the student.\n"
        "\n"
        "## Output\n"
        "Reply with JSON only, in exactly this shape:\n"
        "{\n"
        '  "date": "YYYY-MM-DD",\n'
        '  "focus": "theme of the day (max 20 characters)",\n'
        '  "tasks": [\n'
        '    {"title": "task name (max 50 characters)", "durationMinutes": 30, '
        '"timeSlot": "9:00-9:30", "note": "optional"}\n'
        "  ],\n"
        '  "coachMessage": "encouragement (max 100 characters)"\n'
        "}\n"
        "\n"
        "## Rules\n"
        "1. 3 to 5 tasks\n"
        "2. Each task takes 15 to 60 minutes\n"
        "3. At most 2 hours in total\n"
        "4. Prefer the student's active hours\n"
        "5. Reuse registered tasks when there are any\n"
        "6. Make the first task a short one (5 to 15 minutes) so it is easy to start\n"
        "7. Work in credo items with a low practice rate"
    )


def build_plan_user_prompt(context: CoachContext, day: date) -> str:
    credo = context.credo_summary
    label = ACTIVE_HOURS_LABELS.get(context.active_hours or "", context.active_hours or "not set")
    slots = ACTIVE_HOURS_SLOTS.get(context.active_hours or "", [])
    tasks = (
        "\n".join(f"- [ID: {t.id}] {t.title} (status: {t.status.value})" for t in context.tasks)
        if context.tasks else "no registered tasks"
    )
    ranking = ", ".join(f"{r.title}({r.count}x)" for r in credo.ranking[:3]) or "no data yet"
    missing = ", ".join(m.title for m in credo.missing[:3]) or "all practiced"

    lines = [
        "## Date",
        f"{day.isoformat()} ({day.strftime('%A')})",
        "",
        "## Student",
        f"- Name: {context.name or 'student'}",
        f"- Weekly goal: {context.weekly_goal or 'not set'}",
        f"- Preferred hours: {label}",
    ]
    if slots:
        lines.append(f"- Suggested slots: {', '.join(slots)}")
    lines += [
        "",
        "## Credo practice (this week)",
        f"- Practiced rate: {credo.practiced_rate}%",
        f"- Often practiced: {ranking}",
        f"- Not yet practiced: {missing}",
        "",
        "## Registered tasks",
        tasks,
        "",
        "Create today's study plan as JSON. When a registered task fits, use its name as the title.",
    ]
    return "\n".join(lines)


def match_task_id(title: str, tasks: list[StudyTask]) -> Optional[int]:
    """First registered task whose title contains, or is contained in, `title`."""
    wanted = title.lower()
    for task in tasks:
        existing = task.title.lower()
        if existing in wanted or wanted in existing or f"ID: {task.id}" in title:
            return task.id
    return None


def fallback_plan(context: CoachContext, day: date, last_message: Optional[str]) -> StudyPlan:
    hours = context.active_hours if context.active_hours in FALLBACK_SLOTS else "day"
    first, second, third = FALLBACK_SLOTS[hours]
    credo = context.credo_summary
    top = credo.ranking[0].title if credo.ranking else None
    goal = context.weekly_goal

    tasks = [
        PlanTask(
            title=f"Practice \"{top or 'a credo item you like'}\" for 5 minutes"[:100],
            duration_minutes=5,
            time_slot=first,
            note="Write one line about it in your notes",
        ),
        PlanTask(
            title=(f"Spend 15 minutes on your weekly goal \"{goal[:20]}\"" if goal
                   else "Move one thing you want to do this week forward for 15 minutes")[:100],
            duration_minutes=15,
            time_slot=second,
        ),
        PlanTask(
            title=(f"Look back at \"{last_message[:20]}...\" and pick the next step" if last_message
                   else "Write a 5-minute reflection on today")[:100],
            duration_minutes=5,
            time_slot=third,
        ),
    ]

    if top:
        focus = top
    elif goal:
        focus = f"Weekly goal \"{goal[:15]}\""
    else:
        focus = "Keep the small actions going"

    name = context.name or "there"
    label = ACTIVE_HOURS_LABELS[hours]
    if context.coach_tone == "logical":
        message = (
            f"Hi {name}, your credo practice rate is {credo.practiced_rate}%. "
            f"Stack up short actions and block out focus time in the {label}."
        )
    else:
        message = (
            f"Hi {name}, your credo practice rate is {credo.practiced_rate}%. "
            f"Starting small is enough. Grab 15 minutes in the {label} and praise yourself when done."
        )

    return StudyPlan(day=day.isoformat(), focus=focus[:50], tasks=tasks, coach_message=message[:300])


def make_plan(
    db: Session,
    user: User,
    llm,
    day: Optional[date] = None,
    now: Optional[datetime] = None,
) -> StudyPlan:
    now = now or _now()
    day = day or now.date()
    context = build_context(db, user, now)
    context.tasks = _plan_tasks(db, user.id, day)
    last_message = next(
        (m.message for m in reversed(context.recent) if m.role == "user"), None
    )

    if not llm.configured:
        logger.warning("ANTHROPIC_API_KEY is not set, using fallback plan")
        return fallback_plan(context, day, last_message)

    messages = [
        {"role": "system", "content": build_plan_system_prompt()},
        {"role": "user", "content": build_plan_user_prompt(context, day)},
    ]
    try:
        raw = llm.chat_json(messages, max_tokens=PLAN_MAX_TOKENS, temperature=PLAN_TEMPERATURE)
        plan = StudyPlan.model_validate(raw)
    except (LLMError, ValidationError) as exc:
        logger.warning("Plan generation failed for user %s, using fallback: %s", user.id, exc)
        return fallback_plan(context, day, last_message)

    for task in plan.tasks:
        task.task_id = match_task_id(task.title, context.tasks)
    return plan
