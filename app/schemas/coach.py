"""
Coach schemas: chat history and the daily study plan.

GET  /coach/chat   → ChatHistoryResponse
POST /coach/chat   → ChatRequest → ChatResponse
POST /coach/plan   → PlanRequest → PlanResponse
"""
from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import Field, field_validator

from app.schemas.common import ApiModel

CHAT_MESSAGE_MAX = 2_000


class ChatRequest(ApiModel):
    message: Annotated[str, Field(min_length=1, max_length=CHAT_MESSAGE_MAX)]

    @field_validator("message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class ChatMessageOut(ApiModel):
    id: int
    role: str
    message: str
    created_at: Optional[datetime] = None


class ChatHistoryResponse(ApiModel):
    messages: list[ChatMessageOut]


class ChatResponse(ApiModel):
    user_message: ChatMessageOut
    assistant_message: ChatMessageOut


class PlanRequest(ApiModel):
    day: Optional[date] = Field(
        default=None,
        alias="date",
        description="Plan day (YYYY-MM-DD). Defaults to today UTC.",
    )


class PlanTask(ApiModel):
    title: Annotated[str, Field(min_length=1, max_length=100)]
    duration_minutes: Annotated[int, Field(gt=0, le=120)]
    time_slot: str
    task_id: Optional[int] = None
    note: Optional[str] = None


class StudyPlan(ApiModel):
    """Validated shape of a plan, whether generated or rule-based."""
    day: str = Field(alias="date")
    focus: Annotated[str, Field(max_length=50)]
    tasks: Annotated[list[PlanTask], Field(min_length=1, max_length=10)]
    coach_message: Annotated[str, Field(max_length=300)]


class PlanResponse(ApiModel):
    plan: StudyPlan
