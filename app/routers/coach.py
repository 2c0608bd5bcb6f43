"""
Coach router.

GET  /coach/chat
POST /coach/chat
POST /coach/plan
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.coach import (
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    PlanRequest,
    PlanResponse,
)
from app.services import coach as coach_service
from app.services.llm import AnthropicLLM, get_llm

router = APIRouter(prefix="/coach", tags=["coach"])


@router.get("/chat", response_model=ChatHistoryResponse, summary="Recent chat history, oldest first")
def chat_history(
    user: User = Depends(RateLimit("coach/chat:get", 60)),
    db: Session = Depends(get_db),
):
    return ChatHistoryResponse(messages=coach_service.recent_messages(db, user.id))


@router.post("/chat", response_model=ChatResponse, summary="Send a message to the coach")
def chat(
    payload: ChatRequest,
    user: User = Depends(RateLimit("coach/chat:post", 30)),
    db: Session = Depends(get_db),
    llm: AnthropicLLM = Depends(get_llm),
):
    """Falls back to a canned reply when the LLM is unavailable; never 5xx for LLM errors."""
    user_msg, assistant_msg = coach_service.post_chat(db, user, payload.message, llm)
    return ChatResponse(user_message=user_msg, assistant_message=assistant_msg)


@router.post("/plan", response_model=PlanResponse, summary="Today's study plan")
def plan(
    payload: Optional[PlanRequest] = None,
    user: User = Depends(RateLimit("coach/plan", 10)),
    db: Session = Depends(get_db),
    llm: AnthropicLLM = Depends(get_llm),
):
    day = payload.day if payload else None
    return PlanResponse(plan=coach_service.make_plan(db, user, llm, day))
