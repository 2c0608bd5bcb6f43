"""
Credo router.

GET /credo/items
GET /credo/practices
PUT /credo/practices
GET /credo/summary
"""
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.credo import (
    CredoDayRequest,
    CredoDayResponse,
    CredoItemResponse,
    CredoPracticeEntry,
    CredoSaveResponse,
    CredoSummaryResponse,
)
from app.services import credo as credo_service
from app.services.credo_catalog import CREDO_ITEMS
from app.services.weekly_aggregator import week_window

router = APIRouter(prefix="/credo", tags=["credo"])


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


@router.get("/items", response_model=list[CredoItemResponse], summary="The 11 credo items")
def list_items():
    return list(CREDO_ITEMS)


@router.get(
    "/practices",
    response_model=CredoDayResponse,
    summary="One day's credo form",
)
def get_practices(
    day: Optional[date] = Query(
        default=None,
        alias="date",
        description="ISO date (YYYY-MM-DD). Defaults to today UTC.",
    ),
    user: User = Depends(RateLimit("credo/practices:get", 60)),
    db: Session = Depends(get_db),
):
    target = day or _today()
    logs = credo_service.get_day(db, user.id, target)
    return CredoDayResponse(
        day=target,
        values={
            log.credo_id: CredoPracticeEntry(
                credo_id=log.credo_id, day=log.day, done=log.done, note=log.note or "",
            )
            for log in logs
        },
    )


@router.put(
    "/practices",
    response_model=CredoSaveResponse,
    summary="Replace one day's credo form",
    responses={422: {"description": "Unknown credo item id."}},
)
def put_practices(
    payload: CredoDayRequest,
    user: User = Depends(RateLimit("credo/practices:put", 30)),
    db: Session = Depends(get_db),
):
    """Every row for `date` is replaced by `values`; items left out are cleared."""
    saved = credo_service.replace_day(db, user.id, payload.day, payload.values)
    return CredoSaveResponse(saved=saved)


@router.get(
    "/summary",
    response_model=CredoSummaryResponse,
    summary="Credo practice summary over a date range",
    responses={422: {"description": "`from` is after `to`."}},
)
def get_summary(
    start: Optional[date] = Query(default=None, alias="from", description="Defaults to this Monday."),
    end: Optional[date] = Query(default=None, alias="to", description="Defaults to this Sunday."),
    user: User = Depends(RateLimit("credo/summary", 30)),
    db: Session = Depends(get_db),
):
    window = week_window(_today())
    return credo_service.summary_for_range(db, user.id, start or window.start, end or window.end)
