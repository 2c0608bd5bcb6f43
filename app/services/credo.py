"""
Credo service: per-day practice form and summaries over a date range.

Public API
----------
get_day(db, user_id, day)                 → list[CredoPracticeLog]
replace_day(db, user_id, day, values)     → int   (rows saved)
summary_for_range(db, user_id, start, end) → CredoSummary

A day's form always replaces that day's full set of rows
(delete-then-insert, one commit).
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Mapping

from sqlalchemy.orm import Session

from app.core.errors import InvalidDateRangeError, UnknownCredoItemError
from app.models.credo_log import CredoPracticeLog
from app.schemas.credo import CredoPracticeValue
from app.services.credo_catalog import CREDO_IDS
from app.services.weekly_aggregator import CredoSummary, summarize_credo

logger = logging.getLogger(__name__)


def logs_in_range(db: Session, user_id: int, start: date, end: date) -> list[CredoPracticeLog]:
    """Both ends inclusive, newest day first."""
    return (
        db.query(CredoPracticeLog)
        .filter(
            CredoPracticeLog.user_id == user_id,
            CredoPracticeLog.day >= start,
            CredoPracticeLog.day <= end,
        )
        .order_by(CredoPracticeLog.day.desc(), CredoPracticeLog.id)
        .all()
    )


def get_day(db: Session, user_id: int, day: date) -> list[CredoPracticeLog]:
    return logs_in_range(db, user_id, day, day)


def replace_day(
    db: Session,
    user_id: int,
    day: date,
    values: Mapping[str, CredoPracticeValue],
) -> int:
    unknown = sorted(k for k in values if k not in CREDO_IDS)
    if unknown:
        raise UnknownCredoItemError(unknown)

    try:
        (
            db.query(CredoPracticeLog)
            .filter(CredoPracticeLog.user_id == user_id, CredoPracticeLog.day == day)
            .delete(synchronize_session=False)
        )
        for credo_id, value in values.items():
            db.add(CredoPracticeLog(
                user_id=user_id,
                credo_id=credo_id,
                day=day,
                done=value.done,
                note=value.note.strip(),
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Saved %d credo entries for user %s on %s", len(values), user_id, day)
    return len(values)


def summary_for_range(db: Session, user_id: int, start: date, end: date) -> CredoSummary:
    if start > end:
        raise InvalidDateRangeError(start, end)
    return summarize_credo(logs_in_range(db, user_id, start, end))
