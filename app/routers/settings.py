"""
Settings router.

GET /settings/profile
PUT /settings/profile
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.account import ProfileRequest, ProfileResponse
from app.services.accounts import get_profile, upsert_profile

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/profile", response_model=ProfileResponse, summary="Coaching profile")
def read_profile(
    user: User = Depends(RateLimit("settings/profile:get", 20)),
    db: Session = Depends(get_db),
):
    return get_profile(db, user)


@router.put("/profile", response_model=ProfileResponse, summary="Create or replace the coaching profile")
def write_profile(
    payload: ProfileRequest,
    user: User = Depends(RateLimit("settings/profile:put", 10)),
    db: Session = Depends(get_db),
):
    return upsert_profile(db, user, payload)
