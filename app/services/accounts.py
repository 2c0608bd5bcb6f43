"""
Accounts service: registration, password login and coaching profile.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import EmailAlreadyRegisteredError, InvalidCredentialsError
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User, UserProfile
from app.schemas.account import ProfileRequest, RegisterRequest

logger = logging.getLogger(__name__)


@dataclass
class ProfileView:
    name: str
    weekly_goal: str
    active_hours: str
    coach_tone: str


def register_user(db: Session, payload: RegisterRequest) -> User:
    if db.query(User).filter(User.email == payload.email).first() is not None:
        raise EmailAlreadyRegisteredError(payload.email)

    user = User(
        email=payload.email,
        name=(payload.name or "").strip() or None,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration.
        db.rollback()
        raise EmailAlreadyRegisteredError(payload.email)
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> str:
    """Return a bearer token, or raise InvalidCredentialsError."""
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    return create_access_token(user.id)


def get_profile_row(db: Session, user_id: int) -> Optional[UserProfile]:
    return db.query(UserProfile).filter(UserProfile.user_id == user_id).first()


def get_profile(db: Session, user: User) -> ProfileView:
    profile = get_profile_row(db, user.id)
    return ProfileView(
        name=user.name or "",
        weekly_goal=(profile.weekly_goal if profile else None) or "",
        active_hours=profile.active_hours if profile else "day",
        coach_tone=profile.coach_tone if profile else "gentle",
    )


def upsert_profile(db: Session, user: User, payload: ProfileRequest) -> ProfileView:
    if "name" in payload.model_fields_set:
        user.name = (payload.name or "").strip() or None

    profile = get_profile_row(db, user.id)
    if profile is None:
        profile = UserProfile(user_id=user.id)
        db.add(profile)
    profile.weekly_goal = payload.weekly_goal
    profile.active_hours = payload.active_hours
    profile.coach_tone = payload.coach_tone

    db.commit()
    db.refresh(user)
    return get_profile(db, user)
