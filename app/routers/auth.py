"""
Auth router.

POST /auth/register
POST /auth/token
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.account import RegisterRequest, TokenRequest, TokenResponse, UserResponse
from app.services.accounts import authenticate, register_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    responses={409: {"description": "Email already registered."}},
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    return register_user(db, payload)


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Exchange email and password for a bearer token",
    responses={401: {"description": "Incorrect email or password."}},
)
def token(payload: TokenRequest, db: Session = Depends(get_db)):
    return TokenResponse(access_token=authenticate(db, payload.email, payload.password))
