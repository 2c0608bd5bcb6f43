"""
Account schemas.

POST /auth/register     → RegisterRequest → UserResponse
POST /auth/token        → TokenRequest    → TokenResponse
GET|PUT /settings/profile               → ProfileRequest / ProfileResponse
"""
from typing import Annotated, Literal, Optional

from pydantic import Field, field_validator

from app.schemas.common import ApiModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

ActiveHours = Literal["morning", "day", "evening"]
CoachTone = Literal["gentle", "logical", "energetic"]


class RegisterRequest(ApiModel):
    email: Annotated[str, Field(pattern=EMAIL_PATTERN, max_length=320)]
    password: Annotated[str, Field(min_length=8, max_length=128)]
    name: Optional[Annotated[str, Field(max_length=128)]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenRequest(ApiModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(ApiModel):
    id: int
    email: str
    name: Optional[str] = None


class ProfileRequest(ApiModel):
    name: Optional[Annotated[str, Field(max_length=128)]] = None
    weekly_goal: Optional[Annotated[str, Field(max_length=500)]] = None
    active_hours: ActiveHours = "day"
    coach_tone: CoachTone = "gentle"


class ProfileResponse(ApiModel):
    name: str = ""
    weekly_goal: str = ""
    active_hours: str = "day"
    coach_tone: str = "gentle"
