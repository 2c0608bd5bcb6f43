"""
Credo schemas.

GET /credo/items        → list[CredoItemResponse]
GET /credo/practices    → CredoDayResponse
PUT /credo/practices    → CredoDayRequest → CredoSaveResponse
GET /credo/summary      → CredoSummaryResponse
"""
from datetime import date
from typing import Annotated, Optional

from pydantic import Field

from app.schemas.common import ApiModel


class CredoItemResponse(ApiModel):
    id: str
    order: int
    category: str
    title: str
    description: str


class CredoPracticeValue(ApiModel):
    credo_id: Optional[str] = Field(
        default=None,
        description="Optional; the key in `values` is authoritative.",
    )
    done: bool = False
    note: Annotated[str, Field(max_length=1_000)] = ""


class CredoDayRequest(ApiModel):
    day: date = Field(alias="date", description="Practice day (YYYY-MM-DD).")
    values: dict[str, CredoPracticeValue] = Field(
        min_length=1,
        description="Credo item id → that day's practice.",
    )


class CredoPracticeEntry(ApiModel):
    credo_id: str
    day: date = Field(alias="date")
    done: bool
    note: str


class CredoDayResponse(ApiModel):
    day: date = Field(alias="date")
    values: dict[str, CredoPracticeEntry]


class CredoSaveResponse(ApiModel):
    ok: bool = True
    saved: int


class CredoRankOut(ApiModel):
    id: str
    title: str
    count: int


class CredoMissingOut(ApiModel):
    id: str
    title: str


class CredoSummaryResponse(ApiModel):
    practiced_count: int
    practiced_rate: int
    ranking: list[CredoRankOut]
    missing: list[CredoMissingOut]
    highlights: list[str]
