"""
Note schemas.

Notes carry free text plus optional structured template data (5W2H or
5Why), a canvas drawing blob, tags, image references and OCR results the
client already recognised.
"""
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, field_validator

from app.schemas.common import ApiModel

TAGS_MAX = 8

TemplateType = Literal["free", "5w2h", "5why", "canvas"]


def normalize_tags(tags: Optional[list[str]]) -> list[str]:
    """Trim, drop blanks and duplicates (first wins), keep at most 8."""
    cleaned: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned[:TAGS_MAX]


class ImageFileIn(ApiModel):
    url: Annotated[str, Field(min_length=1, max_length=2_048)]
    name: Annotated[str, Field(max_length=256)]
    width: Annotated[int, Field(gt=0)]
    height: Annotated[int, Field(gt=0)]
    id: Optional[str] = None


class ImageFile(ApiModel):
    id: str
    url: str
    name: str
    width: int
    height: int


class OcrPosition(ApiModel):
    x: float
    y: float


class OcrText(ApiModel):
    image_id: str
    text: str
    confidence: Annotated[float, Field(ge=0, le=100)]
    position: Optional[OcrPosition] = None


class Template5W2H(ApiModel):
    what: str
    why: str
    who: str
    when: str
    where: str
    how: str
    how_much: str


class Template5Why(ApiModel):
    problem: str
    why1: str
    why2: str
    why3: str
    why4: str
    why5: str
    conclusion: str


TemplateData = Union[Template5W2H, Template5Why]

Tags = Annotated[list[Annotated[str, Field(max_length=50)]], Field(max_length=20)]


class NoteCreateRequest(ApiModel):
    title: Annotated[str, Field(max_length=200)] = ""
    content: Annotated[str, Field(max_length=50_000)] = ""
    template_type: TemplateType = "free"
    drawing_data: Optional[dict[str, Any]] = None
    template_data: Optional[TemplateData] = None
    tags: Tags = Field(default_factory=list)
    is_shareable: bool = False
    image_files: list[ImageFileIn] = Field(default_factory=list)
    ocr_texts: list[OcrText] = Field(default_factory=list)
    related_task_id: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class NoteUpdateRequest(ApiModel):
    """Partial update; only fields present in the body are applied."""
    title: Optional[Annotated[str, Field(max_length=200)]] = None
    content: Optional[Annotated[str, Field(max_length=50_000)]] = None
    template_type: Optional[TemplateType] = None
    drawing_data: Optional[dict[str, Any]] = None
    template_data: Optional[TemplateData] = None
    tags: Optional[Tags] = None
    is_shareable: Optional[bool] = None
    image_files: Optional[list[ImageFileIn]] = None
    ocr_texts: Optional[list[OcrText]] = None
    related_task_id: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else normalize_tags(v)


class NoteOut(ApiModel):
    id: int
    title: str
    content: str
    template_type: str
    drawing_data: Optional[dict[str, Any]] = None
    template_data: Optional[dict[str, Any]] = None
    tags: list[str] = Field(default_factory=list)
    is_shareable: bool
    image_files: list[ImageFile] = Field(default_factory=list)
    ocr_texts: list[OcrText] = Field(default_factory=list)
    related_task_id: Optional[int] = None
    related_task_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("tags", "image_files", "ocr_texts", mode="before")
    @classmethod
    def list_or_empty(cls, v: Any) -> list:
        return v if isinstance(v, list) else []


class NoteListResponse(ApiModel):
    total: int
    items: list[NoteOut]


class ImageFilesResponse(ApiModel):
    image_files: list[ImageFile]


class OcrTextsResponse(ApiModel):
    ocr_texts: list[OcrText]
