"""
Notes router.

GET    /notes
POST   /notes
GET    /notes/{note_id}
PATCH  /notes/{note_id}
DELETE /notes/{note_id}
POST   /notes/{note_id}/images
POST   /notes/{note_id}/ocr
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.rate_limit import RateLimit
from app.db.base import get_db
from app.models.user import User
from app.schemas.note import (
    ImageFileIn,
    ImageFilesResponse,
    NoteCreateRequest,
    NoteListResponse,
    NoteOut,
    NoteUpdateRequest,
    OcrText,
    OcrTextsResponse,
    TemplateType,
)
from app.services import notes as note_service

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=NoteListResponse, summary="List notes, newest edit first")
def list_notes(
    template_type: Optional[TemplateType] = Query(default=None, alias="templateType"),
    tag: Optional[str] = Query(default=None, max_length=50),
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=note_service.DEFAULT_LIMIT, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(RateLimit("notes:get", 60)),
    db: Session = Depends(get_db),
):
    page = note_service.list_notes(db, user.id, template_type, tag, search, limit, offset)
    return NoteListResponse(total=page.total, items=page.items)


@router.post(
    "",
    response_model=NoteOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a note",
    responses={404: {"description": "Related task not found."}},
)
def create_note(
    payload: NoteCreateRequest,
    user: User = Depends(RateLimit("notes:post", 30)),
    db: Session = Depends(get_db),
):
    return note_service.create_note(db, user.id, payload)


@router.get("/{note_id}", response_model=NoteOut, responses={404: {"description": "Note not found."}})
def get_note(
    note_id: int,
    user: User = Depends(RateLimit("notes:get", 60)),
    db: Session = Depends(get_db),
):
    return note_service.get_note(db, user.id, note_id)


@router.patch("/{note_id}", response_model=NoteOut, responses={404: {"description": "Note not found."}})
def update_note(
    note_id: int,
    payload: NoteUpdateRequest,
    user: User = Depends(RateLimit("notes:patch", 30)),
    db: Session = Depends(get_db),
):
    return note_service.update_note(db, user.id, note_id, payload)


@router.delete(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Note not found."}},
)
def delete_note(
    note_id: int,
    user: User = Depends(RateLimit("notes:delete", 30)),
    db: Session = Depends(get_db),
):
    note_service.delete_note(db, user.id, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{note_id}/images",
    response_model=ImageFilesResponse,
    summary="Attach an uploaded image reference",
)
def add_image(
    note_id: int,
    payload: ImageFileIn,
    user: User = Depends(RateLimit("notes/images:post", 30)),
    db: Session = Depends(get_db),
):
    return ImageFilesResponse(image_files=note_service.append_image(db, user.id, note_id, payload))


@router.post(
    "/{note_id}/ocr",
    response_model=OcrTextsResponse,
    summary="Attach client-side OCR output for an image",
)
def add_ocr(
    note_id: int,
    payload: OcrText,
    user: User = Depends(RateLimit("notes/ocr:post", 30)),
    db: Session = Depends(get_db),
):
    return OcrTextsResponse(ocr_texts=note_service.append_ocr(db, user.id, note_id, payload))
