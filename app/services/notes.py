"""
Notes service.

Structured parts of a note (template fields, canvas data, image references,
OCR results) are stored as JSON. Image bytes and OCR itself stay on the
client; the API only records what the client sends.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import NoteNotFoundError, TaskNotFoundError
from app.models.note import Note
from app.models.task import StudyTask
from app.schemas.note import ImageFileIn, NoteCreateRequest, NoteUpdateRequest, OcrText

DEFAULT_LIMIT = 50


@dataclass
class NotePage:
    total: int
    items: list[Note]


def _get_owned(db: Session, user_id: int, note_id: int) -> Note:
    note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).one_or_none()
    if note is None:
        raise NoteNotFoundError(note_id)
    return note


def _check_task(db: Session, user_id: int, task_id: Optional[int]) -> None:
    if task_id is None:
        return
    exists = (
        db.query(StudyTask.id)
        .filter(StudyTask.id == task_id, StudyTask.user_id == user_id)
        .first()
    )
    if exists is None:
        raise TaskNotFoundError(task_id)


def _image_entry(image: ImageFileIn) -> dict:
    return {
        "id": image.id or uuid.uuid4().hex,
        "url": image.url,
        "name": image.name,
        "width": image.width,
        "height": image.height,
    }


def list_notes(
    db: Session,
    user_id: int,
    template_type: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> NotePage:
    query = db.query(Note).filter(Note.user_id == user_id)
    if template_type:
        query = query.filter(Note.template_type == template_type)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Note.title).like(pattern),
            func.lower(Note.content).like(pattern),
        ))
    notes = query.order_by(Note.updated_at.desc(), Note.id.desc()).all()

    # Tags live in a JSON array, so the tag filter runs here.
    if tag:
        notes = [n for n in notes if tag in (n.tags or [])]
    return NotePage(total=len(notes), items=notes[offset:offset + limit])


def get_note(db: Session, user_id: int, note_id: int) -> Note:
    return _get_owned(db, user_id, note_id)


def create_note(db: Session, user_id: int, payload: NoteCreateRequest) -> Note:
    _check_task(db, user_id, payload.related_task_id)
    note = Note(
        user_id=user_id,
        title=payload.title,
        content=payload.content,
        template_type=payload.template_type,
        drawing_data=payload.drawing_data,
        template_data=payload.template_data.model_dump(by_alias=True) if payload.template_data else None,
        tags=payload.tags,
        is_shareable=payload.is_shareable,
        image_files=[_image_entry(i) for i in payload.image_files],
        ocr_texts=[o.model_dump(mode="json") for o in payload.ocr_texts],
        related_task_id=payload.related_task_id,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def update_note(db: Session, user_id: int, note_id: int, payload: NoteUpdateRequest) -> Note:
    note = _get_owned(db, user_id, note_id)
    fields = payload.model_fields_set

    if "title" in fields:
        note.title = payload.title or ""
    if "content" in fields:
        note.content = payload.content or ""
    if "template_type" in fields and payload.template_type is not None:
        note.template_type = payload.template_type
    if "drawing_data" in fields:
        note.drawing_data = payload.drawing_data
    if "template_data" in fields:
        note.template_data = (
            payload.template_data.model_dump(by_alias=True) if payload.template_data else None
        )
    if "tags" in fields:
        note.tags = payload.tags or []
    if "is_shareable" in fields and payload.is_shareable is not None:
        note.is_shareable = payload.is_shareable
    if "image_files" in fields:
        note.image_files = [_image_entry(i) for i in payload.image_files or []]
    if "ocr_texts" in fields:
        note.ocr_texts = [o.model_dump(mode="json") for o in payload.ocr_texts or []]
    if "related_task_id" in fields:
        _check_task(db, user_id, payload.related_task_id)
        note.related_task_id = payload.related_task_id

    db.commit()
    db.refresh(note)
    return note


def delete_note(db: Session, user_id: int, note_id: int) -> None:
    note = _get_owned(db, user_id, note_id)
    db.delete(note)
    db.commit()


def append_image(db: Session, user_id: int, note_id: int, image: ImageFileIn) -> list[dict]:
    note = _get_owned(db, user_id, note_id)
    # Reassign so the JSON column is marked dirty.
    note.image_files = [*(note.image_files or []), _image_entry(image)]
    db.commit()
    db.refresh(note)
    return note.image_files


def append_ocr(db: Session, user_id: int, note_id: int, ocr: OcrText) -> list[dict]:
    note = _get_owned(db, user_id, note_id)
    note.ocr_texts = [*(note.ocr_texts or []), ocr.model_dump(mode="json")]
    db.commit()
    db.refresh(note)
    return note.ocr_texts
