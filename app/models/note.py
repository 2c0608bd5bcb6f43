from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, JSON, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Note(Base):
    """
    Study note. Structured parts (canvas strokes, template fields, image
    references, OCR results) are stored as JSON documents.
    """

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    template_type: Mapped[str] = mapped_column(String(16), nullable=False, default="free")
    drawing_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    template_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_shareable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    image_files: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    ocr_texts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    related_task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("study_tasks.id", ondelete="SET NULL"), nullable=True
    )
    related_task = relationship("StudyTask", lazy="joined")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def related_task_title(self) -> str | None:
        return self.related_task.title if self.related_task is not None else None

