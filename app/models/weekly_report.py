"""
WeeklyReport: cached AI-generated summary of one Monday to Sunday week.

One row per (user_id, week_start); regeneration overwrites in place.
"""
from datetime import datetime, date
from sqlalchemy import Integer, Text, DateTime, Date, JSON, ForeignKey, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class WeeklyReport(Base):
    __tablename__ = "weekly_reports"
    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_weekly_report_user_week"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    condition_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    activity_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_analysis: Mapped[str] = mapped_column(Text, nullable=False, default="")
    next_week_focus: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    supporter_export: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
