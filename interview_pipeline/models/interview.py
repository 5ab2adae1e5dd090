from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from interview_pipeline.db.base import Base


class RecInterview(Base):
    __tablename__ = "rec_interview"
    __table_args__ = (Index("ix_rec_interview_interviewer_scheduled", "interviewer_id", "scheduled_at"),)

    interview_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stage_id: Mapped[int] = mapped_column(ForeignKey("rec_interview_stage.stage_id"), index=True)
    candidate_id: Mapped[int] = mapped_column(Integer, index=True)
    interviewer_id: Mapped[int] = mapped_column(Integer, index=True)

    scheduled_at: Mapped[datetime] = mapped_column(DateTime)
    # Minutes; legacy rows may carry NULL and count as the default length.
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=30)

    status: Mapped[str] = mapped_column(String(50), default="scheduled", index=True)
    outcome: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    meeting_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
