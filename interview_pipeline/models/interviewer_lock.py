from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from interview_pipeline.db.base import Base


class RecInterviewerLock(Base):
    """One row per interviewer; booking transactions lock it FOR UPDATE."""

    __tablename__ = "rec_interviewer_lock"

    interviewer_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
