import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

DEFAULT_TOTAL_SESSIONS = 21  # typical Panchakarma course
DEFAULT_MILESTONE = "Complete initial assessment"


class ProgressRecord(Base):
    """
    Treatment progress of one patient.
    overall_progress is derived from completed/total and recomputed whenever a session completes.
    """

    __tablename__ = "progress_records"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), unique=True, index=True, nullable=False)

    overall_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # 0-100
    completed_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_TOTAL_SESSIONS)
    next_milestone: Mapped[str] = mapped_column(String, nullable=False, default=DEFAULT_MILESTONE)

    wellness_scores: Mapped[list["WellnessScore"]] = relationship(
        back_populates="progress",
        order_by="WellnessScore.date",
        cascade="all, delete-orphan",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WellnessScore(Base):
    __tablename__ = "wellness_scores"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    progress_id: Mapped[str] = mapped_column(String, ForeignKey("progress_records.id"), index=True, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    wellness: Mapped[int] = mapped_column(Integer, nullable=False)
    energy: Mapped[int] = mapped_column(Integer, nullable=False)
    sleep: Mapped[int] = mapped_column(Integer, nullable=False)

    progress: Mapped[ProgressRecord] = relationship(back_populates="wellness_scores")


def compute_overall_progress(completed_sessions: int, total_sessions: int) -> float:
    if total_sessions <= 0:
        return 100.0
    return min(100.0, completed_sessions / total_sessions * 100)
