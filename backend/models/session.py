import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.account import Account
from models.base import Base

STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"

OPEN_STATUSES = (STATUS_SCHEDULED, STATUS_IN_PROGRESS)


class TherapySession(Base):
    __tablename__ = "therapy_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), index=True, nullable=False)
    # Weak reference: the practitioner does not own the session.
    practitioner_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id"), nullable=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    therapy_type: Mapped[str] = mapped_column(String, nullable=False, default="abhyanga")
    scheduled_date: Mapped[date] = mapped_column(Date, index=True, nullable=False)
    scheduled_time: Mapped[str] = mapped_column(String, nullable=False)  # e.g. "10:00 AM"
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)

    status: Mapped[str] = mapped_column(String, nullable=False, default=STATUS_SCHEDULED)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 100 iff completed
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Only populated by the transition to completed.
    feedback_wellness: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_energy: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_sleep: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    practitioner: Mapped[Account | None] = relationship(foreign_keys=[practitioner_id], lazy="joined")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def has_feedback(self) -> bool:
        return self.feedback_wellness is not None
