import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Account(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)  # lower-cased, trimmed
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String, nullable=False)
    account_type: Mapped[str] = mapped_column(String, nullable=False, default="patient")  # "patient" | "practitioner"
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Demographics, address, medical history, notification preferences.
    profile: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # Practice metadata; practitioners only.
    practitioner_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Wellness snapshot (0-100), refreshed from the latest session feedback.
    sleep_quality: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overall_wellness: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wellness_updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
