"""
Therapy session lifecycle.

    scheduled -> in-progress -> completed
    scheduled -> completed
    scheduled -> cancelled

completed and cancelled are terminal. Completing a session records the
patient's feedback and, in the same transaction, advances their progress
record and wellness snapshot.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker
import structlog

from core.errors import InvalidTransition, NotFound, ValidationError
from models.account import Account
from models.progress import WellnessScore, compute_overall_progress
from models.session import (
    OPEN_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_SCHEDULED,
    TherapySession,
)
from schemas.sessions import FeedbackIn, FeedbackOut, PractitionerSummary, SessionCreate, SessionItem
from services.notification_service import emit_notification
from services.progress_service import get_or_create_progress

logger = structlog.get_logger(__name__)

# Feedback scores are 0-10; the account snapshot is 0-100.
SNAPSHOT_SCALE = 10


def to_session_item(s: TherapySession) -> SessionItem:
    feedback = None
    if s.has_feedback:
        feedback = FeedbackOut(
            wellness=int(s.feedback_wellness),
            energy=int(s.feedback_energy),
            sleep=int(s.feedback_sleep),
            comments=s.feedback_comments,
        )
    practitioner = None
    if s.practitioner is not None:
        practitioner = PractitionerSummary(
            id=str(s.practitioner.id),
            full_name=s.practitioner.full_name,
            email=s.practitioner.email,
        )
    return SessionItem(
        id=str(s.id),
        name=s.name,
        therapy_type=s.therapy_type,
        scheduled_date=s.scheduled_date.isoformat(),
        scheduled_time=s.scheduled_time,
        duration_minutes=int(s.duration_minutes),
        status=s.status,
        progress=int(s.progress),
        notes=s.notes,
        practitioner_id=s.practitioner_id,
        practitioner=practitioner,
        feedback=feedback,
        created_at=s.created_at.isoformat(),
    )


class SessionLifecycleEngine:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_sessions(self, owner_id: str) -> list[SessionItem]:
        with self._session_factory() as db:
            sessions = (
                db.query(TherapySession)
                .filter(TherapySession.owner_id == owner_id)
                .order_by(TherapySession.scheduled_date.asc(), TherapySession.created_at.asc())
                .all()
            )
            return [to_session_item(s) for s in sessions]

    def create(self, owner_id: str, payload: SessionCreate) -> SessionItem:
        with self._session_factory() as db, db.begin():
            if payload.practitioner_id:
                practitioner = db.get(Account, payload.practitioner_id)
                if practitioner is None or practitioner.account_type != "practitioner":
                    raise ValidationError(errors=["Practitioner not found"])

            s = TherapySession(
                owner_id=owner_id,
                practitioner_id=payload.practitioner_id or None,
                name=payload.name,
                therapy_type=payload.therapy_type,
                scheduled_date=payload.scheduled_date,
                scheduled_time=payload.scheduled_time,
                duration_minutes=payload.duration_minutes,
                notes=payload.notes,
                status=STATUS_SCHEDULED,
                progress=0,
            )
            db.add(s)
            emit_notification(
                db,
                owner_id=owner_id,
                title="Session Scheduled",
                message=(
                    f"Your {payload.name} session has been scheduled for "
                    f"{payload.scheduled_date.isoformat()} at {payload.scheduled_time}"
                ),
                kind="appointment",
                priority="medium",
            )
            db.flush()
            db.refresh(s)
            logger.info("session_created", session_id=s.id, owner_id=owner_id, therapy_type=s.therapy_type)
            return to_session_item(s)

    def start(self, session_id: str, owner_id: str) -> SessionItem:
        return self._transition(session_id, owner_id, from_statuses=(STATUS_SCHEDULED,), to_status=STATUS_IN_PROGRESS)

    def cancel(self, session_id: str, owner_id: str) -> SessionItem:
        return self._transition(session_id, owner_id, from_statuses=(STATUS_SCHEDULED,), to_status=STATUS_CANCELLED)

    def submit_feedback(self, session_id: str, owner_id: str, payload: FeedbackIn) -> SessionItem:
        with self._session_factory() as db, db.begin():
            # Conditional update first: it takes the write lock and guarantees
            # a session completes (and counts toward progress) exactly once.
            completed = db.execute(
                update(TherapySession)
                .where(
                    TherapySession.id == session_id,
                    TherapySession.owner_id == owner_id,
                    TherapySession.status.in_(OPEN_STATUSES),
                )
                .values(
                    status=STATUS_COMPLETED,
                    progress=100,
                    feedback_wellness=payload.wellness,
                    feedback_energy=payload.energy,
                    feedback_sleep=payload.sleep,
                    feedback_comments=payload.comments,
                    updated_at=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if completed != 1:
                self._raise_for_missing_or_terminal(db, session_id, owner_id)

            # Locking the owner serializes the progress insert for a first completion.
            account = db.get(Account, owner_id, with_for_update=True)
            if account is None:
                raise NotFound("Session not found")

            now = datetime.utcnow()
            rec = get_or_create_progress(db, account)
            if rec is not None:
                rec.completed_sessions += 1
                rec.overall_progress = compute_overall_progress(rec.completed_sessions, rec.total_sessions)
                rec.wellness_scores.append(
                    WellnessScore(date=now, wellness=payload.wellness, energy=payload.energy, sleep=payload.sleep)
                )

            account.sleep_quality = payload.sleep * SNAPSHOT_SCALE
            account.energy_level = payload.energy * SNAPSHOT_SCALE
            account.overall_wellness = payload.wellness * SNAPSHOT_SCALE
            account.wellness_updated_at = now

            db.flush()
            s = db.get(TherapySession, session_id, populate_existing=True)
            logger.info(
                "session_completed",
                session_id=session_id,
                owner_id=owner_id,
                completed_sessions=rec.completed_sessions if rec else None,
                overall_progress=rec.overall_progress if rec else None,
            )
            return to_session_item(s)

    def _transition(
        self, session_id: str, owner_id: str, from_statuses: tuple[str, ...], to_status: str
    ) -> SessionItem:
        with self._session_factory() as db, db.begin():
            changed = db.execute(
                update(TherapySession)
                .where(
                    TherapySession.id == session_id,
                    TherapySession.owner_id == owner_id,
                    TherapySession.status.in_(from_statuses),
                )
                .values(status=to_status, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            ).rowcount
            if changed != 1:
                self._raise_for_missing_or_terminal(db, session_id, owner_id)
            s = db.get(TherapySession, session_id, populate_existing=True)
            logger.info("session_status_changed", session_id=session_id, owner_id=owner_id, status=to_status)
            return to_session_item(s)

    @staticmethod
    def _raise_for_missing_or_terminal(db: Session, session_id: str, owner_id: str) -> None:
        s = (
            db.query(TherapySession)
            .filter(TherapySession.id == session_id, TherapySession.owner_id == owner_id)
            .first()
        )
        if s is None:
            raise NotFound("Session not found")
        raise InvalidTransition(f"Session is already {s.status}")
