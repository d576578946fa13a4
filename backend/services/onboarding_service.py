import random
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session, sessionmaker
import structlog

from models.progress import ProgressRecord, WellnessScore
from models.session import STATUS_SCHEDULED, TherapySession
from services.notification_service import emit_notification
from services.progress_service import get_progress_record

logger = structlog.get_logger(__name__)

PATIENT_WELCOME_TITLE = "Welcome to AyurSutra!"
PATIENT_WELCOME_MESSAGE = (
    "Your Panchakarma wellness journey begins today. "
    "We have scheduled your first sessions to get you started."
)
PRACTITIONER_WELCOME_TITLE = "Welcome, Practitioner!"
PRACTITIONER_WELCOME_MESSAGE = "Your practice dashboard is ready. Start managing your patients' treatment journeys."

# (name, therapy type, days from signup, time label, duration)
STARTER_SESSIONS = (
    ("Initial Consultation", "other", 1, "10:00 AM", 45),
    ("Abhyanga Therapy", "abhyanga", 2, "2:00 PM", 60),
)


class OnboardingInitializer:
    """
    Seeds the domain state a brand new account starts with.

    Runs after the signup transaction has committed, in a transaction of its
    own; an account never depends on onboarding having succeeded.
    """

    def __init__(self, session_factory: sessionmaker[Session], rng: random.Random | None = None) -> None:
        self._session_factory = session_factory
        self._rng = rng or random.Random()

    def initialize(self, account_id: str, account_type: str) -> None:
        with self._session_factory() as db, db.begin():
            if account_type == "patient":
                self._seed_patient(db, account_id)
            else:
                emit_notification(
                    db,
                    owner_id=account_id,
                    title=PRACTITIONER_WELCOME_TITLE,
                    message=PRACTITIONER_WELCOME_MESSAGE,
                    kind="general",
                    priority="high",
                )
        logger.info("onboarding_completed", account_id=account_id, account_type=account_type)

    def _seed_patient(self, db: Session, account_id: str) -> None:
        if get_progress_record(db, account_id) is not None:
            # Already initialized; keep the existing history.
            return

        rec = ProgressRecord(
            owner_id=account_id,
            overall_progress=float(self._rng.randint(10, 29)),
            completed_sessions=0,
        )
        rec.wellness_scores.append(
            WellnessScore(
                date=datetime.utcnow(),
                wellness=self._rng.randint(7, 9),
                energy=self._rng.randint(7, 9),
                sleep=self._rng.randint(8, 10),
            )
        )
        db.add(rec)

        emit_notification(
            db,
            owner_id=account_id,
            title=PATIENT_WELCOME_TITLE,
            message=PATIENT_WELCOME_MESSAGE,
            kind="general",
            priority="high",
        )

        today = date.today()
        for name, therapy_type, days_ahead, time_label, duration in STARTER_SESSIONS:
            db.add(
                TherapySession(
                    owner_id=account_id,
                    name=name,
                    therapy_type=therapy_type,
                    scheduled_date=today + timedelta(days=days_ahead),
                    scheduled_time=time_label,
                    duration_minutes=duration,
                    status=STATUS_SCHEDULED,
                    progress=0,
                )
            )
