from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from models.account import Account
from models.progress import DEFAULT_TOTAL_SESSIONS, ProgressRecord
from schemas.dashboard import ProgressOut, WellnessScorePoint

EMPTY_MILESTONE = "Begin your wellness journey"


def get_progress_record(db: Session, owner_id: str, for_update: bool = False) -> ProgressRecord | None:
    q = db.query(ProgressRecord).filter(ProgressRecord.owner_id == owner_id)
    if for_update:
        # Serializes concurrent completions for the same patient.
        q = q.with_for_update()
    return q.first()


def get_or_create_progress(db: Session, account: Account) -> ProgressRecord | None:
    """
    Patients always have a progress record once a session completes;
    practitioners never do. Records missing because onboarding failed are
    created here, on the write path only, with the owner row already locked.
    """
    if account.account_type != "patient":
        return None
    rec = get_progress_record(db, account.id, for_update=True)
    if rec:
        return rec
    rec = ProgressRecord(owner_id=account.id, overall_progress=0.0, completed_sessions=0)
    db.add(rec)
    db.flush()
    return rec


def read_progress(db: Session, account: Account) -> ProgressOut | None:
    """Progress for a patient without writing; a missing record reads as empty."""
    if account.account_type != "patient":
        return None
    rec = get_progress_record(db, account.id)
    return to_progress_out(rec) if rec is not None else empty_progress()


def to_progress_out(rec: ProgressRecord) -> ProgressOut:
    return ProgressOut(
        overall_progress=round(float(rec.overall_progress), 2),
        completed_sessions=int(rec.completed_sessions),
        total_sessions=int(rec.total_sessions),
        next_milestone=rec.next_milestone,
        wellness_scores=[
            WellnessScorePoint(
                date=s.date.isoformat(),
                wellness=int(s.wellness),
                energy=int(s.energy),
                sleep=int(s.sleep),
            )
            for s in rec.wellness_scores
        ],
    )


def empty_progress() -> ProgressOut:
    return ProgressOut(
        overall_progress=0.0,
        completed_sessions=0,
        total_sessions=DEFAULT_TOTAL_SESSIONS,
        next_milestone=EMPTY_MILESTONE,
        wellness_scores=[],
    )


class ProgressService:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_progress(self, account_id: str) -> ProgressOut | None:
        with self._session_factory() as db:
            account = db.get(Account, account_id)
            if account is None:
                return None
            return read_progress(db, account)
