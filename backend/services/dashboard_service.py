from datetime import date

from sqlalchemy.orm import Session, sessionmaker

from core.errors import Unauthorized
from models.account import Account
from models.session import OPEN_STATUSES, TherapySession
from schemas.dashboard import DashboardResponse
from services.identity_service import to_wellness_metrics
from services.notification_service import recent_notifications, to_notification_item
from services.progress_service import empty_progress, read_progress
from services.session_service import to_session_item

DASHBOARD_NOTIFICATION_LIMIT = 10
UPCOMING_SESSION_LIMIT = 5


class DashboardService:
    """Everything the home screen needs, read in one transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def build(self, account_id: str) -> DashboardResponse:
        with self._session_factory() as db, db.begin():
            account = db.get(Account, account_id)
            if account is None or not account.is_active:
                raise Unauthorized()

            progress = read_progress(db, account) or empty_progress()

            notifications = recent_notifications(db, account_id, DASHBOARD_NOTIFICATION_LIMIT)
            upcoming = (
                db.query(TherapySession)
                .filter(
                    TherapySession.owner_id == account_id,
                    TherapySession.scheduled_date >= date.today(),
                    TherapySession.status.in_(OPEN_STATUSES),
                )
                .order_by(TherapySession.scheduled_date.asc(), TherapySession.created_at.asc())
                .limit(UPCOMING_SESSION_LIMIT)
                .all()
            )

            return DashboardResponse(
                progress=progress,
                notifications=[to_notification_item(n) for n in notifications],
                upcoming_sessions=[to_session_item(s) for s in upcoming],
                wellness_metrics=to_wellness_metrics(account),
                account_type=account.account_type,
            )
