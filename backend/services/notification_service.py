from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.orm import Session, sessionmaker
import structlog

from core.errors import NotFound
from models.notification import NOTIFICATION_KINDS, PRIORITIES, Notification
from schemas.dashboard import NotificationItem

logger = structlog.get_logger(__name__)

NOTIFICATION_LIST_LIMIT = 50


def emit_notification(
    db: Session,
    owner_id: str,
    title: str,
    message: str,
    kind: str = "general",
    priority: str = "medium",
    scheduled_for: datetime | None = None,
) -> Notification:
    """
    Add a notification inside the caller's transaction.
    Only domain events (onboarding, session scheduling) call this; there is no endpoint that creates one.
    """
    if kind not in NOTIFICATION_KINDS:
        raise ValueError(f"Unknown notification kind: {kind}")
    if priority not in PRIORITIES:
        raise ValueError(f"Unknown notification priority: {priority}")

    n = Notification(
        owner_id=owner_id,
        title=title,
        message=message,
        kind=kind,
        priority=priority,
        scheduled_for=scheduled_for,
    )
    db.add(n)
    logger.debug("notification_emitted", owner_id=owner_id, kind=kind, priority=priority)
    return n


def to_notification_item(n: Notification) -> NotificationItem:
    return NotificationItem(
        id=str(n.id),
        title=n.title,
        message=n.message,
        kind=n.kind,
        priority=n.priority,
        read=bool(n.read),
        scheduled_for=n.scheduled_for.isoformat() if n.scheduled_for else None,
        created_at=n.created_at.isoformat(),
    )


def recent_notifications(db: Session, owner_id: str, limit: int) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.owner_id == owner_id)
        .order_by(desc(Notification.created_at))
        .limit(limit)
        .all()
    )


class NotificationService:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_notifications(self, owner_id: str) -> list[NotificationItem]:
        with self._session_factory() as db:
            return [to_notification_item(n) for n in recent_notifications(db, owner_id, NOTIFICATION_LIST_LIMIT)]

    def mark_read(self, notification_id: str, owner_id: str) -> NotificationItem:
        with self._session_factory() as db, db.begin():
            n = (
                db.query(Notification)
                .filter(Notification.id == notification_id, Notification.owner_id == owner_id)
                .first()
            )
            if not n:
                raise NotFound("Notification not found")
            n.read = True
            db.flush()
            return to_notification_item(n)
