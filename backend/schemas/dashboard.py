from pydantic import BaseModel

from schemas.auth import WellnessMetrics
from schemas.sessions import SessionItem


class WellnessScorePoint(BaseModel):
    date: str
    wellness: int
    energy: int
    sleep: int


class ProgressOut(BaseModel):
    overall_progress: float
    completed_sessions: int
    total_sessions: int
    next_milestone: str
    wellness_scores: list[WellnessScorePoint] = []


class ProgressResponse(BaseModel):
    progress: ProgressOut | None


class NotificationItem(BaseModel):
    id: str
    title: str
    message: str
    kind: str  # pre | post | reminder | appointment | general
    priority: str  # low | medium | high
    read: bool
    scheduled_for: str | None = None
    created_at: str


class NotificationsResponse(BaseModel):
    notifications: list[NotificationItem]


class NotificationResponse(BaseModel):
    notification: NotificationItem


class DashboardResponse(BaseModel):
    progress: ProgressOut
    notifications: list[NotificationItem]
    upcoming_sessions: list[SessionItem]
    wellness_metrics: WellnessMetrics
    account_type: str
