from datetime import date
from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints

TherapyType = Literal["abhyanga", "shirodhara", "swedana", "basti", "nasya", "other"]
Score = Annotated[int, Field(ge=0, le=10)]


class SessionCreate(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    therapy_type: TherapyType = "abhyanga"
    scheduled_date: date
    scheduled_time: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]  # e.g. "10:00 AM"
    duration_minutes: int = Field(60, ge=1, le=480)
    practitioner_id: str | None = None
    notes: str | None = None


class FeedbackIn(BaseModel):
    wellness: Score
    energy: Score
    sleep: Score
    comments: str | None = Field(None, max_length=1000)


class FeedbackOut(BaseModel):
    wellness: int
    energy: int
    sleep: int
    comments: str | None = None


class PractitionerSummary(BaseModel):
    id: str
    full_name: str
    email: str


class SessionItem(BaseModel):
    id: str
    name: str
    therapy_type: str
    scheduled_date: str
    scheduled_time: str
    duration_minutes: int
    status: str  # scheduled | in-progress | completed | cancelled
    progress: int
    notes: str | None = None
    practitioner_id: str | None = None
    practitioner: PractitionerSummary | None = None
    feedback: FeedbackOut | None = None
    created_at: str


class SessionResponse(BaseModel):
    session: SessionItem


class SessionsResponse(BaseModel):
    sessions: list[SessionItem]
