from fastapi import APIRouter, status

from api.deps import CurrentAccountDep, ServicesDep
from schemas.sessions import FeedbackIn, SessionCreate, SessionResponse, SessionsResponse

router = APIRouter()


@router.get("/sessions", response_model=SessionsResponse)
def list_sessions(account: CurrentAccountDep, services: ServicesDep):
    return SessionsResponse(sessions=services.sessions.list_sessions(account.id))


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def create_session(payload: SessionCreate, account: CurrentAccountDep, services: ServicesDep):
    return SessionResponse(session=services.sessions.create(account.id, payload))


@router.put("/sessions/{session_id}/start", response_model=SessionResponse)
def start_session(session_id: str, account: CurrentAccountDep, services: ServicesDep):
    return SessionResponse(session=services.sessions.start(session_id, account.id))


@router.put("/sessions/{session_id}/cancel", response_model=SessionResponse)
def cancel_session(session_id: str, account: CurrentAccountDep, services: ServicesDep):
    return SessionResponse(session=services.sessions.cancel(session_id, account.id))


@router.put("/sessions/{session_id}/feedback", response_model=SessionResponse)
def submit_feedback(session_id: str, payload: FeedbackIn, account: CurrentAccountDep, services: ServicesDep):
    return SessionResponse(session=services.sessions.submit_feedback(session_id, account.id, payload))
