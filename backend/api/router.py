from fastapi import APIRouter

from api.routes import auth, dashboard, notifications, sessions

api_router = APIRouter()

api_router.include_router(auth.router, tags=["auth"], prefix="/auth")
api_router.include_router(dashboard.router, tags=["dashboard"])
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(notifications.router, tags=["notifications"])
