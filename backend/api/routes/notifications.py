from fastapi import APIRouter

from api.deps import CurrentAccountDep, ServicesDep
from schemas.dashboard import NotificationResponse, NotificationsResponse

router = APIRouter()


@router.get("/notifications", response_model=NotificationsResponse)
def list_notifications(account: CurrentAccountDep, services: ServicesDep):
    return NotificationsResponse(notifications=services.notifications.list_notifications(account.id))


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: str, account: CurrentAccountDep, services: ServicesDep):
    return NotificationResponse(notification=services.notifications.mark_read(notification_id, account.id))
