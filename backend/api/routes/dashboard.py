from fastapi import APIRouter

from api.deps import CurrentAccountDep, ServicesDep
from schemas.dashboard import DashboardResponse, ProgressResponse

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(account: CurrentAccountDep, services: ServicesDep):
    return services.dashboard.build(account.id)


@router.get("/progress", response_model=ProgressResponse)
def progress(account: CurrentAccountDep, services: ServicesDep):
    # Practitioners have no progress record.
    return ProgressResponse(progress=services.progress.get_progress(account.id))
