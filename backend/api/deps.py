from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import RateLimited, Unauthorized
from schemas.auth import AccountOut
from services.container import ServiceContainer

bearer = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


ServicesDep = Annotated[ServiceContainer, Depends(get_services)]


def get_current_account(
    services: ServicesDep, creds: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)]
) -> AccountOut:
    token = creds.credentials if creds else None
    if not token:
        raise Unauthorized("Access token required")
    return services.identity.get_current_account(token)


CurrentAccountDep = Annotated[AccountOut, Depends(get_current_account)]


def auth_rate_limit(request: Request, services: ServicesDep) -> None:
    # Runs before the handler body, so a throttled attempt never reaches the store.
    origin = request.client.host if request.client else "unknown"
    result = services.rate_limiter.hit(origin)
    if not result.allowed:
        raise RateLimited(retry_after=result.retry_after)
