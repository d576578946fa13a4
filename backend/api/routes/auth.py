from fastapi import APIRouter, Depends, status

from api.deps import CurrentAccountDep, ServicesDep, auth_rate_limit
from schemas.auth import (
    AccountResponse,
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    SignupRequest,
)

router = APIRouter()


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def signup(payload: SignupRequest, services: ServicesDep):
    return services.identity.signup(payload)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(auth_rate_limit)])
def login(payload: LoginRequest, services: ServicesDep):
    return services.identity.login(payload)


@router.get("/me", response_model=AccountResponse)
def me(account: CurrentAccountDep):
    return AccountResponse(account=account)


@router.put("/profile", response_model=ProfileUpdateResponse)
def update_profile(account: CurrentAccountDep, services: ServicesDep, patch: ProfileUpdate):
    updated = services.identity.update_profile(account.id, patch)
    return ProfileUpdateResponse(message="Profile updated successfully", account=updated)


@router.put("/change-password", response_model=MessageResponse)
def change_password(payload: ChangePasswordRequest, account: CurrentAccountDep, services: ServicesDep):
    services.identity.change_password(account.id, payload)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
def logout(account: CurrentAccountDep):
    # Tokens are stateless; the client discards its copy.
    return MessageResponse(message="Logged out successfully")
