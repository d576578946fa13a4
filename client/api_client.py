from __future__ import annotations

from typing import Any

import httpx
import structlog

from client.config import ClientSettings
from client.session_cache import SessionCache

logger = structlog.get_logger(__name__)

SERVER_ERROR_MESSAGE = "Server error. Please try again later."
CONNECTION_ERROR_MESSAGE = "Unable to connect to server. Please check your internet connection."


class ApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None, errors: list[str] | None = None) -> None:
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class AuthenticationError(ApiError):
    """401/403 from the server. The local session has already been cleared."""


class ApiConnectionError(ApiError):
    pass


class ApiClient:
    """
    Thin async wrapper over the AyurSutra REST API.

    Attaches the cached bearer token to every call and maps error responses
    to ApiError. Authentication failures clear the session cache and are
    never retried.
    """

    def __init__(
        self,
        settings: ClientSettings,
        cache: SessionCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url.rstrip("/"),
            timeout=settings.request_timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        headers = {}
        token = self._cache.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning("api_unreachable", method=method, path=path, error=str(e))
            raise ApiConnectionError(CONNECTION_ERROR_MESSAGE) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_success:
            return data

        status = response.status_code
        message = data.get("message")
        errors = data.get("errors") or []
        logger.info("api_error", method=method, path=path, status=status)

        if status in (401, 403):
            self._cache.clear()
            raise AuthenticationError(message or "Authentication failed", status, errors)
        if status >= 500:
            raise ApiError(SERVER_ERROR_MESSAGE, status)
        raise ApiError(message or f"HTTP Error: {status}", status, errors)

    # auth

    async def signup(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/auth/signup", json=payload)

    async def login(self, email: str, password: str, remember_me: bool = False) -> dict[str, Any]:
        return await self.request(
            "POST", "/auth/login", json={"email": email, "password": password, "remember_me": remember_me}
        )

    async def me(self) -> dict[str, Any]:
        return await self.request("GET", "/auth/me")

    async def logout(self) -> dict[str, Any]:
        return await self.request("POST", "/auth/logout")

    async def update_profile(self, patch: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", "/auth/profile", json=patch)

    async def change_password(self, current_password: str, new_password: str) -> dict[str, Any]:
        return await self.request(
            "PUT",
            "/auth/change-password",
            json={"current_password": current_password, "new_password": new_password},
        )

    # domain

    async def dashboard(self) -> dict[str, Any]:
        return await self.request("GET", "/dashboard")

    async def progress(self) -> dict[str, Any]:
        return await self.request("GET", "/progress")

    async def sessions(self) -> dict[str, Any]:
        return await self.request("GET", "/sessions")

    async def create_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/sessions", json=payload)

    async def start_session(self, session_id: str) -> dict[str, Any]:
        return await self.request("PUT", f"/sessions/{session_id}/start")

    async def cancel_session(self, session_id: str) -> dict[str, Any]:
        return await self.request("PUT", f"/sessions/{session_id}/cancel")

    async def submit_feedback(self, session_id: str, feedback: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"/sessions/{session_id}/feedback", json=feedback)

    async def notifications(self) -> dict[str, Any]:
        return await self.request("GET", "/notifications")

    async def mark_notification_read(self, notification_id: str) -> dict[str, Any]:
        return await self.request("PUT", f"/notifications/{notification_id}/read")
