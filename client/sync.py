"""
Client-side reconciliation between the session cache and the server.

Each mutation names the aggregates it makes stale, and only those are
fetched again. Refreshes of one aggregate are numbered; starting a new one
cancels the one in flight, and any response that is no longer the latest
is dropped instead of overwriting newer state.
"""
from __future__ import annotations

import asyncio
from typing import Any

import structlog

from client.api_client import ApiClient, ApiError, AuthenticationError
from client.session_cache import SessionCache

logger = structlog.get_logger(__name__)

DASHBOARD = "dashboard"
SESSIONS = "sessions"
PROGRESS = "progress"
NOTIFICATIONS = "notifications"
AGGREGATES = (DASHBOARD, SESSIONS, PROGRESS, NOTIFICATIONS)

INVALIDATES: dict[str, tuple[str, ...]] = {
    "create_session": (SESSIONS, DASHBOARD),
    "start_session": (SESSIONS, DASHBOARD),
    "cancel_session": (SESSIONS, DASHBOARD),
    "submit_feedback": (SESSIONS, DASHBOARD, PROGRESS),
    "mark_notification_read": (NOTIFICATIONS, DASHBOARD),
}


class SyncCoordinator:
    def __init__(self, api: ApiClient, cache: SessionCache) -> None:
        self._api = api
        self._cache = cache
        self.state: dict[str, Any] = {}
        self._generations: dict[str, int] = {name: 0 for name in AGGREGATES}
        self._tasks: dict[str, asyncio.Task] = {}

    @property
    def authenticated(self) -> bool:
        return self._cache.is_authenticated()

    async def start(self) -> bool:
        """
        Reconcile a cached session with the server at startup.
        Returns False, with the cache cleared, when there is no usable session.
        """
        if not self._cache.is_valid():
            self._reset()
            return False

        token = self._cache.token
        try:
            me = await self._api.me()
            account = me.get("account") if isinstance(me, dict) else None
            if isinstance(account, dict):
                self._cache.store(token, account)
                await self.refresh(DASHBOARD)
                return True
            logger.warning("session_restore_failed", reason="missing_account")
        except ApiError as e:
            logger.info("session_restore_failed", status=e.status_code, reason=e.message)
        self._cache.clear()
        self._reset()
        return False

    async def signup(self, payload: dict[str, Any]) -> dict[str, Any]:
        resp = await self._api.signup(payload)
        return await self._authenticated(resp)

    async def login(self, email: str, password: str, remember_me: bool = False) -> dict[str, Any]:
        resp = await self._api.login(email, password, remember_me=remember_me)
        return await self._authenticated(resp)

    async def logout(self) -> None:
        try:
            await self._api.logout()
        except ApiError as e:
            # Local sign-out still happens.
            logger.info("logout_request_failed", status=e.status_code)
        finally:
            self._cache.clear()
            self._reset()

    async def update_profile(self, patch: dict[str, Any]) -> dict[str, Any]:
        resp = await self._api.update_profile(patch)
        self._cache.store(self._cache.token, resp["account"])
        return resp["account"]

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._api.change_password(current_password, new_password)

    # mutations

    async def create_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        resp = await self._mutate("create_session", self._api.create_session(payload))
        return resp["session"]

    async def start_session(self, session_id: str) -> dict[str, Any]:
        resp = await self._mutate("start_session", self._api.start_session(session_id))
        return resp["session"]

    async def cancel_session(self, session_id: str) -> dict[str, Any]:
        resp = await self._mutate("cancel_session", self._api.cancel_session(session_id))
        return resp["session"]

    async def submit_feedback(self, session_id: str, feedback: dict[str, Any]) -> dict[str, Any]:
        resp = await self._mutate("submit_feedback", self._api.submit_feedback(session_id, feedback))
        return resp["session"]

    async def mark_notification_read(self, notification_id: str) -> dict[str, Any]:
        resp = await self._mutate("mark_notification_read", self._api.mark_notification_read(notification_id))
        return resp["notification"]

    # reads

    async def refresh(self, aggregate: str) -> Any:
        """Fetch one aggregate; returns the value now held in state."""
        if aggregate not in self._generations:
            raise ValueError(f"Unknown aggregate: {aggregate}")

        self._generations[aggregate] += 1
        generation = self._generations[aggregate]

        previous = self._tasks.get(aggregate)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self._fetch(aggregate))
        self._tasks[aggregate] = task
        try:
            data = await task
        except asyncio.CancelledError:
            if task.cancelled() and self._generations[aggregate] != generation:
                # Superseded by a newer refresh.
                return self.state.get(aggregate)
            raise
        except AuthenticationError:
            self._reset()
            raise

        if self._generations[aggregate] != generation:
            logger.debug("stale_response_discarded", aggregate=aggregate, generation=generation)
            return self.state.get(aggregate)
        self.state[aggregate] = data
        return data

    async def _fetch(self, aggregate: str) -> Any:
        if aggregate == DASHBOARD:
            return await self._api.dashboard()
        if aggregate == SESSIONS:
            return (await self._api.sessions())["sessions"]
        if aggregate == PROGRESS:
            return (await self._api.progress())["progress"]
        return (await self._api.notifications())["notifications"]

    async def _mutate(self, name: str, call) -> dict[str, Any]:
        try:
            resp = await call
        except AuthenticationError:
            self._reset()
            raise
        await asyncio.gather(*(self.refresh(a) for a in INVALIDATES[name]))
        return resp

    async def _authenticated(self, resp: dict[str, Any]) -> dict[str, Any]:
        self._reset()
        self._cache.store(resp["token"], resp["account"])
        logger.info("signed_in", account_id=resp["account"].get("id"))
        await self.refresh(DASHBOARD)
        return resp["account"]

    def _reset(self) -> None:
        for task in self._tasks.values():
            if not task.done():
                task.cancel()
        self._tasks.clear()
        self.state.clear()
        for name in self._generations:
            self._generations[name] += 1
