"""
Tests for the client API wrapper and the sync coordinator.

The happy paths run against the real application through httpx's ASGI
transport; failure paths use MockTransport.
"""
from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from pathlib import Path

import httpx
import pytest

from client.api_client import (
    CONNECTION_ERROR_MESSAGE,
    SERVER_ERROR_MESSAGE,
    ApiClient,
    ApiConnectionError,
    ApiError,
    AuthenticationError,
)
from client.config import ClientSettings
from client.session_cache import SessionCache
from client.storage import FileStorage
from client.sync import DASHBOARD, NOTIFICATIONS, PROGRESS, SESSIONS, SyncCoordinator
from conftest import signup_payload
from database.session import init_db

ACCOUNT = {"id": "acc-1", "email": "a@x.com", "account_type": "patient"}


@pytest.fixture
def client_settings(tmp_path: Path) -> ClientSettings:
    return ClientSettings(api_base_url="http://testserver/api", storage_path=tmp_path / "session.json")


@pytest.fixture
def cache(client_settings: ClientSettings) -> SessionCache:
    return SessionCache(FileStorage(client_settings.storage_path))


@pytest.fixture
def asgi_transport(app, services) -> httpx.ASGITransport:
    init_db(services.engine)
    return httpx.ASGITransport(app=app)


def stored(client_settings: ClientSettings) -> dict:
    return json.loads(client_settings.storage_path.read_text())


class TestSyncAgainstServer:
    @pytest.mark.asyncio
    async def test_signup_populates_cache_and_dashboard(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)

            account = await sync.signup(signup_payload())

        assert account["email"] == "a@x.com"
        assert cache.account["id"] == account["id"]
        assert sync.authenticated
        assert set(sync.state) == {DASHBOARD}
        assert len(sync.state[DASHBOARD]["upcoming_sessions"]) == 2

    @pytest.mark.asyncio
    async def test_feedback_refreshes_only_declared_aggregates(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)
            await sync.signup(signup_payload())
            session_id = sync.state[DASHBOARD]["upcoming_sessions"][0]["id"]

            session = await sync.submit_feedback(session_id, {"wellness": 9, "energy": 8, "sleep": 9})

        assert session["status"] == "completed"
        assert set(sync.state) == {DASHBOARD, SESSIONS, PROGRESS}
        assert sync.state[PROGRESS]["completed_sessions"] == 1
        assert session_id not in [s["id"] for s in sync.state[DASHBOARD]["upcoming_sessions"]]
        assert any(s["status"] == "completed" for s in sync.state[SESSIONS])

    @pytest.mark.asyncio
    async def test_mark_read_refreshes_notifications(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)
            await sync.signup(signup_payload())
            notification_id = sync.state[DASHBOARD]["notifications"][0]["id"]

            await sync.mark_notification_read(notification_id)

        assert set(sync.state) == {DASHBOARD, NOTIFICATIONS}
        assert sync.state[NOTIFICATIONS][0]["read"] is True
        assert sync.state[DASHBOARD]["notifications"][0]["read"] is True

    @pytest.mark.asyncio
    async def test_create_session(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)
            await sync.signup(signup_payload())

            await sync.create_session(
                {"name": "Nasya", "therapy_type": "nasya", "scheduled_date": "2099-01-01", "scheduled_time": "8:00 AM"}
            )

        assert set(sync.state) == {DASHBOARD, SESSIONS}
        assert len(sync.state[SESSIONS]) == 3

    @pytest.mark.asyncio
    async def test_start_restores_cached_session(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            await SyncCoordinator(api, cache).signup(signup_payload())

        # A fresh process reading the same storage file.
        restarted_cache = SessionCache(FileStorage(client_settings.storage_path))
        async with ApiClient(client_settings, restarted_cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, restarted_cache)

            assert await sync.start() is True

        assert restarted_cache.account["email"] == "a@x.com"
        assert DASHBOARD in sync.state

    @pytest.mark.asyncio
    async def test_start_with_expired_token(self, client_settings, cache, services, asgi_transport) -> None:
        expired = services.tokens.issue("acc-1", "a@x.com", "patient", ttl=timedelta(seconds=-30))
        cache.store(expired, ACCOUNT)

        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)

            assert await sync.start() is False

        assert stored(client_settings) == {}
        assert sync.authenticated is False
        assert sync.state == {}

    @pytest.mark.asyncio
    async def test_start_with_token_server_rejects(
        self, client_settings, cache, other_tokens, asgi_transport
    ) -> None:
        cache.store(other_tokens.issue("acc-1", "a@x.com", "patient"), ACCOUNT)

        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            assert await SyncCoordinator(api, cache).start() is False

        assert stored(client_settings) == {}

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)
            await sync.signup(signup_payload())

            await sync.logout()

        assert stored(client_settings) == {}
        assert sync.state == {}

    @pytest.mark.asyncio
    async def test_bad_login_keeps_cache_empty(self, client_settings, cache, asgi_transport) -> None:
        async with ApiClient(client_settings, cache, transport=asgi_transport) as api:
            sync = SyncCoordinator(api, cache)

            with pytest.raises(AuthenticationError) as exc:
                await sync.login("nobody@x.com", "secret1")

        assert exc.value.message == "Invalid email or password"
        assert cache.token is None


class TestApiErrors:
    @pytest.fixture
    def signed_in(self, cache: SessionCache, services) -> SessionCache:
        cache.store(services.tokens.issue("acc-1", "a@x.com", "patient"), ACCOUNT)
        return cache

    @pytest.mark.asyncio
    async def test_server_error_message_is_generic(self, client_settings, signed_in) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"message": "stack trace"}))

        async with ApiClient(client_settings, signed_in, transport=transport) as api:
            with pytest.raises(ApiError) as exc:
                await api.dashboard()

        assert exc.value.message == SERVER_ERROR_MESSAGE
        assert signed_in.token is not None

    @pytest.mark.asyncio
    async def test_unreachable_server(self, client_settings, signed_in) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with ApiClient(client_settings, signed_in, transport=httpx.MockTransport(refuse)) as api:
            with pytest.raises(ApiConnectionError) as exc:
                await api.sessions()

        assert exc.value.message == CONNECTION_ERROR_MESSAGE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failure_clears_cache_without_retry(self, client_settings, signed_in, status: int) -> None:
        calls = []

        def reject(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, json={"message": "Invalid or expired token"})

        async with ApiClient(client_settings, signed_in, transport=httpx.MockTransport(reject)) as api:
            sync = SyncCoordinator(api, signed_in)
            with pytest.raises(AuthenticationError):
                await sync.submit_feedback("s-1", {"wellness": 5, "energy": 5, "sleep": 5})

        assert len(calls) == 1
        assert calls[0].headers["Authorization"].startswith("Bearer ")
        assert signed_in.token is None
        assert signed_in.account is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"account": None}, []])
    async def test_start_with_account_missing_from_response(self, client_settings, signed_in, body) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))

        async with ApiClient(client_settings, signed_in, transport=transport) as api:
            sync = SyncCoordinator(api, signed_in)

            assert await sync.start() is False

        assert stored(client_settings) == {}
        assert sync.state == {}

    @pytest.mark.asyncio
    async def test_client_error_carries_field_messages(self, client_settings, signed_in) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"message": "Validation failed", "errors": ["Session name is required"]})
        )

        async with ApiClient(client_settings, signed_in, transport=transport) as api:
            with pytest.raises(ApiError) as exc:
                await api.create_session({})

        assert exc.value.status_code == 400
        assert exc.value.errors == ["Session name is required"]


class TestStaleResponses:
    @pytest.mark.asyncio
    async def test_superseded_refresh_is_discarded(self, client_settings, cache) -> None:
        first_started = asyncio.Event()
        release_first = asyncio.Event()
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                first_started.set()
                await release_first.wait()
                return httpx.Response(200, json={"sessions": [{"id": "old"}]})
            return httpx.Response(200, json={"sessions": [{"id": "new"}]})

        async with ApiClient(client_settings, cache, transport=httpx.MockTransport(handler)) as api:
            sync = SyncCoordinator(api, cache)

            older = asyncio.create_task(sync.refresh(SESSIONS))
            await first_started.wait()
            newer = await sync.refresh(SESSIONS)
            release_first.set()
            await older

        assert newer == [{"id": "new"}]
        assert sync.state[SESSIONS] == [{"id": "new"}]

    @pytest.mark.asyncio
    async def test_late_response_does_not_overwrite(self, client_settings, cache) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"progress": {"completed_sessions": 1}}))

        async with ApiClient(client_settings, cache, transport=transport) as api:
            sync = SyncCoordinator(api, cache)
            await sync.refresh(PROGRESS)

            # A sign-out while a fetch is outstanding invalidates its result.
            pending = asyncio.create_task(sync.refresh(PROGRESS))
            await asyncio.sleep(0)
            await sync.logout()
            await pending

        assert PROGRESS not in sync.state

    @pytest.mark.asyncio
    async def test_unknown_aggregate(self, client_settings, cache) -> None:
        async with ApiClient(client_settings, cache, transport=httpx.MockTransport(lambda r: httpx.Response(200))) as api:
            with pytest.raises(ValueError):
                await SyncCoordinator(api, cache).refresh("everything")
