from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app
from models.account import Account
from services.auth_service import TokenService
from services.container import ServiceContainer

TEST_SECRET = "test-secret"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = dict(
        env="test",
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        password_hash_rounds=1000,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


def signup_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "full_name": "Asha Rao",
        "email": "a@x.com",
        "password": "secret1",
        "phone": "9876543210",
        "account_type": "patient",
    }
    payload.update(overrides)
    return payload


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def services(app) -> ServiceContainer:
    return app.state.services


@pytest.fixture
def client(app):
    # Entering the context runs the lifespan, which creates the tables.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def patient(client: TestClient) -> dict[str, Any]:
    """Signed-up patient: {"account": ..., "token": ..., "headers": ...}."""
    res = client.post("/api/auth/signup", json=signup_payload())
    assert res.status_code == 201, res.text
    body = res.json()
    body["headers"] = auth_header(body["token"])
    return body


@pytest.fixture
def practitioner(client: TestClient) -> dict[str, Any]:
    res = client.post(
        "/api/auth/signup",
        json=signup_payload(full_name="Dr. Vaidya", email="vaidya@clinic.in", account_type="practitioner"),
    )
    assert res.status_code == 201, res.text
    body = res.json()
    body["headers"] = auth_header(body["token"])
    return body


@pytest.fixture
def other_tokens() -> TokenService:
    """Issues tokens the server did not sign."""
    return TokenService(secret="someone-else", algorithm="HS256", default_ttl=timedelta(days=7))


def insert_account(services: ServiceContainer, email: str, account_type: str = "patient") -> str:
    with services.session_factory() as db, db.begin():
        account = Account(
            email=email,
            full_name="Direct Insert",
            phone="9876543210",
            account_type=account_type,
            hashed_password=services.hasher.hash("secret1"),
            profile={},
        )
        db.add(account)
        db.flush()
        return account.id
