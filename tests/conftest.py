"""
Pytest configuration and fixtures for the WebNest services.

Every test runs against the in-process store with a controllable clock and a
fixed one-time code, so no MongoDB or mail delivery is needed.
"""
import pytest
from fastapi.testclient import TestClient

from tests.helpers import OTP_CODE, OWNER_EMAIL, OWNER_PASSWORD, FakeClock
from webnest.core.app_factory import create_application
from webnest.core.config import Settings
from webnest.infrastructure.persistence.memory import InMemoryPersistence


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def service_env(monkeypatch):
    for key in (
        "WEBNEST_SERVICE",
        "PORT",
        "MONGODB_DATABASE",
        "OTP_ON_LOGIN",
        "CORS_ALLOW_ORIGINS",
        "SESSION_COOKIE_SECURE",
        "TRUST_PROXY_HEADERS",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MONGODB_URI", "memory://")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("ADMIN_EMAIL", OWNER_EMAIL)
    monkeypatch.setenv("ADMIN_PASSWORD", OWNER_PASSWORD)


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    monkeypatch.setattr("webnest.application.services.otp_service.generate_code", lambda: OTP_CODE)


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture
def make_client(clock, persistence):
    """Factory for a started ``TestClient`` of one service; all share one store."""
    clients = []

    def factory(service: str = "client") -> TestClient:
        app = create_application(Settings(service), persistence, clock=clock)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client("client")
