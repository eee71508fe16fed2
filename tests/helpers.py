"""Shared helpers for the API tests."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi.testclient import TestClient

OTP_CODE = "123456"
OWNER_EMAIL = "owner@example.com"
OWNER_PASSWORD = "owner-pass"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup(
    client: TestClient,
    email: str = "a@example.com",
    password: str = "secret123",
    name: str = "Ada",
) -> Dict[str, Any]:
    """Register and verify an account, returning the session payload."""
    response = client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/verify-otp", json={"email": email, "otp": OTP_CODE})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def login(client: TestClient, email: str = "a@example.com", password: str = "secret123") -> Dict[str, Any]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def owner_login(client: TestClient) -> Dict[str, Any]:
    challenge = login(client, OWNER_EMAIL, OWNER_PASSWORD)
    assert challenge["verification_required"] is True
    response = client.post("/api/auth/verify-otp", json={"email": OWNER_EMAIL, "otp": OTP_CODE})
    assert response.status_code == 200, response.text
    return response.json()["data"]
