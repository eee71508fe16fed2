"""Registration, verification, login and token handling over HTTP."""
from tests.helpers import OTP_CODE, auth_header, login, signup


def test_register_issues_code_and_requires_verification(client):
    response = client.post(
        "/api/auth/register", json={"email": "Ada@Example.com", "password": "secret123", "name": "Ada"}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["verification_required"] is True
    assert body["data"]["actor"]["email"] == "ada@example.com"
    assert body["data"]["actor"]["is_verified"] is False
    assert "password_hash" not in body["data"]["actor"]


def test_register_rejects_duplicates_and_short_passwords(client):
    signup(client)

    duplicate = client.post("/api/auth/register", json={"email": "a@example.com", "password": "secret123", "name": "A"})
    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "message": "An account with this email already exists."}

    short = client.post("/api/auth/register", json={"email": "b@example.com", "password": "123", "name": "B"})
    assert short.status_code == 400
    assert short.json()["success"] is False


def test_malformed_body_is_a_400_envelope(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "secret123"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_verify_otp_starts_session(client):
    data = signup(client)

    assert data["actor"]["is_verified"] is True
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 15 * 60
    assert data["refresh_token"]
    assert client.cookies.get("webnest_sid")

    me = client.get("/api/auth/me", headers=auth_header(data["access_token"]))
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "a@example.com"


def test_wrong_codes_block_verification(client):
    client.post("/api/auth/register", json={"email": "a@example.com", "password": "secret123", "name": "Ada"})

    statuses = [
        client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": "000000"}).status_code
        for _ in range(5)
    ]
    assert statuses == [400, 400, 400, 400, 403]

    blocked = client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": OTP_CODE})
    assert blocked.status_code == 403
    assert "Too many attempts" in blocked.json()["message"]

    resend = client.post("/api/auth/resend-otp", json={"email": "a@example.com"})
    assert resend.status_code == 403


def test_lockout_lifts_after_fifteen_minutes(client, clock):
    client.post("/api/auth/register", json={"email": "a@example.com", "password": "secret123", "name": "Ada"})
    for _ in range(5):
        client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": "000000"})

    clock.advance(minutes=15)
    assert client.post("/api/auth/resend-otp", json={"email": "a@example.com"}).status_code == 200
    verified = client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": OTP_CODE})
    assert verified.status_code == 200


def test_expired_code_is_rejected(client, clock):
    client.post("/api/auth/register", json={"email": "a@example.com", "password": "secret123", "name": "Ada"})
    clock.advance(minutes=5)

    response = client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": OTP_CODE})
    assert response.status_code == 400
    assert "expired" in response.json()["message"]


def test_resend_is_silent_for_unknown_and_refused_once_verified(client):
    assert client.post("/api/auth/resend-otp", json={"email": "ghost@example.com"}).status_code == 200

    signup(client)
    response = client.post("/api/auth/resend-otp", json={"email": "a@example.com"})
    assert response.status_code == 400
    assert response.json()["message"] == "Email already verified"


def test_login_of_unverified_account_sends_code(client):
    client.post("/api/auth/register", json={"email": "a@example.com", "password": "secret123", "name": "Ada"})

    data = login(client)

    assert data == {"verification_required": True, "email": "a@example.com"}


def test_login_with_bad_credentials(client):
    signup(client)

    wrong = client.post("/api/auth/login", json={"email": "a@example.com", "password": "wrong-pass"})
    unknown = client.post("/api/auth/login", json={"email": "b@example.com", "password": "secret123"})

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"] == "Invalid credentials"


def test_cookie_alone_authenticates(client):
    signup(client)
    assert client.get("/api/auth/me").status_code == 200

    client.cookies.clear()
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_garbage_token_is_rejected(client):
    client.cookies.clear()
    response = client.get("/api/auth/me", headers=auth_header("not-a-jwt"))
    assert response.status_code == 401


def test_logout_invalidates_token_and_refresh_token(client):
    data = signup(client)
    headers = auth_header(data["access_token"])

    assert client.post("/api/auth/logout", headers=headers).status_code == 200

    client.cookies.clear()
    assert client.get("/api/auth/me", headers=headers).status_code == 401
    refreshed = client.post("/api/auth/refresh", json={"refresh_token": data["refresh_token"]})
    assert refreshed.status_code == 401


def test_refresh_issues_new_access_token(client, clock):
    data = signup(client)
    clock.advance(minutes=1)

    response = client.post("/api/auth/refresh", json={"refresh_token": data["refresh_token"]})

    assert response.status_code == 200
    refreshed = response.json()["data"]
    assert refreshed["access_token"] != data["access_token"]
    client.cookies.clear()
    assert client.get("/api/auth/me", headers=auth_header(refreshed["access_token"])).status_code == 200


def test_session_expiry_invalidates_token(client, clock):
    data = signup(client)
    clock.advance(days=31)

    client.cookies.clear()
    response = client.get("/api/auth/me", headers=auth_header(data["access_token"]))
    assert response.status_code == 401


def test_update_password_revokes_other_sessions(client):
    first = signup(client)
    second = login(client)

    response = client.put(
        "/api/auth/update-password",
        json={"current_password": "secret123", "new_password": "newsecret"},
        headers=auth_header(first["access_token"]),
    )
    assert response.status_code == 200

    client.cookies.clear()
    assert client.get("/api/auth/me", headers=auth_header(first["access_token"])).status_code == 200
    assert client.get("/api/auth/me", headers=auth_header(second["access_token"])).status_code == 401
    assert client.post("/api/auth/login", json={"email": "a@example.com", "password": "secret123"}).status_code == 401
    assert login(client, password="newsecret")["access_token"]


def test_update_password_checks_current(client):
    data = signup(client)

    response = client.put(
        "/api/auth/update-password",
        json={"current_password": "nope-nope", "new_password": "newsecret"},
        headers=auth_header(data["access_token"]),
    )
    assert response.status_code == 401


def test_tokens_are_bound_to_their_service(make_client):
    client_service = make_client("client")
    developer_service = make_client("developer")
    data = signup(developer_service, email="dev@example.com")

    client_service.cookies.clear()
    response = client_service.get("/api/auth/me", headers=auth_header(data["access_token"]))
    assert response.status_code == 401


def test_admin_service_refuses_self_registration(make_client):
    admin = make_client("admin")

    response = admin.post("/api/auth/register", json={"email": "x@example.com", "password": "secret123", "name": "X"})
    assert response.status_code == 403


def test_health_reports_service(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["service"] == "WebNest Client Service"
    assert data["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_logout_clears_cookie_with_session_attributes(client):
    data = signup(client)

    response = client.post("/api/auth/logout", headers=auth_header(data["access_token"]))

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("webnest_sid=")
    assert "Max-Age=0" in cookie
    assert "HttpOnly" in cookie
    assert "SameSite=lax" in cookie
