"""Owner bootstrap, admin creation and actor (de)activation."""
from tests.helpers import OTP_CODE, OWNER_EMAIL, OWNER_PASSWORD, auth_header, login, owner_login, signup
from webnest.domain.models import ActorKind


def test_owner_is_bootstrapped_and_needs_otp_at_login(make_client):
    admin = make_client("admin")

    data = owner_login(admin)

    assert data["actor"]["role"] == "owner"
    assert data["actor"]["email"] == OWNER_EMAIL


def test_admin_login_history_is_recorded(make_client, persistence):
    admin = make_client("admin")
    owner_login(admin)

    owner = admin.portal.call(persistence.get_actor_by_email, ActorKind.ADMIN, OWNER_EMAIL)
    assert len(owner.login_history) == 1
    assert owner.login_history[0]["user_agent"] == "testclient"


def test_owner_lists_and_deactivates_users(make_client):
    client = make_client("client")
    admin = make_client("admin")
    user = signup(client)
    owner = owner_login(admin)
    headers = auth_header(owner["access_token"])

    listed = admin.get("/api/admin/actors/users", headers=headers)
    assert listed.status_code == 200
    assert [item["email"] for item in listed.json()["data"]["items"]] == ["a@example.com"]

    user_id = user["actor"]["id"]
    response = admin.patch(f"/api/admin/actors/users/{user_id}/deactivate", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    client.cookies.clear()
    assert client.get("/api/auth/me", headers=auth_header(user["access_token"])).status_code == 401
    assert client.post("/api/auth/refresh", json={"refresh_token": user["refresh_token"]}).status_code == 401
    denied = client.post("/api/auth/login", json={"email": "a@example.com", "password": "secret123"})
    assert denied.status_code == 403

    assert admin.patch(f"/api/admin/actors/users/{user_id}/activate", headers=headers).status_code == 200
    assert login(client)["access_token"]


def test_owner_cannot_deactivate_self(make_client):
    admin = make_client("admin")
    owner = owner_login(admin)

    response = admin.patch(
        f"/api/admin/actors/admins/{owner['actor']['id']}/deactivate", headers=auth_header(owner["access_token"])
    )
    assert response.status_code == 400


def test_unknown_collection_is_404(make_client):
    admin = make_client("admin")
    owner = owner_login(admin)

    response = admin.get("/api/admin/actors/robots", headers=auth_header(owner["access_token"]))
    assert response.status_code == 404


def test_created_admin_is_limited_to_granted_permissions(make_client):
    admin = make_client("admin")
    owner = owner_login(admin)
    owner_headers = auth_header(owner["access_token"])

    created = admin.post(
        "/api/auth/create-admin",
        json={
            "email": "support@example.com",
            "password": "support-pass",
            "name": "Support",
            "permissions": [{"module": "users", "actions": ["read"]}],
        },
        headers=owner_headers,
    )
    assert created.status_code == 201
    assert created.json()["data"]["role"] == "admin"

    assert login(admin, "support@example.com", "support-pass")["verification_required"] is True
    verified = admin.post("/api/auth/verify-otp", json={"email": "support@example.com", "otp": OTP_CODE})
    headers = auth_header(verified.json()["data"]["access_token"])
    admin.cookies.clear()

    assert admin.get("/api/admin/actors/users", headers=headers).status_code == 200
    assert admin.get("/api/admin/actors/developers", headers=headers).status_code == 403
    assert admin.get("/api/admin/actors/admins", headers=headers).status_code == 403

    again = admin.post(
        "/api/auth/create-admin",
        json={"email": "x@example.com", "password": "x-pass-1", "name": "X"},
        headers=headers,
    )
    assert again.status_code == 403


def test_create_admin_rejects_unknown_permissions(make_client):
    admin = make_client("admin")
    owner = owner_login(admin)

    response = admin.post(
        "/api/auth/create-admin",
        json={
            "email": "ops@example.com",
            "password": "ops-pass",
            "name": "Ops",
            "permissions": [{"module": "billing", "actions": ["read"]}],
        },
        headers=auth_header(owner["access_token"]),
    )
    assert response.status_code == 400


def test_admin_routes_only_exist_on_admin_service(client):
    user = signup(client)

    response = client.get("/api/admin/actors/users", headers=auth_header(user["access_token"]))
    assert response.status_code == 404


def test_login_code_cannot_be_requested_without_password(make_client):
    admin = make_client("admin")

    assert admin.post("/api/auth/resend-otp", json={"email": OWNER_EMAIL}).status_code == 200
    response = admin.post("/api/auth/verify-otp", json={"email": OWNER_EMAIL, "otp": OTP_CODE})

    assert response.status_code == 400
    assert "access_token" not in response.text
    assert not admin.cookies.get("webnest_sid")


def test_login_code_is_resent_only_while_login_is_pending(make_client):
    admin = make_client("admin")
    assert login(admin, OWNER_EMAIL, OWNER_PASSWORD)["verification_required"] is True

    assert admin.post("/api/auth/resend-otp", json={"email": OWNER_EMAIL}).status_code == 200
    verified = admin.post("/api/auth/verify-otp", json={"email": OWNER_EMAIL, "otp": OTP_CODE})
    assert verified.status_code == 200

    # The challenge is spent by the successful verification.
    again = admin.post("/api/auth/verify-otp", json={"email": OWNER_EMAIL, "otp": OTP_CODE})
    assert again.status_code == 400


def test_pending_login_lapses(make_client, clock):
    admin = make_client("admin")
    login(admin, OWNER_EMAIL, OWNER_PASSWORD)

    clock.advance(minutes=16)
    admin.post("/api/auth/resend-otp", json={"email": OWNER_EMAIL})
    response = admin.post("/api/auth/verify-otp", json={"email": OWNER_EMAIL, "otp": OTP_CODE})

    assert response.status_code == 400
    assert "log in again" in response.json()["message"]
