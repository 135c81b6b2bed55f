"""
Auth and user administration — sign-up/in/out, password reset, profiles.
"""

import pytest
from conftest import TEST_PASSWORD

from flowform.models.auth import ROLE_ADMINISTRATOR
from flowform.services import auth_service

API = "/api/v1"


def _post(client, url, data=None, headers=None):
    return client.post(API + url, json=data or {}, headers=headers)


def _get(client, url, headers=None):
    return client.get(API + url, headers=headers)


def _put(client, url, data=None, headers=None):
    return client.put(API + url, json=data or {}, headers=headers)


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


# ═════════════════════════════════════════════════════════════════════════════
# Sign-up / sign-in / sign-out
# ═════════════════════════════════════════════════════════════════════════════

class TestSignUpSignIn:
    def test_sign_up_creates_standard_profile(self, client):
        res = _post(client, "/auth/sign-up",
                    {"email": "New.User@Example.com", "password": TEST_PASSWORD, "display_name": "New"})
        assert res.status_code == 201
        identity = res.get_json()
        assert identity["email"] == "new.user@example.com"

        token = _post(client, "/auth/sign-in",
                      {"email": "new.user@example.com", "password": TEST_PASSWORD}).get_json()["access_token"]
        me = _get(client, "/auth/me", _bearer(token)).get_json()
        assert me["id"] == identity["id"]
        assert me["profile"]["role"] == "StandardUser"
        assert me["profile"]["username"] == "new.user"

    def test_sign_up_duplicate_email(self, client, member):
        res = _post(client, "/auth/sign-up", {"email": "member@example.com", "password": TEST_PASSWORD})
        assert res.status_code == 409

    @pytest.mark.parametrize("payload, status", [
        ({"email": "", "password": TEST_PASSWORD}, 400),
        ({"email": "not-an-email", "password": TEST_PASSWORD}, 422),
        ({"email": "short@example.com", "password": "abc"}, 422),
        ({"email": 5, "password": TEST_PASSWORD}, 422),
        ({"email": "typed@example.com", "password": 12345678}, 422),
    ])
    def test_sign_up_rejects(self, client, payload, status):
        assert _post(client, "/auth/sign-up", payload).status_code == status

    def test_sign_in_wrong_password(self, client, member):
        res = _post(client, "/auth/sign-in", {"email": "member@example.com", "password": "wrong-password"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_sign_in_payload(self, client, member):
        body = _post(client, "/auth/sign-in",
                     {"email": "member@example.com", "password": TEST_PASSWORD}).get_json()
        assert body["token_type"] == "Bearer"
        assert body["user"]["id"] == member["id"]
        assert body["expires_in"] == 3600

    def test_sign_out_revokes_token(self, client, member):
        headers = _bearer(member["token"])
        assert _get(client, "/auth/me", headers).status_code == 200
        assert _post(client, "/auth/sign-out", headers=headers).status_code == 200
        assert _get(client, "/auth/me", headers).status_code == 401

    def test_garbage_token(self, client):
        assert _get(client, "/auth/me", _bearer("not-a-jwt")).status_code == 401


# ═════════════════════════════════════════════════════════════════════════════
# Password reset
# ═════════════════════════════════════════════════════════════════════════════

class TestPasswordReset:
    def test_unknown_email_still_accepted(self, client):
        res = _post(client, "/auth/password-reset", {"email": "nobody@example.com"})
        assert res.status_code == 202

    def test_reset_flow_revokes_sessions(self, client, member):
        token = auth_service.request_password_reset("member@example.com")
        assert token

        res = _post(client, "/auth/password-reset/confirm",
                    {"token": token, "password": "brand-new-password"})
        assert res.status_code == 200

        assert _get(client, "/auth/me", _bearer(member["token"])).status_code == 401
        old = _post(client, "/auth/sign-in", {"email": "member@example.com", "password": TEST_PASSWORD})
        assert old.status_code == 401
        new = _post(client, "/auth/sign-in", {"email": "member@example.com", "password": "brand-new-password"})
        assert new.status_code == 200

    def test_reset_token_single_use(self, client, member):
        token = auth_service.request_password_reset("member@example.com")
        _post(client, "/auth/password-reset/confirm", {"token": token, "password": "brand-new-password"})
        res = _post(client, "/auth/password-reset/confirm", {"token": token, "password": "another-password"})
        assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# User administration
# ═════════════════════════════════════════════════════════════════════════════

class TestUsers:
    def test_list_users(self, client, admin_headers, member):
        res = _get(client, "/users", admin_headers)
        assert res.status_code == 200
        assert {u["email"] for u in res.get_json()} == {"admin@example.com", "member@example.com"}

    def test_member_cannot_change_roles(self, client, member_headers, member):
        res = _put(client, f"/users/{member['id']}", {"role": ROLE_ADMINISTRATOR}, member_headers)
        assert res.status_code == 403

    def test_admin_promotes_user(self, client, admin_headers, member):
        res = _put(client, f"/users/{member['id']}", {"role": "TaskExecutor"}, admin_headers)
        assert res.status_code == 200
        assert res.get_json()["role"] == "TaskExecutor"

    def test_invalid_role(self, client, admin_headers, member):
        res = _put(client, f"/users/{member['id']}", {"role": "Overlord"}, admin_headers)
        assert res.status_code == 422

    def test_add_profile_for_registered_account(self, client, admin_headers):
        identity = auth_service.sign_up("late@example.com", TEST_PASSWORD)
        res = _post(client, "/users", {"email": "late@example.com", "role": "TaskExecutor",
                                       "username": "late_joiner"}, admin_headers)
        assert res.status_code == 201
        body = res.get_json()
        assert body["id"] == identity["id"]
        assert body["role"] == "TaskExecutor"
        assert body["username"] == "late_joiner"

    def test_archived_admin_loses_admin_routes(self, client, admin, admin_headers):
        _post(client, f"/users/{admin['id']}/archive", headers=admin_headers)
        assert _post(client, "/fields", {"name": "x", "label": "X"}, admin_headers).status_code == 403
        assert _get(client, "/users", admin_headers).status_code == 200

    def test_missing_user(self, client, admin_headers):
        assert _get(client, "/users/missing", admin_headers).status_code == 404


def test_health(client):
    assert client.get(f"{API}/health").get_json() == {"status": "ok", "app": "FlowForm"}
    live = client.get(f"{API}/health/live").get_json()
    assert live["status"] == "ok"
    assert live["checks"]["blob_store"]["backend"] == "memory"


def test_unknown_route_is_json(client):
    res = client.get(f"{API}/nowhere")
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════════
# create-admin CLI
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateAdminCommand:
    def _invoke(self, app, *args):
        return app.test_cli_runner().invoke(args=["create-admin", *args])

    def test_registers_first_administrator(self, app, client):
        result = self._invoke(app, "owner@example.com", "--password", TEST_PASSWORD)
        assert result.exit_code == 0, result.output
        assert "Administrator" in result.output

        token = _post(client, "/auth/sign-in",
                      {"email": "owner@example.com", "password": TEST_PASSWORD}).get_json()["access_token"]
        assert _get(client, "/auth/me", _bearer(token)).get_json()["profile"]["role"] == ROLE_ADMINISTRATOR
        res = _post(client, "/fields", {"name": "title", "label": "Title"}, _bearer(token))
        assert res.status_code == 201

    def test_promotes_and_restores_existing_user(self, app, client, admin_headers, member):
        _post(client, f"/users/{member['id']}/archive", headers=admin_headers)
        result = self._invoke(app, "member@example.com")
        assert result.exit_code == 0, result.output

        profile = _get(client, f"/users/{member['id']}", admin_headers).get_json()
        assert profile["role"] == ROLE_ADMINISTRATOR
        assert profile["is_archived"] is False

    def test_unknown_email_without_password_fails(self, app):
        result = self._invoke(app, "ghost@example.com")
        assert result.exit_code != 0
        assert "password" in result.output
