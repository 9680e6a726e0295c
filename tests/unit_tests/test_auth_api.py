"""HTTP tests for the /auth and /users routers."""

from auth_starter.constants import Role
from auth_starter.security import create_access_token
from tests.conftest import PASSWORD

SIGNUP = {
    "first_name": "Ada",
    "last_name": "Obi",
    "email": "ada@example.com",
    "phone": "08012345678",
    "password": PASSWORD,
}


def _auth_header(user) -> dict:
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


class TestHealth:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_readyz_without_database(self, client):
        resp = client.get("/readyz")
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Database not ready"


class TestSignupAndLogin:
    def test_signup_verify_login(self, client, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        assert resp.status_code == 201
        body = resp.json()
        assert body["mail_error"] is False
        assert body["user"]["phone"] == "+2348012345678"
        assert "password_hash" not in body["user"]

        resp = client.post("/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
        assert resp.status_code == 403

        code = repo.stored(body["user"]["id"]).email_verification_otp
        resp = client.post("/auth/verify-email", json={"email": "ada@example.com", "otp": code})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Email verified successfully"}

        resp = client.post("/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_signup_mail_failure_flag(self, client, mail):
        mail.fail_with = "SMTP down"

        resp = client.post("/auth/signup", json=SIGNUP)

        assert resp.status_code == 201
        assert resp.json()["mail_error"] is True

    def test_duplicate_signup(self, client):
        client.post("/auth/signup", json=SIGNUP)

        resp = client.post("/auth/signup", json=SIGNUP)

        assert resp.status_code == 400
        assert resp.json() == {
            "detail": "User with this phone number already exists",
            "status_code": 400,
        }

    def test_short_password_rejected(self, client):
        resp = client.post("/auth/signup", json={**SIGNUP, "password": "abc"})
        assert resp.status_code == 422

    def test_bad_credentials(self, client):
        resp = client.post("/auth/login", json={"email": "ada@example.com", "password": "x"})
        assert resp.status_code == 401


class TestOtpRoutes:
    def test_throttle_maps_to_409_with_retry_after(self, client):
        client.post("/auth/signup", json=SIGNUP)

        resp = client.post("/auth/resend-verification-otp", json={"email": "ada@example.com"})

        assert resp.status_code == 409
        assert resp.headers["Retry-After"] == "300"
        assert "5 minutes" in resp.json()["detail"]

    def test_forgot_and_reset_password(self, client, repo, clock):
        resp = client.post("/auth/signup", json=SIGNUP)
        user_id = resp.json()["user"]["id"]
        clock.advance(minutes=6)

        resp = client.post("/auth/forgot-password", json={"phone": "08012345678"})
        assert resp.status_code == 200
        assert resp.json()["message"] == "Password reset OTP sent to your phone number."

        code = repo.stored(user_id).reset_password_otp
        resp = client.post(
            "/auth/reset-password",
            json={"phone": "08012345678", "otp": code, "new_password": "NewPass#2024"},
        )
        assert resp.status_code == 200
        assert repo.stored(user_id).reset_password_otp is None

    def test_forgot_password_sms_failure_is_502(self, client, sms, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        user_id = resp.json()["user"]["id"]
        repo.stored(user_id).last_otp_request_time = None
        sms.fail_with = "timeout"

        resp = client.post("/auth/forgot-password", json={"phone": "08012345678"})

        assert resp.status_code == 502
        assert repo.stored(user_id).reset_password_otp is not None

    def test_verify_phone_wrong_code(self, client, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        user_id = resp.json()["user"]["id"]
        repo.stored(user_id).phone_verification_otp = "4821"

        resp = client.post("/auth/verify-phone", json={"phone": "08012345678", "otp": "1111"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid OTP"

    def test_send_verification_otp_requires_auth(self, client):
        resp = client.post("/auth/send-verification-otp", json={"type": "phone"})
        assert resp.status_code == 401

    def test_send_verification_otp(self, client, repo, sms):
        resp = client.post("/auth/signup", json=SIGNUP)
        user = repo.stored(resp.json()["user"]["id"])
        user.last_otp_request_time = None

        resp = client.post(
            "/auth/send-verification-otp",
            json={"type": "phone"},
            headers=_auth_header(user),
        )

        assert resp.status_code == 200
        assert repo.stored(user.id).phone_verification_otp in sms.sent[-1][1]

    def test_reset_password_with_token(self, client, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        user_id = resp.json()["user"]["id"]

        resp = client.post("/auth/forgot-password-email", json={"email": "ada@example.com"})
        assert resp.status_code == 200

        token = repo.stored(user_id).reset_password_token
        resp = client.post(f"/auth/reset-password/{token}", json={"new_password": "NewPass#2024"})
        assert resp.status_code == 200

        resp = client.post(f"/auth/reset-password/{token}", json={"new_password": "NewPass#2024"})
        assert resp.status_code == 400

    def test_me(self, client, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        user = repo.stored(resp.json()["user"]["id"])

        resp = client.get("/auth/me", headers=_auth_header(user))

        assert resp.status_code == 200
        assert resp.json()["email"] == "ada@example.com"


class TestUserAdmin:
    def _admin(self, client, repo):
        resp = client.post(
            "/auth/signup",
            json={**SIGNUP, "email": "admin@example.com", "phone": "08011111111"},
        )
        admin = repo.stored(resp.json()["user"]["id"])
        admin.role = Role.ADMIN
        return admin

    def test_non_admin_forbidden(self, client, repo):
        resp = client.post("/auth/signup", json=SIGNUP)
        user = repo.stored(resp.json()["user"]["id"])

        resp = client.get("/users", headers=_auth_header(user))
        assert resp.status_code == 403

    def test_list_update_delete(self, client, repo):
        admin = self._admin(client, repo)
        user_id = client.post("/auth/signup", json=SIGNUP).json()["user"]["id"]
        headers = _auth_header(admin)

        resp = client.get("/users", headers=headers)
        assert resp.status_code == 200
        assert {u["email"] for u in resp.json()} == {"admin@example.com", "ada@example.com"}

        resp = client.patch(
            f"/users/{user_id}",
            json={"last_name": "Okafor", "phone": "08022222222"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["last_name"] == "Okafor"
        assert resp.json()["phone"] == "+2348022222222"

        resp = client.delete(f"/users/{user_id}", headers=headers)
        assert resp.status_code == 204

        resp = client.get(f"/users/{user_id}", headers=headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == f"User with ID {user_id} not found"

    def test_phone_change_clears_verified_flag(self, client, repo):
        admin = self._admin(client, repo)
        user_id = client.post("/auth/signup", json=SIGNUP).json()["user"]["id"]
        repo.stored(user_id).is_phone_verified = True

        resp = client.patch(
            f"/users/{user_id}", json={"phone": "08033333333"}, headers=_auth_header(admin)
        )

        assert resp.status_code == 200
        assert resp.json()["is_phone_verified"] is False

    def test_invalid_phone_update_is_400(self, client, repo):
        admin = self._admin(client, repo)
        user_id = client.post("/auth/signup", json=SIGNUP).json()["user"]["id"]

        resp = client.patch(f"/users/{user_id}", json={"phone": "123"}, headers=_auth_header(admin))

        assert resp.status_code == 400


class TestNotificationPreferences:
    def _user(self, client, repo, **overrides):
        resp = client.post("/auth/signup", json={**SIGNUP, **overrides})
        return repo.stored(resp.json()["user"]["id"])

    def test_default_preference(self, client, repo):
        user = self._user(client, repo)

        resp = client.get(f"/notifications/preferences/{user.id}", headers=_auth_header(user))

        assert resp.status_code == 200
        body = resp.json()
        assert body["opted_in"] is True
        assert body["subscribed_categories"] == ["promotional"]
        assert body["email"] == "ada@example.com"

    def test_update_preference(self, client, repo, preference_repo):
        user = self._user(client, repo)

        resp = client.put(
            f"/notifications/preferences/{user.id}",
            json={"opted_in": False, "subscribed_categories": ["newsletter", "events"]},
            headers=_auth_header(user),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["opted_in"] is False
        assert body["opt_out_date"] is not None
        assert body["subscribed_categories"] == ["newsletter", "events"]
        assert preference_repo.records[user.id].opted_in is False

    def test_unknown_category_rejected(self, client, repo):
        user = self._user(client, repo)

        resp = client.put(
            f"/notifications/preferences/{user.id}",
            json={"subscribed_categories": ["spam"]},
            headers=_auth_header(user),
        )

        assert resp.status_code == 422

    def test_other_users_preferences_forbidden(self, client, repo):
        owner = self._user(client, repo)
        other = self._user(client, repo, email="bola@example.com", phone="08055555555")

        resp = client.get(f"/notifications/preferences/{owner.id}", headers=_auth_header(other))

        assert resp.status_code == 403

    def test_admin_can_read_any_preference(self, client, repo):
        owner = self._user(client, repo)
        admin = self._user(client, repo, email="admin@example.com", phone="08011111111")
        admin.role = Role.ADMIN

        resp = client.get(f"/notifications/preferences/{owner.id}", headers=_auth_header(admin))

        assert resp.status_code == 200

    def test_requires_auth(self, client):
        resp = client.get("/notifications/preferences/abc")
        assert resp.status_code == 401
