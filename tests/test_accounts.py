"""
Tests for signup, signin, password reset and profile endpoints.
"""

from datetime import datetime, timedelta

import pytest

from ouiimi.domain.accounts.service import AccountService
from ouiimi.models import PasswordReset, User
from ouiimi.security_utils import verify_jwt_token, verify_password_bcrypt

from .factories import PASSWORD, auth_headers, make_admin, make_user


def signup_payload(**overrides) -> dict:
    payload = {
        "fname": "Morgan",
        "lname": "Taylor",
        "username": "MorganT",
        "email": "Morgan@Example.com",
        "password": "supersecret1",
    }
    payload.update(overrides)
    return payload


def request_reset(client, db, email: str) -> PasswordReset:
    client.post("/api/auth/forgot-password", json={"email": email})
    db.expire_all()
    return db.query(PasswordReset).filter(PasswordReset.email == email).one()


# ---------------------------------------------------------------------------
# POST /api/auth/signup
# ---------------------------------------------------------------------------


class TestSignup:
    def test_creates_user_and_returns_token(self, client, db, sent_emails):
        response = client.post("/api/auth/signup", json=signup_payload())

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "morgan@example.com"
        assert user["username"] == "morgant"
        assert user["role"] == "user"
        assert "password" not in user
        assert "passwordHash" not in user
        assert verify_jwt_token(user["token"])["userId"] == str(user["id"])
        assert sent_emails.call_args.kwargs["subject"] == "Welcome to ouiimi"

        stored = db.query(User).filter(User.id == user["id"]).one()
        assert verify_password_bcrypt("supersecret1", stored.password_hash)

    def test_duplicate_email_is_rejected(self, client, db):
        make_user(db, email="morgan@example.com")

        response = client.post("/api/auth/signup", json=signup_payload(username="someoneelse"))

        assert response.status_code == 400
        assert response.json() == {"error": "Email or username already exists"}

    def test_duplicate_username_ignores_case(self, client, db):
        make_user(db, username="morgant")

        response = client.post(
            "/api/auth/signup", json=signup_payload(email="fresh@example.com", username="MORGANT")
        )

        assert response.status_code == 400

    def test_short_password_is_a_validation_error(self, client):
        response = client.post("/api/auth/signup", json=signup_payload(password="short"))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["details"][0]["field"] == "password"

    def test_invalid_email_is_rejected(self, client):
        response = client.post("/api/auth/signup", json=signup_payload(email="not-an-email"))

        assert response.status_code == 400

    def test_signup_never_grants_admin(self, client):
        response = client.post(
            "/api/auth/signup", json=signup_payload(email="ADMIN@ouiimi.test", username="boss")
        )
        token = response.json()["user"]["token"]

        assert response.json()["user"]["role"] == "user"
        pending = client.get(
            "/api/admin/bookings/pending", headers={"Authorization": f"Bearer {token}"}
        )
        assert pending.status_code == 403


class TestAdminRole:
    def test_operator_promotes_existing_account(self, client, db):
        user = make_user(db, username="casey")

        promoted = AccountService(db).set_admin_role("casey")

        assert promoted.role == "admin"
        response = client.get("/api/admin/bookings/pending", headers=auth_headers(user))
        assert response.status_code == 200

    def test_revoke_admin(self, db):
        admin = make_admin(db)

        AccountService(db).set_admin_role(admin.email, is_admin=False)

        db.refresh(admin)
        assert admin.role == "user"

    def test_unknown_account(self, db):
        with pytest.raises(LookupError):
            AccountService(db).set_admin_role("ghost")


# ---------------------------------------------------------------------------
# POST /api/auth/signin
# ---------------------------------------------------------------------------


class TestSignin:
    def test_signin_with_username(self, client, db):
        user = make_user(db, username="casey")

        response = client.post("/api/auth/signin", json={"username": "casey", "password": PASSWORD})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == user.id
        assert response.json()["user"]["token"]

    def test_signin_with_email_any_case(self, client, db):
        user = make_user(db, email="casey@example.com")

        response = client.post(
            "/api/auth/signin", json={"username": "Casey@Example.com", "password": PASSWORD}
        )

        assert response.json()["user"]["id"] == user.id

    def test_wrong_password(self, client, db):
        make_user(db, username="casey")

        response = client.post("/api/auth/signin", json={"username": "casey", "password": "nope-nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_unknown_user_looks_like_wrong_password(self, client):
        response = client.post("/api/auth/signin", json={"username": "ghost", "password": PASSWORD})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    def test_disabled_account(self, client, db):
        make_user(db, username="casey", is_enabled=False)

        response = client.post("/api/auth/signin", json={"username": "casey", "password": PASSWORD})

        assert response.status_code == 403

    def test_signin_is_rate_limited(self, client, db):
        make_user(db, username="casey")
        for _ in range(10):
            client.post("/api/auth/signin", json={"username": "casey", "password": "wrong-one"})

        response = client.post("/api/auth/signin", json={"username": "casey", "password": PASSWORD})

        assert response.status_code == 429
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert "Retry-After" in response.headers


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class TestPasswordReset:
    def test_forgot_password_message_is_neutral(self, client, db, sent_emails):
        make_user(db, email="casey@example.com")

        known = client.post("/api/auth/forgot-password", json={"email": "casey@example.com"})
        unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(sent_emails.call_args_list) == 1

    def test_new_request_replaces_old_token(self, client, db):
        make_user(db, email="casey@example.com")

        first = request_reset(client, db, "casey@example.com")
        first_token = first.id
        second = request_reset(client, db, "casey@example.com")

        assert second.id != first_token

    def test_reset_changes_password_once(self, client, db):
        user = make_user(db, email="casey@example.com", username="casey")
        reset = request_reset(client, db, "casey@example.com")
        payload = {
            "email": "casey@example.com",
            "token": reset.id,
            "password": "brand-new-pass",
            "confirmPassword": "brand-new-pass",
        }

        response = client.post("/api/auth/reset-password", json=payload)
        replay = client.post("/api/auth/reset-password", json=payload)

        assert response.status_code == 200
        assert replay.status_code == 400
        db.refresh(user)
        assert verify_password_bcrypt("brand-new-pass", user.password_hash)
        signin = client.post(
            "/api/auth/signin", json={"username": "casey", "password": "brand-new-pass"}
        )
        assert signin.status_code == 200

    def test_mismatched_confirmation_is_rejected(self, client, db):
        user = make_user(db, email="casey@example.com")
        original_hash = user.password_hash
        reset = request_reset(client, db, "casey@example.com")

        response = client.post(
            "/api/auth/reset-password",
            json={
                "email": "casey@example.com",
                "token": reset.id,
                "password": "brand-new-pass",
                "confirmPassword": "different-pass",
            },
        )

        assert response.status_code == 400
        assert response.json()["details"] == [
            {"field": "confirmPassword", "message": "Passwords don't match"}
        ]
        db.refresh(user)
        assert user.password_hash == original_hash

    def test_token_for_another_email_is_rejected(self, client, db):
        make_user(db, email="casey@example.com")
        make_user(db, email="jamie@example.com")
        reset = request_reset(client, db, "casey@example.com")

        response = client.post(
            "/api/auth/reset-password",
            json={
                "email": "jamie@example.com",
                "token": reset.id,
                "password": "brand-new-pass",
                "confirmPassword": "brand-new-pass",
            },
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired reset link. Please request a new one."}

    def test_expired_token_is_rejected(self, client, db):
        make_user(db, email="casey@example.com")
        reset = request_reset(client, db, "casey@example.com")
        reset.created_at = datetime.utcnow() - timedelta(hours=1)
        db.commit()

        response = client.post(
            "/api/auth/reset-password",
            json={
                "email": "casey@example.com",
                "token": reset.id,
                "password": "brand-new-pass",
                "confirmPassword": "brand-new-pass",
            },
        )

        assert response.status_code == 400


# ---------------------------------------------------------------------------
# /api/user/{id}
# ---------------------------------------------------------------------------


class TestProfile:
    def test_get_own_profile(self, client, db):
        user = make_user(db)

        response = client.get(f"/api/user/{user.id}", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["user"]["email"] == user.email

    def test_cannot_read_other_profile(self, client, db):
        user = make_user(db)
        other = make_user(db)

        response = client.get(f"/api/user/{other.id}", headers=auth_headers(user))

        assert response.status_code == 403

    def test_admin_can_read_any_profile(self, client, db):
        user = make_user(db)

        response = client.get(f"/api/user/{user.id}", headers=auth_headers(make_admin(db)))

        assert response.status_code == 200

    def test_update_own_profile(self, client, db):
        user = make_user(db)

        response = client.put(
            f"/api/user/{user.id}",
            json={"fname": "Jamie", "contactNo": "+61 412 345 678"},
            headers=auth_headers(user),
        )

        body = response.json()["user"]
        assert body["fname"] == "Jamie"
        assert body["lname"] == "Customer"
        assert body["contactNo"] == "+61412345678"

    def test_cannot_update_other_profile(self, client, db):
        user = make_user(db)
        other = make_user(db)

        response = client.put(
            f"/api/user/{other.id}", json={"fname": "Hacker"}, headers=auth_headers(user)
        )

        assert response.status_code == 403

    def test_invalid_token_is_unauthorized(self, client, db):
        user = make_user(db)

        response = client.get(
            f"/api/user/{user.id}", headers={"Authorization": "Bearer not.a.token"}
        )

        assert response.status_code == 401
