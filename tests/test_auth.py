import pytest
from datetime import datetime, timedelta

from app.models.user import User

API = "/api/v1"

test_user_data = {
    "name": "Alice Adult",
    "email": "a@x.com",
    "password": "Passw0rd",
    "userType": "adult",
}

test_login_data = {
    "email": "a@x.com",
    "password": "Passw0rd",
}


def bearer(response):
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


class TestRegistration:

    def test_register_user(self, client):
        """Registration returns the public user view and a token."""
        response = client.post(f"{API}/auth/register", json=test_user_data)
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["email"] == "a@x.com"
        assert user["userType"] == "adult"
        assert user["isActive"] is True
        assert "password" not in user
        assert "passwordHash" not in user
        assert body["data"]["token"]

    def test_register_duplicate_email_case_insensitive(self, client):
        """A second registration with the same email in any case conflicts."""
        client.post(f"{API}/auth/register", json=test_user_data)

        duplicate = dict(test_user_data, email="A@X.COM")
        response = client.post(f"{API}/auth/register", json=duplicate)
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "already in use" in response.json()["message"]

    def test_register_stores_lowercase_email(self, client, db_session):
        """Emails are stored lowercase."""
        client.post(f"{API}/auth/register", json=dict(test_user_data, email="Mixed@Case.com"))

        user = db_session.query(User).first()
        assert user.email == "mixed@case.com"
        assert user.password_hash != test_user_data["password"]

    @pytest.mark.parametrize("password", ["weak", "alllowercase1", "ALLUPPER1", "NoDigitsHere"])
    def test_register_invalid_password(self, client, password):
        """Weak passwords fail validation."""
        response = client.post(
            f"{API}/auth/register", json=dict(test_user_data, password=password)
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "password"

    def test_register_invalid_user_type(self, client):
        """Only adult, adolescent and health_professional are accepted."""
        response = client.post(
            f"{API}/auth/register", json=dict(test_user_data, userType="admin")
        )
        assert response.status_code == 400

    def test_register_invalid_name(self, client):
        """Names are letters and spaces only."""
        response = client.post(
            f"{API}/auth/register", json=dict(test_user_data, name="R2D2")
        )
        assert response.status_code == 400

    def test_register_password_confirmation_mismatch(self, client):
        """When given, confirmPassword must match."""
        response = client.post(
            f"{API}/auth/register",
            json=dict(test_user_data, confirmPassword="Different1")
        )
        assert response.status_code == 400

    def test_register_rate_limited(self, client, fake_redis):
        """Registration is refused once the per-IP window is exhausted."""
        fake_redis.setex("rate_limit:register:testclient", 3600, 10)

        response = client.post(f"{API}/auth/register", json=test_user_data)
        assert response.status_code == 429


class TestLogin:

    def test_login_success(self, client):
        """Correct credentials return a token and stamp last login."""
        client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(f"{API}/auth/login", json=test_login_data)
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["email"] == "a@x.com"
        assert data["user"]["lastLogin"] is not None

    def test_login_email_case_insensitive(self, client):
        client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(f"{API}/auth/login", json=dict(test_login_data, email="A@x.com"))
        assert response.status_code == 200

    def test_login_unknown_email(self, client):
        """Unknown emails are rejected as invalid credentials."""
        response = client.post(f"{API}/auth/login", json={
            "email": "nobody@x.com",
            "password": "Passw0rd",
        })
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_login_wrong_password(self, client, db_session):
        """A wrong password fails and is counted."""
        client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(f"{API}/auth/login", json=dict(test_login_data, password="Wrong1pass"))
        assert response.status_code == 401

        user = db_session.query(User).filter(User.email == "a@x.com").first()
        assert user.failed_login_attempts == 1

    def test_lockout_after_five_failures(self, client):
        """Five wrong passwords lock the account, even for the right password."""
        client.post(f"{API}/auth/register", json=test_user_data)

        for _ in range(5):
            response = client.post(
                f"{API}/auth/login", json=dict(test_login_data, password="Wrong1pass")
            )
            assert response.status_code == 401

        response = client.post(f"{API}/auth/login", json=test_login_data)
        assert response.status_code == 423
        assert response.json()["success"] is False

    def test_lock_expires(self, client, db_session):
        """After the lock window passes, the right password works again."""
        client.post(f"{API}/auth/register", json=test_user_data)

        user = db_session.query(User).filter(User.email == "a@x.com").first()
        user.failed_login_attempts = 5
        user.locked_until = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = client.post(f"{API}/auth/login", json=test_login_data)
        assert response.status_code == 200

        db_session.refresh(user)
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    def test_failure_after_expired_lock_restarts_count(self, client, db_session):
        client.post(f"{API}/auth/register", json=test_user_data)

        user = db_session.query(User).filter(User.email == "a@x.com").first()
        user.failed_login_attempts = 5
        user.locked_until = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = client.post(f"{API}/auth/login", json=dict(test_login_data, password="Wrong1pass"))
        assert response.status_code == 401

        db_session.refresh(user)
        assert user.failed_login_attempts == 1
        assert user.locked_until is None

    def test_success_resets_failed_attempts(self, client, db_session):
        client.post(f"{API}/auth/register", json=test_user_data)
        for _ in range(3):
            client.post(f"{API}/auth/login", json=dict(test_login_data, password="Wrong1pass"))

        response = client.post(f"{API}/auth/login", json=test_login_data)
        assert response.status_code == 200

        user = db_session.query(User).filter(User.email == "a@x.com").first()
        assert user.failed_login_attempts == 0

    def test_login_deactivated_account(self, client, db_session):
        """Deactivated accounts cannot log in."""
        client.post(f"{API}/auth/register", json=test_user_data)

        user = db_session.query(User).filter(User.email == "a@x.com").first()
        user.is_active = False
        db_session.commit()

        response = client.post(f"{API}/auth/login", json=test_login_data)
        assert response.status_code == 403


class TestSession:

    def test_get_current_user(self, client):
        """Bearer token resolves to the current user."""
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.get(f"{API}/auth/me", headers=bearer(register_response))
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "a@x.com"

    def test_get_current_user_from_cookie(self, client):
        """The session cookie set at login also authenticates."""
        client.post(f"{API}/auth/register", json=test_user_data)
        client.post(f"{API}/auth/login", json=test_login_data)

        response = client.get(f"{API}/auth/me")
        assert response.status_code == 200

    def test_get_current_user_no_token(self, client):
        response = client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_get_current_user_invalid_token(self, client):
        """Test get current user with invalid token."""
        headers = {"Authorization": "Bearer invalid_token"}

        response = client.get(f"{API}/auth/me", headers=headers)
        assert response.status_code == 401

    def test_deactivated_user_token_rejected(self, client, db_session):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        user = db_session.query(User).first()
        user.is_active = False
        db_session.commit()

        response = client.get(f"{API}/auth/me", headers=bearer(register_response))
        assert response.status_code == 401

    def test_token_issued_before_password_change_rejected(self, client, db_session):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        user = db_session.query(User).first()
        user.password_changed_at = datetime.utcnow() + timedelta(minutes=5)
        db_session.commit()

        response = client.get(f"{API}/auth/me", headers=bearer(register_response))
        assert response.status_code == 401

    def test_logout_clears_cookie(self, client):
        """Logout is stateless and drops the session cookie."""
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(f"{API}/auth/logout", headers=bearer(register_response))
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = client.get(f"{API}/auth/me")
        assert response.status_code == 401


class TestProfile:

    def test_update_name(self, client):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.put(
            f"{API}/auth/update-profile",
            json={"name": "Alice Cooper"},
            headers=bearer(register_response),
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Alice Cooper"

    def test_switch_between_patient_roles(self, client):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.put(
            f"{API}/auth/update-profile",
            json={"userType": "adolescent"},
            headers=bearer(register_response),
        )
        assert response.status_code == 200
        assert response.json()["data"]["userType"] == "adolescent"

    def test_cannot_become_health_professional(self, client):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.put(
            f"{API}/auth/update-profile",
            json={"userType": "health_professional"},
            headers=bearer(register_response),
        )
        assert response.status_code == 403

    def test_change_password(self, client):
        """The new password works and the old one no longer does."""
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(
            f"{API}/auth/change-password",
            json={"currentPassword": "Passw0rd", "newPassword": "NewPassw0rd"},
            headers=bearer(register_response),
        )
        assert response.status_code == 200

        assert client.post(f"{API}/auth/login", json=test_login_data).status_code == 401

        login_response = client.post(
            f"{API}/auth/login", json=dict(test_login_data, password="NewPassw0rd")
        )
        assert login_response.status_code == 200
        assert client.get(f"{API}/auth/me", headers=bearer(login_response)).status_code == 200

    def test_change_password_wrong_current(self, client):
        register_response = client.post(f"{API}/auth/register", json=test_user_data)

        response = client.post(
            f"{API}/auth/change-password",
            json={"currentPassword": "WrongPassw0rd", "newPassword": "NewPassw0rd"},
            headers=bearer(register_response),
        )
        assert response.status_code == 400
