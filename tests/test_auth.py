import logging
import re
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import status
from pydantic import ValidationError
from sqlalchemy import func, select

from app.auth.config import AuthConfig, get_auth_config
from app.auth.models import PasswordResetToken, User
from app.auth.service import AuthService
from app.config import get_settings
from app.core.exceptions import ConfigurationError

REGISTER_URL = "/api/v1/auth/register"
LOGIN_URL = "/api/v1/auth/login"
RESET_REQUEST_URL = "/api/v1/auth/password/reset/request"
RESET_CONFIRM_URL = "/api/v1/auth/password/reset/confirm"


def _count_users(db, email: str) -> int:
    return db.execute(select(func.count()).select_from(User).where(User.email == email)).scalar_one()


def _reset_token_from(response) -> str:
    link = response.json()["resetLink"]
    return parse_qs(urlparse(link).query)["token"][0]


class TestRegister:
    """Testes de registro."""

    def test_register_success(self, test_client, codec):
        response = test_client.post(REGISTER_URL, json={
            "email": "a@x.com",
            "password": "secret1",
            "fullName": "Ann",
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 86400
        assert data["user"]["email"] == "a@x.com"
        assert data["user"]["full_name"] == "Ann"
        assert data["user"]["is_admin"] is False
        assert "password_hash" not in data["user"]
        assert codec.verify(data["access_token"]) == data["user"]["id"]

    def test_register_accepts_snake_case(self, test_client):
        response = test_client.post(REGISTER_URL, json={
            "email": "snake@x.com",
            "password": "secret1",
            "full_name": "Snake",
        })

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["full_name"] == "Snake"

    def test_register_stores_email_salted_digest(self, test_client, test_db, hasher):
        test_client.post(REGISTER_URL, json={"email": "a@x.com", "password": "secret1", "fullName": "Ann"})

        test_db.expire_all()
        user = test_db.execute(select(User).where(User.email == "a@x.com")).scalar_one()
        assert user.password_hash == hasher.hash("secret1", "a@x.com")

    def test_register_duplicate_email(self, test_client, test_db, test_user):
        response = test_client.post(REGISTER_URL, json={
            "email": test_user.email,
            "password": "other",
            "fullName": "Other",
        })

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "CONFLICT"
        assert _count_users(test_db, test_user.email) == 1

    @pytest.mark.parametrize("payload", [
        {"password": "secret1", "fullName": "Ann"},
        {"email": "a@x.com", "fullName": "Ann"},
        {"email": "a@x.com", "password": "secret1"},
        {"email": "a@x.com", "password": "", "fullName": "Ann"},
        {"email": "a@x.com", "password": "secret1", "fullName": ""},
        {"email": "not-an-email", "password": "secret1", "fullName": "Ann"},
    ])
    def test_register_missing_or_invalid_fields(self, test_client, payload):
        response = test_client.post(REGISTER_URL, json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_register_disabled(self, test_client):
        test_client.app.dependency_overrides[get_auth_config] = lambda: AuthConfig(registration_enabled=False)

        response = test_client.post(REGISTER_URL, json={
            "email": "a@x.com",
            "password": "secret1",
            "fullName": "Ann",
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestLogin:
    """Testes de login."""

    def test_login_success(self, test_client, test_user, codec):
        response = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "secret1"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["id"] == test_user.id
        assert codec.verify(data["access_token"]) == test_user.id

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, test_client, test_user):
        wrong_password = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "nope"})
        unknown_email = test_client.post(LOGIN_URL, json={"email": "ghost@x.com", "password": "secret1"})

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_email.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"

    def test_login_missing_fields(self, test_client):
        response = test_client.post(LOGIN_URL, json={"email": "a@x.com"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestPasswordReset:
    """Fluxo de redefinição de senha."""

    def test_unknown_email_gets_generic_response(self, test_client, test_db):
        response = test_client.post(RESET_REQUEST_URL, json={"email": "ghost@x.com"})

        assert response.status_code == status.HTTP_200_OK
        assert "resetLink" not in response.json()
        assert test_db.execute(select(func.count()).select_from(PasswordResetToken)).scalar_one() == 0

    def test_request_returns_link_in_demo_mode(self, test_client, test_user):
        response = test_client.post(
            RESET_REQUEST_URL,
            json={"email": test_user.email},
            headers={"Origin": "http://localhost:5173"},
        )

        assert response.status_code == status.HTTP_200_OK
        link = response.json()["resetLink"]
        assert link.startswith("http://localhost:5173/reset-password?token=")

    def test_link_hidden_when_exposure_disabled(self, test_client, test_db, test_user):
        test_client.app.dependency_overrides[get_auth_config] = lambda: AuthConfig(password_reset_expose_link=False)

        response = test_client.post(RESET_REQUEST_URL, json={"email": test_user.email})

        assert response.status_code == status.HTTP_200_OK
        assert "resetLink" not in response.json()
        assert test_db.execute(select(func.count()).select_from(PasswordResetToken)).scalar_one() == 1

    def test_hidden_link_is_logged_and_redeemable(self, test_client, test_user, caplog):
        test_client.app.dependency_overrides[get_auth_config] = lambda: AuthConfig(password_reset_expose_link=False)
        caplog.set_level(logging.INFO, logger="app.auth.router")

        response = test_client.post(RESET_REQUEST_URL, json={"email": test_user.email})
        assert "resetLink" not in response.json()

        match = re.search(r"\S+/reset-password\?token=\S+", caplog.text)
        assert match is not None
        token = parse_qs(urlparse(match.group(0)).query)["token"][0]

        confirm = test_client.post(RESET_CONFIRM_URL, json={"token": token, "newPassword": "brand-new"})
        assert confirm.status_code == status.HTTP_200_OK
        login = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "brand-new"})
        assert login.status_code == status.HTTP_200_OK

    def test_full_reset_flow(self, test_client, test_user):
        token = _reset_token_from(test_client.post(RESET_REQUEST_URL, json={"email": test_user.email}))

        confirm = test_client.post(RESET_CONFIRM_URL, json={"token": token, "newPassword": "brand-new"})
        assert confirm.status_code == status.HTTP_200_OK

        old_login = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "secret1"})
        new_login = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "brand-new"})

        assert old_login.status_code == status.HTTP_401_UNAUTHORIZED
        assert new_login.status_code == status.HTTP_200_OK

    def test_token_is_single_use(self, test_client, test_user):
        token = _reset_token_from(test_client.post(RESET_REQUEST_URL, json={"email": test_user.email}))

        first = test_client.post(RESET_CONFIRM_URL, json={"token": token, "newPassword": "first"})
        second = test_client.post(RESET_CONFIRM_URL, json={"token": token, "newPassword": "second"})

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_400_BAD_REQUEST

        login = test_client.post(LOGIN_URL, json={"email": test_user.email, "password": "first"})
        assert login.status_code == status.HTTP_200_OK

    def test_invalid_token(self, test_client):
        response = test_client.post(RESET_CONFIRM_URL, json={"token": "bogus", "newPassword": "x"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_confirm_missing_password(self, test_client):
        response = test_client.post(RESET_CONFIRM_URL, json={"token": "bogus"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAdminBootstrap:
    """Admin criado na inicialização."""

    def test_bootstrapped_admin_can_log_in(self, test_client, test_db, hasher, codec):
        config = AuthConfig(admin_email="Root@Example.COM", admin_password="root-pass")
        admin = AuthService(test_db, hasher, codec, config=config).ensure_admin_exists()
        assert admin.is_admin is True

        response = test_client.post(LOGIN_URL, json={"email": "Root@Example.COM", "password": "root-pass"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["id"] == admin.id
        assert response.json()["user"]["is_admin"] is True

    @pytest.mark.parametrize("email", ["admin@moodmoment.local", "not-an-email"])
    def test_admin_email_rejected_when_login_would_reject_it(self, test_client, email):
        with pytest.raises(ValidationError):
            AuthConfig(admin_email=email, admin_password="root-pass")

        response = test_client.post(LOGIN_URL, json={"email": email, "password": "root-pass"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestProductionGuards:
    """Configuração insegura impede a inicialização em produção."""

    @pytest.fixture(autouse=True)
    def production(self, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_ENVIRONMENT", "production")
        get_settings.cache_clear()
        get_auth_config.cache_clear()
        yield
        get_auth_config.cache_clear()

    def test_weak_secret_rejected(self, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_JWT_SECRET_KEY", "your-secret-key-here-change-in-production")

        with pytest.raises(ConfigurationError):
            get_auth_config()

    def test_disabled_signature_check_rejected(self, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_JWT_VERIFY_SIGNATURE", "false")

        with pytest.raises(ConfigurationError):
            get_auth_config()

    def test_strong_config_accepted(self):
        config = get_auth_config()

        assert config.jwt_verify_signature is True
        assert not config.weak_secret
