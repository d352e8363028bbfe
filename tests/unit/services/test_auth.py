"""
Unit tests for current-actor resolution.
"""

import pytest

from photovault.config import Config
from photovault.error_handling import AuthenticationError
from photovault.services.auth import AuthService, UserInfo, create_auth_service
from tests.conftest import make_jwt

HEADER = AuthService.ASSERTION_HEADER


class TestAuthService:
    """Test cases for AuthService in production mode."""

    def setup_method(self):
        self.auth_service = AuthService(admin_emails=frozenset({"Owner@Example.com"}), development_mode=False)

    def test_authenticate_request(self):
        token = make_jwt({"email": "alice@example.com", "sub": "accounts.google.com:1234"})

        user = self.auth_service.authenticate_request({HEADER: token})

        assert user == UserInfo(user_id="accounts.google.com:1234", email="alice@example.com", role="user")
        assert self.auth_service.get_current_user() == user
        assert user.is_admin is False

    def test_admin_role_from_configured_emails(self):
        token = make_jwt({"email": "owner@example.com", "sub": "owner-1"})

        user = self.auth_service.authenticate_request({HEADER: token})

        assert user.role == "admin"
        assert user.is_admin is True

    def test_missing_header(self):
        assert self.auth_service.authenticate_request({}) is None
        assert self.auth_service.get_current_user() is None

    @pytest.mark.parametrize(
        "token",
        [
            "not-a-jwt",
            "a.!!!.c",
            make_jwt({"sub": "no-email"}),
            make_jwt({"email": "no-sub@example.com"}),
            make_jwt({"email": "bob@example.com", "sub": "../escape"}),
            make_jwt({"email": "bob@example.com", "sub": "has/slash"}),
        ],
    )
    def test_rejected_assertions(self, token):
        assert self.auth_service.authenticate_request({HEADER: token}) is None

    def test_failed_request_clears_previous_user(self):
        self.auth_service.authenticate_request({HEADER: make_jwt({"email": "a@example.com", "sub": "a"})})

        self.auth_service.authenticate_request({})

        assert self.auth_service.get_current_user() is None

    def test_ensure_authenticated(self):
        with pytest.raises(AuthenticationError) as exc_info:
            self.auth_service.ensure_authenticated()
        assert exc_info.value.code == "user_not_authenticated"

        user = UserInfo(user_id="cli", email="cli@cli.local")
        self.auth_service.set_current_user(user)
        assert self.auth_service.ensure_authenticated() is user


class TestDevelopmentMode:
    """Test cases for the development actor."""

    def test_development_user_from_environment(self, monkeypatch):
        monkeypatch.setenv("DEV_USER_ID", "dev-42")
        monkeypatch.setenv("DEV_USER_EMAIL", "dev42@example.com")
        monkeypatch.setenv("DEV_USER_ROLE", "user")

        user = AuthService(development_mode=True).authenticate_request({})

        assert user == UserInfo(user_id="dev-42", email="dev42@example.com", role="user")

    def test_invalid_development_role_falls_back_to_user(self, monkeypatch):
        monkeypatch.setenv("DEV_USER_ROLE", "superuser")

        user = AuthService(development_mode=True).authenticate_request({})

        assert user.role == "user"

    def test_mode_follows_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        assert AuthService().authenticate_request({}) is None


def test_create_auth_service():
    config = Config({"ENVIRONMENT": "production", "ADMIN_EMAILS": "a@example.com, b@example.com"})

    auth_service = create_auth_service(config)

    assert auth_service.admin_emails == frozenset({"a@example.com", "b@example.com"})
    assert auth_service.authenticate_request({}) is None
