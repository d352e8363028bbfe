"""Current-actor resolution for photovault.

Authentication itself (sessions, passwords, token verification) happens
upstream of this service: requests arrive through an identity-aware proxy
that has already verified the signed assertion it forwards. This module only
reads the asserted identity and exposes it as the current actor.
"""

import base64
import json
import os
import re
from dataclasses import dataclass
from typing import Any, Protocol

from ..config import Config, get_config
from ..error_handling import AuthenticationError
from ..logging_config import get_logger, is_development_environment, log_security_event, log_user_action

logger = get_logger(__name__)

ROLES = ("admin", "user")

# User IDs become the first segment of object-store paths
_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:@+-]{1,128}$")


@dataclass
class UserInfo:
    """Authenticated actor."""

    user_id: str
    email: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ActorResolver(Protocol):
    def get_current_user(self) -> UserInfo | None:
        ...

    def ensure_authenticated(self) -> UserInfo:
        ...


class AuthService:
    """Resolves the current actor from the proxy's identity assertion header."""

    ASSERTION_HEADER = "X-Goog-IAP-JWT-Assertion"

    def __init__(self, admin_emails: frozenset[str] = frozenset(), development_mode: bool | None = None) -> None:
        self.admin_emails = frozenset(email.lower() for email in admin_emails)
        self._current_user: UserInfo | None = None
        self._development_mode = is_development_environment() if development_mode is None else development_mode

        if self._development_mode:
            logger.info("development_auth_mode_enabled", message="Using development authentication mode")

    def _get_development_user(self) -> UserInfo:
        """Get development user for local testing."""
        email = os.getenv("DEV_USER_EMAIL", "dev@example.com")
        user_id = os.getenv("DEV_USER_ID", "dev-user-123")
        role = os.getenv("DEV_USER_ROLE", "admin")
        if role not in ROLES:
            logger.warning("invalid_dev_user_role", role=role)
            role = "user"
        return UserInfo(user_id=user_id, email=email, role=role)

    def authenticate_request(self, headers: dict[str, str]) -> UserInfo | None:
        """
        Resolve the actor for a request and remember it as the current user.

        Args:
            headers: Request headers

        Returns:
            UserInfo if an identity was asserted, None otherwise
        """
        if self._development_mode:
            user = self._get_development_user()
            log_user_action(user.user_id, "development_authentication", email=user.email)
        else:
            user = self._parse_assertion(headers)

        self._current_user = user
        if user is None:
            log_security_event("request_authentication_failed")
        else:
            logger.info("request_authenticated", user_id=user.user_id, role=user.role)
        return user

    def _parse_assertion(self, headers: dict[str, str]) -> UserInfo | None:
        token = headers.get(self.ASSERTION_HEADER)
        if not token:
            log_security_event("missing_identity_assertion", headers_present=sorted(headers))
            return None

        try:
            return self._extract_user_info(self._decode_jwt_payload(token))
        except ValueError as e:
            log_security_event("identity_assertion_rejected", error=str(e))
            return None

    def _decode_jwt_payload(self, token: str) -> dict[str, Any]:
        parts = token.split(".")
        if len(parts) != 3:
            raise ValueError("Invalid JWT token format")

        payload_b64 = parts[1] + "=" * (-len(parts[1]) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to decode JWT payload: {e}") from e

        if not isinstance(payload, dict):
            raise ValueError("JWT payload is not an object")
        return payload

    def _extract_user_info(self, payload: dict[str, Any]) -> UserInfo:
        email = payload.get("email")
        sub = payload.get("sub")

        if not email or not isinstance(email, str) or "@" not in email:
            raise ValueError("Email not found in JWT payload")
        if not sub or not isinstance(sub, str) or not _USER_ID_PATTERN.match(sub):
            raise ValueError("Subject (user ID) missing or malformed in JWT payload")

        role = "admin" if email.lower() in self.admin_emails else "user"
        return UserInfo(user_id=sub, email=email, role=role)

    def get_current_user(self) -> UserInfo | None:
        """Get the currently authenticated user."""
        return self._current_user

    def set_current_user(self, user_info: UserInfo | None) -> None:
        """Set the current user (CLI and tests)."""
        self._current_user = user_info

    def ensure_authenticated(self) -> UserInfo:
        """
        Return the current user.

        Raises:
            AuthenticationError: If no user is authenticated
        """
        if self._current_user is None:
            raise AuthenticationError("User is not authenticated", code="user_not_authenticated")
        return self._current_user


def create_auth_service(config: Config | None = None) -> AuthService:
    """Build an AuthService from ``ADMIN_EMAILS`` and ``ENVIRONMENT``."""
    config = config or get_config()
    return AuthService(
        admin_emails=frozenset(config.get_list("ADMIN_EMAILS")),
        development_mode=config.is_development(),
    )
