"""
Tests for authentication dependencies.
"""

import pytest
from unittest.mock import patch
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from auth.dependencies import UserContext, get_token_payload, get_current_user, require_admin
from services.jwt_service import TokenPayload


def make_payload(email: str = "admin@studio.test", roles=None) -> TokenPayload:
    return TokenPayload(
        sub="sub123",
        email=email,
        roles=["admin"] if roles is None else roles,
        name="Studio Admin"
    )


class TestUserContext:
    """Test UserContext class functionality."""

    def test_has_role(self):
        context = UserContext(email="admin@studio.test", roles=["admin"], subject="sub123", name="Admin")

        assert context.has_role("admin") is True
        assert context.has_role("photographer") is False
        assert "admin@studio.test" in repr(context)


class TestGetTokenPayload:
    """Test get_token_payload dependency."""

    @patch('auth.dependencies.jwt_service')
    def test_valid_token(self, mock_jwt_service):
        """Test extracting payload from valid token."""
        payload = make_payload()
        mock_jwt_service.verify_token.return_value = payload
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="token123")

        assert get_token_payload(credentials) == payload
        mock_jwt_service.verify_token.assert_called_once_with("token123")

    def test_no_credentials(self):
        """Test no credentials provided."""
        assert get_token_payload(None) is None

    def test_invalid_token(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")
        assert get_token_payload(credentials) is None


class TestGetCurrentUser:
    """Test get_current_user dependency."""

    def test_missing_payload_is_401(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    def test_email_is_lowercased(self):
        user = get_current_user(make_payload(email="Admin@Studio.Test"))

        assert user.email == "admin@studio.test"
        assert user.subject == "sub123"
        assert user.roles == ["admin"]


class TestRequireAdmin:
    """Test require_admin dependency."""

    def test_whitelisted_admin_allowed(self):
        user = get_current_user(make_payload())
        assert require_admin(user) is user

    def test_unlisted_email_forbidden(self):
        user = get_current_user(make_payload(email="intruder@example.com"))

        with pytest.raises(HTTPException) as exc_info:
            require_admin(user)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Admin access required"

    def test_missing_admin_role_forbidden(self):
        user = get_current_user(make_payload(roles=["photographer"]))

        with pytest.raises(HTTPException) as exc_info:
            require_admin(user)

        assert exc_info.value.status_code == 403
