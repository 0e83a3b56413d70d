# pyright: reportMissingTypeStubs=false
"""
Authentication and authorization dependencies for FastAPI.

Public booking routes are unauthenticated. Admin routes depend on
require_admin, which accepts a bearer JWT issued to an email listed in
ADMIN_EMAILS and carrying the admin role.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.config import ADMIN_EMAILS
from services.jwt_service import jwt_service, TokenPayload

logger = logging.getLogger(__name__)


class UserContext:
    """Authenticated user context extracted from JWT token."""

    def __init__(self, email: str, roles: list[str], subject: str, name: str):
        self.email = email
        self.roles = roles
        self.subject = subject
        self.name = name

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role."""
        return role in self.roles

    def __repr__(self) -> str:
        return f"UserContext(email='{self.email}', roles={self.roles})"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None

    return jwt_service.verify_token(credentials.credentials)


def get_current_user(
    payload: Optional[TokenPayload] = Depends(get_token_payload)
) -> UserContext:
    """Get authenticated user context from JWT token."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return UserContext(
        email=payload.email.lower(),
        roles=payload.roles,
        subject=payload.sub,
        name=payload.name,
    )


def require_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require a whitelisted admin."""
    if user.email not in ADMIN_EMAILS or not user.has_role("admin"):
        logger.warning(f"Admin access denied for {user.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
