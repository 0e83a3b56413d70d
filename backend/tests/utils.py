"""
Test utilities for studio booking tests.
"""

from typing import Dict, List, Optional

from services.jwt_service import JWTService, TokenPayload


def create_jwt_token(email: str, roles: Optional[List[str]] = None, name: str = "Studio Admin") -> str:
    """Create a JWT token for a back office user."""
    payload = TokenPayload(
        sub=f"sub-{email}",
        email=email,
        roles=roles if roles is not None else ["admin"],
        name=name,
    )
    return JWTService.create_access_token(payload)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
