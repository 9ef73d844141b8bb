"""
verify.py
---------
Purpose:
    Bearer token verification for protected routes.

Notes:
    - No credential at all -> 403 "Access denied".
    - A credential that does not verify -> 401.
    - Provides `auth_dependency`, which resolves to the decoded claims.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.tokens import decode_token

_security = HTTPBearer(auto_error=False)


def verify_jwt(token: str) -> dict:
    try:
        return decode_token(token)
    except jwt.PyJWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return verify_jwt(credentials.credentials)


def require_self_or_admin(claims: dict, user_id: str) -> None:
    """Only the account owner or an admin may act on a user record."""
    if claims.get("sub") != user_id and claims.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access this user",
        )
