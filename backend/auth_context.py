"""
backend/auth_context.py

Shared authentication context primitives for FastAPI dependency injection.

Contains:
- AuthContext: Immutable request identity with role capabilities
- require_auth_context: FastAPI dependency for auth enforcement
- create_access_token / verify_token: JWT helpers

This module MUST NOT import backend.main to avoid circular dependencies.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Set

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

try:
    from backend import config
    from backend.db import fetch_one, get_db_connection
    from backend.rbac import effective_capabilities
except ModuleNotFoundError:
    import config
    from db import fetch_one, get_db_connection
    from rbac import effective_capabilities

# Security scheme for HTTPBearer
security = HTTPBearer()


# ---------------------------------------------------------
# JWT Tokens
# ---------------------------------------------------------
def create_access_token(user_id: int, minutes: Optional[int] = None) -> str:
    """Issue a signed access token for user_id."""
    lifetime = minutes if minutes is not None else config.ACCESS_TOKEN_MINUTES
    payload = {
        "sub": str(user_id),
        "exp": datetime.utcnow() + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify JWT access token and return decoded payload.

    Raises:
        HTTPException(401): If token is expired or invalid
    """
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    Request identity derived from the JWT token and the users table.
    The ONLY source of truth for user_id in protected endpoints; never trust
    user ids from request bodies.
    """
    user_id: int
    role: str
    name: Optional[str] = None
    email: Optional[str] = None
    capabilities: Set[str]

    class Config:
        frozen = True


def require_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthContext:
    """
    Auth dependency for protected routes.

    1. Verify JWT signature and expiration
    2. Load the user (backend is source of truth)
    3. Reject inactive users
    4. Derive capabilities from role

    Raises:
        HTTPException(401): If token is invalid, expired, or user not found
        HTTPException(403): If user is inactive
    """
    payload = verify_token(credentials.credentials)
    user_id = payload.get("sub")

    if not user_id:
        print("[AUTH] Missing user_id in token payload")
        raise HTTPException(status_code=401, detail="Invalid token payload")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    with get_db_connection() as conn:
        user_row = fetch_one(
            conn,
            "SELECT id, name, email, role, is_active FROM users WHERE id = :id",
            {"id": user_id},
        )

    if not user_row:
        print(f"[AUTH] User not found: user_id={user_id}")
        raise HTTPException(status_code=401, detail="User not found")

    if not user_row["is_active"]:
        print(f"[AUTH] Inactive user attempted access: user_id={user_id}")
        raise HTTPException(status_code=403, detail="Account inactive")

    role = user_row["role"] or "student"
    ctx = AuthContext(
        user_id=user_row["id"],
        role=role,
        name=user_row["name"],
        email=user_row["email"],
        capabilities=effective_capabilities(role),
    )

    if config.IS_DEV:
        print(f"[AUTH] Authenticated: user_id={ctx.user_id}, role={ctx.role}, "
              f"capabilities={len(ctx.capabilities)}")

    return ctx
