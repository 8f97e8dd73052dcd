"""
backend/dependencies.py

Reusable FastAPI dependencies for capability enforcement.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException

try:
    from backend.auth_context import AuthContext, require_auth_context
    from backend.config import IS_DEV
except ModuleNotFoundError:
    from auth_context import AuthContext, require_auth_context
    from config import IS_DEV


def require_capability(capability: str) -> Callable:
    """
    FastAPI dependency factory for capability authorization.

    Usage in routes:
        @router.post("/log", dependencies=[Depends(require_capability(Capability.ACCESS_LOG))])
        def log_access(ctx: AuthContext = Depends(require_auth_context)):
            ...

    Args:
        capability: The capability string to check (e.g., "asset_accesses:log")

    Returns:
        A dependency function that enforces the capability

    Raises:
        HTTPException(403): If the user lacks the required capability
    """
    def _check_capability(ctx: AuthContext = Depends(require_auth_context)) -> AuthContext:
        if capability not in ctx.capabilities:
            if IS_DEV:
                print(f"[AUTHZ] Capability denied: capability={capability}, role={ctx.role}")
            raise HTTPException(
                status_code=403,
                detail="Insufficient permissions - this feature is not available with your current access level",
            )

        if IS_DEV:
            print(f"[AUTHZ] Capability granted: capability={capability}, role={ctx.role}")

        return ctx

    return _check_capability
