"""
backend/routes_asset_user_access.py

Asset access logging and report endpoints.

Security guarantees:
- All endpoints require authentication (require_auth_context)
- Logging requires capability "asset_accesses:log" and always records the caller
- Reads require "asset_accesses:read"; without "asset_accesses:read_all" only
  the caller's own rows are visible
- Input validation via Pydantic schemas
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query

try:
    from backend import asset_user_access as accesses
    from backend.auth_context import AuthContext, require_auth_context
    from backend.config import DEFAULT_PAGE_SIZE, IS_DEV, MAX_PAGE_SIZE
    from backend.db import DB_ERRORS, DbConnection, commit, get_db_connection, rollback
    from backend.dependencies import require_capability
    from backend.models import AccessedAsset, AssetUserAccess, ContextRef, ContextType, format_timestamp
    from backend.rbac import Capability
    from backend.schemas_asset_user_access import (
        AssetUserAccessListResponse,
        AssetUserAccessResponse,
        LogAccessRequest,
        LogAccessResponse,
    )
except ModuleNotFoundError:
    import asset_user_access as accesses
    from auth_context import AuthContext, require_auth_context
    from config import DEFAULT_PAGE_SIZE, IS_DEV, MAX_PAGE_SIZE
    from db import DB_ERRORS, DbConnection, commit, get_db_connection, rollback
    from dependencies import require_capability
    from models import AccessedAsset, AssetUserAccess, ContextRef, ContextType, format_timestamp
    from rbac import Capability
    from schemas_asset_user_access import (
        AssetUserAccessListResponse,
        AssetUserAccessResponse,
        LogAccessRequest,
        LogAccessResponse,
    )


router = APIRouter(
    prefix="/api/asset-accesses",
    tags=["asset-accesses"],
)


def serialize_access(conn: DbConnection, access: AssetUserAccess) -> AssetUserAccessResponse:
    """Build the response, including derived labels. May repair display_name in place."""
    view_score = access.view_score or 0
    return AssetUserAccessResponse(
        id=access.id,
        user_id=access.user_id,
        context_type=access.context_type,
        context_id=access.context_id,
        context_code=access.context_code,
        asset_code=access.asset_code,
        asset_group_code=access.asset_group_code,
        asset_category=access.asset_category,
        asset_class_name=accesses.asset_class_name(conn, access),
        membership_type=access.membership_type,
        display_name=accesses.display_name(conn, access),
        readable_name=accesses.readable_name(conn, access),
        icon=access.icon,
        view_score=view_score,
        participate_score=access.participate_score or 0,
        corrected_view_score=access.corrected_view_score(),
        action_level=access.action_level,
        last_access=format_timestamp(access.last_access),
        created_at=format_timestamp(access.created_at),
        updated_at=format_timestamp(access.updated_at),
    )


@router.post("/log", response_model=LogAccessResponse, dependencies=[Depends(require_capability(Capability.ACCESS_LOG))])
def log_access(
    request: LogAccessRequest,
    ctx: AuthContext = Depends(require_auth_context),
) -> LogAccessResponse:
    """
    Record an access by the authenticated user.

    Returns logged=false (200) when the access can't be attributed to a
    context; logging is best-effort and never fails the page that reported it.

    Raises:
        HTTPException(403): Missing capability (handled by dependency)
        HTTPException(500): Database error
    """
    context = ContextRef(request.context.type.value, request.context.id)
    accessed = AccessedAsset(
        code=request.asset.code,
        category=request.asset.category,
        group_code=request.asset.group_code,
        membership_type=request.asset.membership_type,
        level=request.asset.level.value if request.asset.level else None,
    )

    with get_db_connection() as conn:
        try:
            access = accesses.log(conn, ctx.user_id, context, accessed)
            if access is None:
                if IS_DEV:
                    print(f"[ACCESS] Skipped: user_id={ctx.user_id}, code={accessed.code!r}, "
                          f"context={context.type}:{context.id}")
                return LogAccessResponse(logged=False)

            response = LogAccessResponse(logged=True, access=serialize_access(conn, access))
            commit(conn)
            return response

        except DB_ERRORS as e:
            rollback(conn)
            if IS_DEV:
                print(f"[ACCESS] DB error on log: {e}")
            raise HTTPException(status_code=500, detail="Database error")


@router.get("", response_model=AssetUserAccessListResponse, dependencies=[Depends(require_capability(Capability.ACCESS_READ))])
def list_accesses(
    context_type: Optional[ContextType] = Query(None, description="Filter by context type (requires context_id)"),
    context_id: Optional[int] = Query(None, ge=1, description="Filter by context ID"),
    user_id: Optional[int] = Query(None, ge=1, description="Filter by user"),
    participations: bool = Query(False, description="Only rows whose action level is participate"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Max results"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetUserAccessListResponse:
    """
    List accesses, most recent first.

    Raises:
        HTTPException(400): context_type without context_id (or vice versa)
        HTTPException(403): Missing capability, or another user's rows without read_all
        HTTPException(500): Database error
    """
    if (context_type is None) != (context_id is None):
        raise HTTPException(status_code=400, detail="context_type and context_id must be given together")

    if Capability.ACCESS_READ_ALL not in ctx.capabilities:
        if user_id is not None and user_id != ctx.user_id:
            raise HTTPException(status_code=403, detail="Cannot read other users' accesses")
        user_id = ctx.user_id

    context = ContextRef(context_type.value, context_id) if context_type is not None else None

    with get_db_connection() as conn:
        try:
            rows = accesses.find_accesses(
                conn,
                user_id=user_id,
                context=context,
                participations=participations,
                most_recent=True,
                limit=limit,
                offset=offset,
            )
            total = accesses.count_accesses(conn, user_id=user_id, context=context, participations=participations)
            items = [serialize_access(conn, row) for row in rows]
            # persist display_name repairs
            commit(conn)

        except DB_ERRORS as e:
            if IS_DEV:
                print(f"[ACCESS] DB error on list: {e}")
            raise HTTPException(status_code=500, detail="Database error")

    if IS_DEV:
        print(f"[ACCESS] List: user_id={user_id}, context={context}, results={len(items)}, total={total}")

    return AssetUserAccessListResponse(items=items, total=total)


@router.get("/{access_id}", response_model=AssetUserAccessResponse, dependencies=[Depends(require_capability(Capability.ACCESS_READ))])
def get_access(
    access_id: int = Path(..., description="Asset user access ID"),
    ctx: AuthContext = Depends(require_auth_context),
) -> AssetUserAccessResponse:
    """
    Get a single access row with its derived labels.

    Raises:
        HTTPException(404): Not found, or another user's row without read_all (no info leak)
        HTTPException(500): Database error
    """
    with get_db_connection() as conn:
        try:
            access = accesses.get_access(conn, access_id)
            if access is None or (
                Capability.ACCESS_READ_ALL not in ctx.capabilities and access.user_id != ctx.user_id
            ):
                raise HTTPException(status_code=404, detail="Access not found")

            response = serialize_access(conn, access)
            commit(conn)
            return response

        except HTTPException:
            raise
        except DB_ERRORS as e:
            if IS_DEV:
                print(f"[ACCESS] DB error on get: {e}")
            raise HTTPException(status_code=500, detail="Database error")
