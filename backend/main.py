# ---------------------------------------------------------
# backend/main.py
# Asset access analytics backend
#
# Run: uvicorn backend.main:app --reload (from repo root)
#
# - FastAPI + SQLite (PostgreSQL when DATABASE_URL is set)
# - /api/asset-accesses/log : record a view / participation
# - /api/asset-accesses     : access report (most recent first)
# - /api/asset-accesses/{id}: single access with readable name + icon
# ---------------------------------------------------------

from __future__ import annotations

from typing import Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

try:
    from backend.auth_context import AuthContext, require_auth_context
    from backend.config import CORS_ORIGINS, IS_PROD
    from backend.migrate import run_migrations
    from backend.routes_asset_user_access import router as asset_access_router
except ModuleNotFoundError:
    from auth_context import AuthContext, require_auth_context
    from config import CORS_ORIGINS, IS_PROD
    from migrate import run_migrations
    from routes_asset_user_access import router as asset_access_router


def init_db() -> None:
    run_migrations()


# ---------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------
app = FastAPI(title="Asset Access Backend", version="0.1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if IS_PROD else ["*"],  # Restrict origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(asset_access_router)

init_db()


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/auth/me")
def me(ctx: AuthContext = Depends(require_auth_context)) -> Dict[str, object]:
    """Identity behind the bearer token (used by the frontend after token login)."""
    return {
        "id": ctx.user_id,
        "name": ctx.name,
        "email": ctx.email,
        "role": ctx.role,
        "capabilities": sorted(ctx.capabilities),
    }
