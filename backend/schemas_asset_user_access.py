"""
backend/schemas_asset_user_access.py

Pydantic schemas for asset access logging and reports.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, validator

try:
    from backend.models import AccessLevel
except ModuleNotFoundError:
    from models import AccessLevel


class LoggableContextType(str, Enum):
    """Owners a page may report. Profiles and question banks are redirected to a real context."""
    Account = "Account"
    Course = "Course"
    Group = "Group"
    User = "User"
    UserProfile = "UserProfile"
    AssessmentQuestion = "AssessmentQuestion"


# ========================================================================
# LOG SCHEMAS
# ========================================================================

class ContextInput(BaseModel):
    type: LoggableContextType = Field(..., description="Context type (Course, Group, ...)")
    id: int = Field(..., ge=1, description="Context ID")


class AccessedAssetInput(BaseModel):
    """What was accessed. `code` is an asset string, optionally prefixed by a tool ("pages:wiki_page_3")."""
    code: str = Field(..., min_length=1, max_length=255, description="Asset code")
    category: Optional[str] = Field(None, max_length=100, description="Asset category (pages, files, ...)")
    group_code: Optional[str] = Field(None, max_length=255, description="Asset group code")
    membership_type: Optional[str] = Field(None, max_length=100, description="Membership type of the user")
    level: Optional[AccessLevel] = Field(None, description="Access level (default: view)")

    @validator("code", pre=True)
    def trim_code(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class LogAccessRequest(BaseModel):
    context: ContextInput
    asset: AccessedAssetInput


# ========================================================================
# REPORT SCHEMAS
# ========================================================================

class AssetUserAccessResponse(BaseModel):
    id: int
    user_id: int
    context_type: Optional[str] = None
    context_id: Optional[int] = None
    context_code: Optional[str] = None
    asset_code: Optional[str] = None
    asset_group_code: Optional[str] = None
    asset_category: Optional[str] = None
    asset_class_name: Optional[str] = None
    membership_type: Optional[str] = None
    display_name: Optional[str] = None
    readable_name: str = ""
    icon: str
    view_score: int = 0
    participate_score: int = 0
    corrected_view_score: int = 0
    action_level: Optional[str] = None
    last_access: Optional[str] = Field(None, description="ISO timestamp")
    created_at: Optional[str] = Field(None, description="ISO timestamp")
    updated_at: Optional[str] = Field(None, description="ISO timestamp")

    class Config:
        extra = "ignore"


class LogAccessResponse(BaseModel):
    """`logged` is false when the access couldn't be attributed (no-op)."""
    logged: bool
    access: Optional[AssetUserAccessResponse] = None


class AssetUserAccessListResponse(BaseModel):
    items: list[AssetUserAccessResponse] = Field(default_factory=list)
    total: int = Field(0, description="Total matching rows")
