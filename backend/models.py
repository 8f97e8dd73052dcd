"""
backend/models.py

Domain records for asset access tracking.

asset_code identifies the 'asset' or idea being accessed, asset_group_code
identifies its group. For example the asset could be an assignment and the
group would be the assignment group.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


# Enums
class AccessLevel(str, Enum):
    view = "view"
    participate = "participate"
    submit = "submit"


class ContextType(str, Enum):
    Account = "Account"
    Course = "Course"
    Group = "Group"
    User = "User"


# Contexts an access row may belong to
CONTEXT_TYPES = frozenset(t.value for t in ContextType)

VIEW_LEVELS = {AccessLevel.view.value, AccessLevel.participate.value}
PARTICIPATE_LEVELS = {AccessLevel.participate.value, AccessLevel.submit.value}

ICON_MAP = {
    "announcements": "icon-announcements",
    "assignments": "icon-assignment",
    "calendar": "icon-calendar-month",
    "files": "icon-download",
    "grades": "icon-gradebook",
    "home": "icon-home",
    "inbox": "icon-message",
    "modules": "icon-module",
    "outcomes": "icon-outcomes",
    "pages": "icon-document",
    "quizzes": "icon-quiz",
    "roster": "icon-user",
    "syllabus": "icon-syllabus",
    "topics": "icon-discussion",
    "wiki": "icon-document",
}
DEFAULT_ICON = "icon-question"


@dataclass(frozen=True)
class ContextRef:
    """Polymorphic reference to a context (or context-like owner) row."""
    type: str
    id: int


@dataclass
class AccessedAsset:
    """What a request touched: the payload of a single log call."""
    code: Optional[str] = None
    category: Optional[str] = None
    group_code: Optional[str] = None
    membership_type: Optional[str] = None
    level: Optional[str] = None


@dataclass
class Asset:
    """A resolved content item. Exactly one of title/name is populated for most types."""
    type: str
    class_name: str
    id: int
    context: Optional[ContextRef] = None
    title: Optional[str] = None
    name: Optional[str] = None


@dataclass
class AssetUserAccess:
    user_id: int
    asset_code: Optional[str]
    context_type: Optional[str] = None
    context_id: Optional[int] = None
    id: Optional[int] = None
    asset_group_code: Optional[str] = None
    asset_category: Optional[str] = None
    membership_type: Optional[str] = None
    view_score: Optional[int] = None
    participate_score: Optional[int] = None
    action_level: Optional[str] = None
    display_name: Optional[str] = None
    last_access: Optional[datetime] = None
    root_account_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    _asset: Optional[Asset] = field(default=None, init=False, repr=False, compare=False)

    @property
    def category(self) -> Optional[str]:
        return self.asset_category

    @category.setter
    def category(self, value: Optional[str]) -> None:
        self.asset_category = value

    @property
    def context(self) -> Optional[ContextRef]:
        if self.context_type is None or self.context_id is None:
            return None
        return ContextRef(self.context_type, self.context_id)

    @context.setter
    def context(self, value: ContextRef) -> None:
        self.context_type = value.type
        self.context_id = value.id

    @property
    def context_code(self) -> Optional[str]:
        return context_code(self.context_type, self.context_id)

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def icon(self) -> str:
        return ICON_MAP.get(self.asset_category or "", DEFAULT_ICON)

    def log(self, context: ContextRef, accessed: AccessedAsset, now: Optional[datetime] = None) -> "AssetUserAccess":
        """Apply one access to the in-memory record. First-seen metadata wins."""
        if self.asset_category is None:
            self.asset_category = accessed.category
        if self.asset_group_code is None:
            self.asset_group_code = accessed.group_code
        if self.membership_type is None:
            self.membership_type = accessed.membership_type
        self.context = context
        self.last_access = now or utcnow()
        self.log_action(accessed.level)
        return self

    def log_action(self, level: Optional[str]) -> None:
        if level in VIEW_LEVELS:
            self._increment("view_score")
        if level in PARTICIPATE_LEVELS:
            self._increment("participate_score")

        # participate is sticky; submit counts as participate
        if self.action_level != AccessLevel.participate.value:
            self.action_level = AccessLevel.participate.value if level == AccessLevel.submit.value else level

    def corrected_view_score(self) -> int:
        """
        For quizzes the view score should not include the participation score,
        so it reflects the number of times a student really just browsed the quiz.
        """
        deductible_points = 0
        if self.asset_group_code == "quizzes":
            deductible_points = self.participate_score or 0

        self.view_score = (self.view_score or 0) - deductible_points
        return self.view_score

    def _increment(self, attribute: str) -> None:
        setattr(self, attribute, (getattr(self, attribute) or 0) + 1)


def underscore(class_name: str) -> str:
    """CamelCase -> snake_case ("WikiPage" -> "wiki_page")."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", class_name).lower()


def context_code(context_type: Optional[str], context_id: Optional[int]) -> Optional[str]:
    if not context_type or context_id is None:
        return None
    return f"{underscore(context_type)}_{context_id}"


def utcnow() -> datetime:
    return datetime.utcnow()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """DB timestamps come back as datetime (Postgres) or ISO text (SQLite)."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).rstrip("Z")
    return datetime.fromisoformat(text)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() + "Z"
