"""
backend/contexts.py

Context and asset lookup by asset string ("course_12", "wiki_page_3").

Contexts own assets. An asset string is the snake-cased type followed by
the row id. Every content asset type lives in its own table with a
polymorphic (context_type, context_id) owner column pair.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

try:
    from backend.db import DbConnection, fetch_one
    from backend.models import Asset, ContextRef, context_code, underscore
except ModuleNotFoundError:
    from db import DbConnection, fetch_one
    from models import Asset, ContextRef, context_code, underscore

__all__ = [
    "ASSET_TYPES",
    "CONTEXT_TABLES",
    "AssetType",
    "context_code",
    "find_asset_by_asset_string",
    "find_context",
    "find_enrollment",
    "parse_asset_string",
    "resolved_root_account_id",
    "underscore",
]


# Context-like owners; only Account/Course/Group/User are real access contexts
CONTEXT_TABLES: Dict[str, str] = {
    "Account": "accounts",
    "Course": "courses",
    "Group": "groups",
    "User": "users",
    "UserProfile": "user_profiles",
    "AssessmentQuestion": "assessment_questions",
}


@dataclass(frozen=True)
class AssetType:
    class_name: str
    table: str
    label_column: str  # "title" or "name"


ASSET_TYPES: Dict[str, AssetType] = {
    "assignment": AssetType("Assignment", "assignments", "title"),
    "attachment": AssetType("Attachment", "attachments", "title"),
    "calendar_event": AssetType("CalendarEvent", "calendar_events", "title"),
    "collaboration": AssetType("Collaboration", "collaborations", "title"),
    "context_module": AssetType("ContextModule", "context_modules", "name"),
    "discussion_topic": AssetType("DiscussionTopic", "discussion_topics", "title"),
    "quiz": AssetType("Quiz", "quizzes", "title"),
    "web_conference": AssetType("WebConference", "web_conferences", "title"),
    "wiki_page": AssetType("WikiPage", "wiki_pages", "title"),
}

ASSET_STRING_RE = re.compile(r"\A([a-z_]+)_(\d+)\Z")
ENROLLMENT_RE = re.compile(r"enrollment_(\d+)")


def parse_asset_string(asset_string: Optional[str]) -> Optional[Tuple[str, int]]:
    """'wiki_page_3' -> ('wiki_page', 3); None when it isn't an asset string."""
    if not asset_string:
        return None
    match = ASSET_STRING_RE.match(asset_string)
    if not match:
        return None
    return match.group(1), int(match.group(2))


def find_context(conn: DbConnection, context: Optional[ContextRef]) -> Optional[Dict[str, Any]]:
    """Load the row behind a context reference, or None if unknown type / missing row."""
    if context is None:
        return None
    table = CONTEXT_TABLES.get(context.type)
    if table is None:
        return None
    return fetch_one(conn, f"SELECT * FROM {table} WHERE id = :id", {"id": context.id})


def find_asset_by_asset_string(
    conn: DbConnection,
    asset_string: Optional[str],
    context: Optional[ContextRef] = None,
) -> Optional[Asset]:
    """
    Resolve an asset string to an Asset.

    When a context is given the asset must be owned by that context.
    """
    parsed = parse_asset_string(asset_string)
    if parsed is None:
        return None
    type_name, asset_id = parsed

    asset_type = ASSET_TYPES.get(type_name)
    if asset_type is None:
        return None

    query = f"SELECT id, context_type, context_id, {asset_type.label_column} AS label FROM {asset_type.table} WHERE id = :id"
    params: Dict[str, Any] = {"id": asset_id}
    if context is not None:
        query += " AND context_type = :context_type AND context_id = :context_id"
        params["context_type"] = context.type
        params["context_id"] = context.id

    row = fetch_one(conn, query, params)
    if row is None:
        return None

    owner = None
    if row["context_type"] and row["context_id"] is not None:
        owner = ContextRef(row["context_type"], row["context_id"])

    asset = Asset(type=type_name, class_name=asset_type.class_name, id=row["id"], context=owner)
    setattr(asset, asset_type.label_column, row["label"])
    return asset


def find_enrollment(conn: DbConnection, code: Optional[str]) -> Optional[Asset]:
    """Enrollments aren't context-owned; they're found by any 'enrollment_N' in the code."""
    if not code:
        return None
    match = ENROLLMENT_RE.search(code)
    if not match:
        return None
    row = fetch_one(
        conn,
        """
        SELECT e.id, e.course_id, u.name AS user_name
        FROM enrollments e
        LEFT JOIN users u ON u.id = e.user_id
        WHERE e.id = :id
        """,
        {"id": int(match.group(1))},
    )
    if row is None:
        return None
    # An enrollment is labelled by its user's name
    return Asset(
        type="enrollment",
        class_name="Enrollment",
        id=row["id"],
        context=ContextRef("Course", row["course_id"]) if row["course_id"] is not None else None,
        name=row["user_name"],
    )


def resolved_root_account_id(conn: DbConnection, context: Optional[ContextRef]) -> Optional[int]:
    """Root account of a context. Users span accounts and have none."""
    if context is None or context.type == "User":
        return None
    row = find_context(conn, context)
    if row is None:
        return None
    if context.type == "Account":
        return row.get("root_account_id") or row["id"]
    return row.get("root_account_id")
