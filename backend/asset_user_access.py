"""
backend/asset_user_access.py

Per-user asset access tracking: look up or create the row for a
(user, asset_code, context) triple, bump its view/participate counters and
derive human-readable labels for reports.

Logging is best-effort: a call without a user, an asset code or a valid
context is a silent no-op (returns None). Nothing here commits; callers own
the transaction.
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

try:
    from backend.config import IS_DEV
    from backend.contexts import (
        find_asset_by_asset_string,
        find_context,
        find_enrollment,
        resolved_root_account_id,
    )
    from backend.db import DbConnection, execute_query, fetch_all, fetch_one
    from backend.models import (
        CONTEXT_TYPES,
        AccessedAsset,
        AccessLevel,
        Asset,
        AssetUserAccess,
        ContextRef,
        parse_timestamp,
        underscore,
        utcnow,
    )
except ModuleNotFoundError:
    from config import IS_DEV
    from contexts import (
        find_asset_by_asset_string,
        find_context,
        find_enrollment,
        resolved_root_account_id,
    )
    from db import DbConnection, execute_query, fetch_all, fetch_one
    from models import (
        CONTEXT_TYPES,
        AccessedAsset,
        AccessLevel,
        Asset,
        AssetUserAccess,
        ContextRef,
        parse_timestamp,
        underscore,
        utcnow,
    )


COURSE_LABELS = {
    "announcements": "Course Announcements",
    "assignments": "Course Assignments",
    "calendar_feed": "Course Calendar",
    "collaborations": "Course Collaborations",
    "conferences": "Course Conferences",
    "files": "Course Files",
    "grades": "Course Grades",
    "home": "Course Home",
    "modules": "Course Modules",
    "outcomes": "Course Outcomes",
    "pages": "Course Pages",
    "quizzes": "Course Quizzes",
    "roster": "Course People",
    "speed_grader": "SpeedGrader",
    "syllabus": "Course Syllabus",
    "topics": "Course Discussions",
}

GROUP_LABELS = {
    "announcements": "{group_name} - Group Announcements",
    "calendar_feed": "{group_name} - Group Calendar",
    "collaborations": "{group_name} - Group Collaborations",
    "conferences": "{group_name} - Group Conferences",
    "files": "{group_name} - Group Files",
    "home": "{group_name} - Group Home",
    "pages": "{group_name} - Group Pages",
    "roster": "{group_name} - Group People",
    "topics": "{group_name} - Group Discussions",
}

COURSE_CODE_RE = re.compile(r"course_\d+")
GROUP_CODE_RE = re.compile(r"group_(\d+)")
ATTACHMENT_CODE_RE = re.compile(r"\A\w+_(\d+)\Z")

COLUMNS = (
    "id",
    "user_id",
    "context_type",
    "context_id",
    "asset_code",
    "asset_group_code",
    "asset_category",
    "membership_type",
    "view_score",
    "participate_score",
    "action_level",
    "display_name",
    "last_access",
    "root_account_id",
    "created_at",
    "updated_at",
)
TIMESTAMP_COLUMNS = ("last_access", "created_at", "updated_at")
SELECT_COLUMNS = ", ".join(COLUMNS)


# ---------------------------------------------------------
# Persistence
# ---------------------------------------------------------
def from_row(row: Dict[str, Any]) -> AssetUserAccess:
    values = {column: row.get(column) for column in COLUMNS}
    for column in TIMESTAMP_COLUMNS:
        values[column] = parse_timestamp(values[column])
    return AssetUserAccess(**values)


def _db_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    return value


def save(conn: DbConnection, access: AssetUserAccess) -> AssetUserAccess:
    """Insert or update the row, refreshing derived defaults first."""
    infer_defaults(conn, access)
    now = utcnow()
    access.updated_at = now
    if access.is_new:
        access.created_at = now

    params = {column: _db_value(getattr(access, column)) for column in COLUMNS if column != "id"}

    if access.is_new:
        columns = [column for column in COLUMNS if column != "id"]
        row = execute_query(
            conn,
            f"""
            INSERT INTO asset_user_accesses ({", ".join(columns)})
            VALUES ({", ".join(":" + column for column in columns)})
            RETURNING id
            """,
            params,
        ).fetchall()
        access.id = row[0][0]
    else:
        assignments = ", ".join(f"{column} = :{column}" for column in COLUMNS if column not in ("id", "created_at"))
        params.pop("created_at")
        params["id"] = access.id
        execute_query(conn, f"UPDATE asset_user_accesses SET {assignments} WHERE id = :id", params)

    return access


def infer_defaults(conn: DbConnection, access: AssetUserAccess) -> None:
    access.display_name = asset_display_name(conn, access)
    access.root_account_id = infer_root_account_id(conn, access)


def infer_root_account_id(conn: DbConnection, access: AssetUserAccess) -> Optional[int]:
    if access.context_type == "User":
        return None
    return resolved_root_account_id(conn, access.context)


# ---------------------------------------------------------
# Queries
# ---------------------------------------------------------
def find_access(
    conn: DbConnection,
    user_id: int,
    asset_code: str,
    context: ContextRef,
) -> Optional[AssetUserAccess]:
    row = fetch_one(
        conn,
        f"""
        SELECT {SELECT_COLUMNS}
        FROM asset_user_accesses
        WHERE user_id = :user_id
          AND asset_code = :asset_code
          AND context_type = :context_type
          AND context_id = :context_id
        ORDER BY id
        LIMIT 1
        """,
        {
            "user_id": user_id,
            "asset_code": asset_code,
            "context_type": context.type,
            "context_id": context.id,
        },
    )
    return from_row(row) if row else None


def get_access(conn: DbConnection, access_id: int) -> Optional[AssetUserAccess]:
    row = fetch_one(
        conn,
        f"SELECT {SELECT_COLUMNS} FROM asset_user_accesses WHERE id = :id",
        {"id": access_id},
    )
    return from_row(row) if row else None


def _scope(
    user_id: Optional[int],
    context: Optional[ContextRef],
    participations: bool,
) -> Tuple[str, Dict[str, Any]]:
    """WHERE clause for the for_user / for_context / participations scopes."""
    clauses: List[str] = []
    params: Dict[str, Any] = {}

    if user_id is not None:
        clauses.append("user_id = :user_id")
        params["user_id"] = user_id
    if context is not None:
        clauses.append("context_type = :context_type AND context_id = :context_id")
        params["context_type"] = context.type
        params["context_id"] = context.id
    if participations:
        clauses.append("action_level = :action_level")
        params["action_level"] = AccessLevel.participate.value

    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


def find_accesses(
    conn: DbConnection,
    user_id: Optional[int] = None,
    context: Optional[ContextRef] = None,
    participations: bool = False,
    most_recent: bool = True,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[AssetUserAccess]:
    where, params = _scope(user_id, context, participations)

    query = f"SELECT {SELECT_COLUMNS} FROM asset_user_accesses{where}"
    query += " ORDER BY updated_at DESC, id DESC" if most_recent else " ORDER BY id"
    if limit is not None:
        query += " LIMIT :limit OFFSET :offset"
        params["limit"] = limit
        params["offset"] = offset

    return [from_row(row) for row in fetch_all(conn, query, params)]


def count_accesses(
    conn: DbConnection,
    user_id: Optional[int] = None,
    context: Optional[ContextRef] = None,
    participations: bool = False,
) -> int:
    where, params = _scope(user_id, context, participations)
    row = fetch_one(conn, f"SELECT COUNT(*) AS total FROM asset_user_accesses{where}", params)
    return int(row["total"]) if row else 0


# ---------------------------------------------------------
# Logging
# ---------------------------------------------------------
def get_correct_context(
    conn: DbConnection,
    context: Optional[ContextRef],
    accessed_asset: AccessedAsset,
) -> Optional[ContextRef]:
    """
    The context an access is recorded against.

    Files are recorded against the attachment's owner, profiles against their
    user and assessment questions against their bank's context.
    """
    code = accessed_asset.code
    if accessed_asset.category == "files" and code and code.startswith("attachment"):
        match = ATTACHMENT_CODE_RE.match(code)
        if not match:
            return None
        row = fetch_one(
            conn,
            "SELECT context_type, context_id FROM attachments WHERE id = :id",
            {"id": int(match.group(1))},
        )
        if not row or not row["context_type"] or row["context_id"] is None:
            return None
        return ContextRef(row["context_type"], row["context_id"])

    if context is None:
        return None

    if context.type == "UserProfile":
        row = find_context(conn, context)
        return ContextRef("User", row["user_id"]) if row else None

    if context.type == "AssessmentQuestion":
        row = find_context(conn, context)
        if not row or not row["context_type"] or row["context_id"] is None:
            return None
        return ContextRef(row["context_type"], row["context_id"])

    return context


def log(
    conn: DbConnection,
    user_id: Optional[int],
    context: Optional[ContextRef],
    accessed_asset: AccessedAsset,
) -> Optional[AssetUserAccess]:
    """
    Record one access by user_id to accessed_asset within context.

    Returns the saved record, or None when the access can't be attributed.
    """
    if not user_id or not accessed_asset.code:
        return None

    correct_context = get_correct_context(conn, context, accessed_asset)
    if correct_context is None or correct_context.type not in CONTEXT_TYPES:
        return None
    if find_context(conn, correct_context) is None:
        return None

    access = find_access(conn, user_id, accessed_asset.code, correct_context)
    if access is None:
        access = AssetUserAccess(user_id=user_id, asset_code=accessed_asset.code)

    accessed = replace(accessed_asset, level=accessed_asset.level or AccessLevel.view.value)
    access.log(correct_context, accessed)
    save(conn, access)

    if IS_DEV:
        print(f"[ACCESS] Logged: id={access.id}, user_id={user_id}, code={access.asset_code}, "
              f"context={access.context_code}, level={accessed.level}")

    return access


# ---------------------------------------------------------
# Derived attributes
# ---------------------------------------------------------
def asset(conn: DbConnection, access: AssetUserAccess) -> Optional[Asset]:
    """The accessed item, resolved from the last segment of the asset code."""
    if access._asset is None:
        if not access.asset_code:
            return None
        asset_string = access.asset_code.split(":")[-1]
        found = find_asset_by_asset_string(conn, asset_string, access.context)
        if found is None:
            found = find_enrollment(conn, asset_string)
        access._asset = found
    return access._asset


def infer_asset(conn: DbConnection, code: str) -> Optional[Asset]:
    """Resolve a code's asset without restricting it to a context."""
    return find_asset_by_asset_string(conn, code.split(":")[-1])


def asset_display_name(conn: DbConnection, access: AssetUserAccess) -> Optional[str]:
    found = asset(conn, access)
    if found is None:
        return None
    if found.title is not None:
        return found.title
    if found.type == "enrollment":
        return found.name
    if found.name is not None:
        return found.name
    return access.asset_code


def asset_class_name(conn: DbConnection, access: AssetUserAccess) -> Optional[str]:
    found = asset(conn, access)
    return underscore(found.class_name) if found else None


def display_name(conn: DbConnection, access: AssetUserAccess) -> Optional[str]:
    """Stored display name, repairing rows whose name is just their asset code."""
    if access.display_name is not None and access.display_name == access.asset_code:
        better_display_name = asset_display_name(conn, access)
        if better_display_name != access.asset_code:
            access.display_name = better_display_name
            if not access.is_new:
                execute_query(
                    conn,
                    "UPDATE asset_user_accesses SET display_name = :display_name WHERE id = :id",
                    {"display_name": better_display_name, "id": access.id},
                )
                if IS_DEV:
                    print(f"[ACCESS] Repaired display_name: id={access.id}")
    return access.display_name


def titleize(value: str) -> str:
    """'calendar_feed' -> 'Calendar Feed'."""
    value = re.sub(r"_id\Z", "", value)
    return " ".join(word[:1].upper() + word[1:] for word in value.replace("_", " ").split())


def readable_name(conn: DbConnection, access: AssetUserAccess) -> str:
    code = access.asset_code
    if code and ":" in code:
        parts = code.split(":")
        tool = parts[0]
        scope = parts[1] if len(parts) > 1 else ""

        if COURSE_CODE_RE.search(scope):
            return COURSE_LABELS.get(tool, f"Course {titleize(tool)}")

        match = GROUP_CODE_RE.search(scope)
        if match:
            group = find_context(conn, ContextRef("Group", int(match.group(1))))
            if group:
                template = GROUP_LABELS.get(tool)
                if template:
                    return template.format(group_name=group["name"])
                return f"{group['name']} - Group {titleize(tool)}"

        return display_name(conn, access) or ""

    name = display_name(conn, access)
    if name is None:
        return ""
    return name.replace(f"{code} - ", "")
