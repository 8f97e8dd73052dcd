# frontend/report.py
# Pure helpers for the access report page (no Streamlit calls)

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

REPORT_OPTIONS = {
    "participations": "Participations only",
    "corrected_view_score": "Show corrected view score",
}

CONTEXT_TYPES = ["Course", "Group", "Account", "User"]

COLUMNS = {
    "readable_name": "Asset",
    "icon": "Icon",
    "context_code": "Context",
    "user_id": "User",
    "view_score": "Views",
    "participate_score": "Participations",
    "action_level": "Level",
    "last_access": "Last access",
}


def default_options() -> Dict[str, bool]:
    return {name: False for name in REPORT_OPTIONS}


def build_report_params(
    options: Dict[str, bool],
    context_type: Optional[str] = None,
    context_id: Optional[int] = None,
    user_id: Optional[int] = None,
    page: int = 0,
    page_size: int = 50,
) -> Dict[str, Any]:
    """Query params for GET /api/asset-accesses. The context filter is sent only when complete."""
    params: Dict[str, Any] = {"limit": page_size, "offset": max(page, 0) * page_size}
    if context_type and context_id:
        params["context_type"] = context_type
        params["context_id"] = int(context_id)
    if user_id:
        params["user_id"] = int(user_id)
    if options.get("participations"):
        params["participations"] = "true"
    return params


def access_table(items: List[Dict[str, Any]], show_corrected: bool = False) -> pd.DataFrame:
    """
    Report rows as a DataFrame with display column names.

    With show_corrected the Views column holds the quiz-corrected count.
    """
    columns = list(COLUMNS.values())
    if not items:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(items)
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = None

    if show_corrected and "corrected_view_score" in df.columns:
        df["view_score"] = df["corrected_view_score"]

    # Fall back to the raw code when no readable name could be derived
    if "asset_code" in df.columns:
        df["readable_name"] = df["readable_name"].where(df["readable_name"].astype(bool), df["asset_code"])

    df["last_access"] = df["last_access"].fillna("").astype(str).str.slice(0, 19).str.replace("T", " ")

    return df[list(COLUMNS)].rename(columns=COLUMNS)


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, -(-total // page_size))
