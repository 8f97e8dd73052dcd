# frontend/app.py
# Asset access report
#
# Run from repo root: streamlit run frontend/app.py
# Or from frontend folder: streamlit run app.py

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
import streamlit as st

try:
    from frontend.config import ENABLE_DEBUG_UI, ENV, IS_DEV, REPORT_PAGE_SIZE
except ModuleNotFoundError:
    from config import ENABLE_DEBUG_UI, ENV, IS_DEV, REPORT_PAGE_SIZE

try:
    from frontend.auth import (
        can, clear_auth, get_current_user, init_auth_state, is_authenticated,
        require_auth, set_auth,
    )
except ModuleNotFoundError:
    from auth import (
        can, clear_auth, get_current_user, init_auth_state, is_authenticated,
        require_auth, set_auth,
    )

try:
    from frontend.api_client import api_request
except ModuleNotFoundError:
    from api_client import api_request

try:
    from frontend.components.option import render_option
    from frontend.report import (
        CONTEXT_TYPES, REPORT_OPTIONS, access_table, build_report_params,
        default_options, page_count,
    )
except ModuleNotFoundError:
    from components.option import render_option
    from report import (
        CONTEXT_TYPES, REPORT_OPTIONS, access_table, build_report_params,
        default_options, page_count,
    )


st.set_page_config(page_title="Asset Access", page_icon="📊", layout="wide")


def init_state() -> None:
    ss = st.session_state

    init_auth_state()

    ss.setdefault("nav_page", None)

    # Report state
    ss.setdefault("report_options", default_options())
    ss.setdefault("report_page", 0)


init_state()

ss = st.session_state


def go_to(page: str) -> None:
    """Navigation helper: set ss["nav_page"] and rerun."""
    st.session_state["nav_page"] = page
    st.rerun()


def handle_api_error(resp: requests.Response, operation: str = "operation") -> None:
    """Show a user-facing message for a failed API call."""
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = None

    if resp.status_code == 401:
        st.error("❌ Not authenticated. Please log in again.")
    elif resp.status_code == 403:
        st.error(f"🔒 **Permission Denied:** {detail or 'Insufficient permissions'}")
    elif resp.status_code == 400:
        st.error(f"⚠️ {detail or 'Invalid request'}")
    else:
        st.error(f"Backend error {resp.status_code} on {operation}")
        if ENABLE_DEBUG_UI:
            st.code(resp.text, language="json")


def set_report_option(name: str, checked: bool) -> None:
    """Shared on_change handler for all report options."""
    options = dict(ss["report_options"])
    options[name] = checked
    ss["report_options"] = options
    # New filter, first page
    ss["report_page"] = 0
    if IS_DEV:
        print(f"[REPORT] Option changed: {name}={checked}")


# --------------------------------------------------------------------
# Sidebar
# --------------------------------------------------------------------

def render_sidebar() -> None:
    with st.sidebar:
        st.markdown("## 📊 Asset Access")
        if ENABLE_DEBUG_UI:
            st.caption(f"env: {ENV}")

        if not is_authenticated():
            return

        user = get_current_user() or {}
        st.markdown(f"**{user.get('name') or 'User'}** · {user.get('role', '')}")

        if st.button("Access Report", use_container_width=True):
            go_to("Access Report")

        if st.button("Log out", use_container_width=True):
            clear_auth()
            ss["report_options"] = default_options()
            ss["report_page"] = 0
            go_to("Login")


# --------------------------------------------------------------------
# Login (bearer token)
# --------------------------------------------------------------------

def render_login() -> None:
    st.markdown("## 🔑 Log in")
    st.caption("Paste an access token issued by the backend.")

    with st.form("login_form"):
        token = st.text_input("Access token", type="password")
        submitted = st.form_submit_button("Log in", type="primary")

    if not submitted:
        return

    token = (token or "").strip()
    if not token:
        st.error("Token is required.")
        return

    resp = api_request("GET", "/auth/me", token=token)
    if resp is None:
        return
    if resp.status_code != 200:
        handle_api_error(resp, "login")
        return

    set_auth(token, resp.json())
    if IS_DEV:
        print(f"[AUTH] Logged in: user_id={resp.json().get('id')}")
    go_to("Access Report")


# --------------------------------------------------------------------
# Access report
# --------------------------------------------------------------------

def load_accesses(params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    with st.spinner("Loading accesses..."):
        resp = api_request("GET", "/api/asset-accesses", params=params)
    if resp is None:
        return None
    if resp.status_code != 200:
        handle_api_error(resp, "/api/asset-accesses")
        return None
    return resp.json()


def render_access_report() -> None:
    if not require_auth(redirect_to_login=True):
        return

    st.markdown("## 📊 Access Report")

    options = ss["report_options"]
    read_all = can("asset_accesses:read_all")

    col1, col2, col3 = st.columns(3)
    with col1:
        context_type = st.selectbox("Context type", options=[None] + CONTEXT_TYPES,
                                    format_func=lambda x: "All" if x is None else x, key="report_context_type")
    with col2:
        context_id = st.number_input("Context ID", min_value=0, step=1, value=0, key="report_context_id")
    with col3:
        user_id = None
        if read_all:
            user_id = st.number_input("User ID", min_value=0, step=1, value=0, key="report_user_id")
        else:
            st.caption("Showing your own activity")

    for name, label in REPORT_OPTIONS.items():
        render_option(name, label, set_report_option, checked=options.get(name))

    if context_type and not context_id:
        st.info("Enter a context ID to filter by context.")

    params = build_report_params(
        options,
        context_type=context_type,
        context_id=context_id,
        user_id=user_id,
        page=ss["report_page"],
        page_size=REPORT_PAGE_SIZE,
    )
    data = load_accesses(params)
    if data is None:
        return

    items = data.get("items", [])
    total = data.get("total", 0)
    pages = page_count(total, REPORT_PAGE_SIZE)

    st.markdown(f"### Accesses ({total})")
    if not items:
        st.info("No accesses recorded yet.")
        return

    st.dataframe(
        access_table(items, show_corrected=options.get("corrected_view_score", False)),
        use_container_width=True,
        hide_index=True,
    )

    prev_col, info_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("← Previous", disabled=ss["report_page"] <= 0):
            ss["report_page"] -= 1
            st.rerun()
    with info_col:
        st.caption(f"Page {ss['report_page'] + 1} of {pages}")
    with next_col:
        if st.button("Next →", disabled=ss["report_page"] + 1 >= pages):
            ss["report_page"] += 1
            st.rerun()


def main() -> None:
    init_auth_state()

    # Logged-out users always land on Login
    if not ss.get("nav_page") or not is_authenticated():
        ss["nav_page"] = "Access Report" if is_authenticated() else "Login"

    if IS_DEV:
        print(f"[ROUTING] page={ss['nav_page']} | token_present={is_authenticated()}")

    render_sidebar()

    nav_page = ss.get("nav_page", "Login")
    if nav_page == "Access Report":
        render_access_report()
    else:
        ss["nav_page"] = "Login"
        render_login()


if __name__ == "__main__":
    main()
