"""
frontend/auth.py
Centralized authentication state for the asset access frontend.

Streamlit reruns the whole script on every interaction, so auth keys must be
initialized at the top of every run and read from one place:

- init_auth_state(): call at the top of main(); idempotent
- set_auth(): store token + user after a successful token login
- clear_auth(): wipe auth state on logout or session expiry
- require_auth(): guard for protected pages
- get_auth_header(): Authorization header for API calls
"""

from typing import Any, Dict, MutableMapping, Optional

import streamlit as st


def _state(ss: Optional[MutableMapping[str, Any]] = None) -> MutableMapping[str, Any]:
    return st.session_state if ss is None else ss


def init_auth_state(ss: Optional[MutableMapping[str, Any]] = None) -> None:
    """Ensure auth keys exist on every rerun."""
    ss = _state(ss)

    ss.setdefault("auth_token", None)
    ss.setdefault("current_user", None)
    ss.setdefault("is_authenticated", False)

    # Keep the flag in sync with the token
    ss["is_authenticated"] = bool(ss["auth_token"])


def set_auth(auth_token: str, current_user: Dict[str, Any], ss: Optional[MutableMapping[str, Any]] = None) -> None:
    """
    Set authentication state after a successful login.

    Args:
        auth_token: JWT access token (Bearer token for API calls)
        current_user: /auth/me payload (id, name, email, role, capabilities)
    """
    ss = _state(ss)

    ss["auth_token"] = auth_token
    ss["current_user"] = current_user
    ss["is_authenticated"] = True


def clear_auth(ss: Optional[MutableMapping[str, Any]] = None) -> None:
    """Clear all authentication state. Safe to call multiple times."""
    ss = _state(ss)

    ss["auth_token"] = None
    ss["current_user"] = None
    ss["is_authenticated"] = False


def is_authenticated(ss: Optional[MutableMapping[str, Any]] = None) -> bool:
    return bool(_state(ss).get("auth_token"))


def get_current_user(ss: Optional[MutableMapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
    return _state(ss).get("current_user")


def get_auth_header(ss: Optional[MutableMapping[str, Any]] = None) -> Dict[str, str]:
    """
    Authorization header dict for API requests.

    Returns:
        {"Authorization": "Bearer <token>"} if authenticated, {} otherwise
    """
    token = _state(ss).get("auth_token")
    if token:
        return {"Authorization": f"Bearer {token}"}
    return {}


def can(capability: str, ss: Optional[MutableMapping[str, Any]] = None) -> bool:
    """True if the logged-in user's capabilities (from /auth/me) include capability."""
    user = get_current_user(ss)
    if not user or not isinstance(user, dict):
        return False
    return capability in (user.get("capabilities") or [])


def require_auth(redirect_to_login: bool = True) -> bool:
    """
    Guard for protected pages.

    Usage at top of page render functions:
        if not require_auth():
            return
    """
    if not is_authenticated():
        st.warning("⚠️ You must be logged in to access this page.")

        if redirect_to_login:
            st.session_state["nav_page"] = "Login"

        if st.button("Go to Login", type="primary"):
            st.session_state["nav_page"] = "Login"
            st.rerun()

        return False

    return True
