"""
frontend/api_client.py
Centralized API client for all backend requests.

- Attaches the Authorization header when authenticated
- Clears auth on 401 (expired or revoked token)
- Returns None (with a user-facing message) on connection problems
"""

from typing import Any, Dict, Literal, Optional

import requests
import streamlit as st

try:
    from frontend.auth import clear_auth, get_auth_header
    from frontend.config import IS_DEV, get_api_base_url
except ModuleNotFoundError:
    from auth import clear_auth, get_auth_header
    from config import IS_DEV, get_api_base_url


__all__ = ["api_request", "get_api_base_url"]

PUBLIC_PATHS = ["/health"]


def is_public_endpoint(path: str) -> bool:
    return path in PUBLIC_PATHS


def api_request(
    method: Literal["GET", "POST"],
    path: str,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: int = 20,
    token: Optional[str] = None,
) -> Optional[requests.Response]:
    """
    Make an API request with auth header attachment and error handling.

    This is the ONLY function that should make backend API calls.

    Args:
        method: HTTP method (GET, POST)
        path: API endpoint path (e.g., "/api/asset-accesses")
        json: JSON body for POST requests
        params: Query parameters
        timeout: Request timeout in seconds
        token: Explicit bearer token (login verifies a token before storing it)

    Returns:
        Response object, or None on connection error / expired session.
        Never logs tokens.
    """
    try:
        base_url = get_api_base_url()
    except (RuntimeError, ValueError) as e:
        st.error(f"⚙️ Configuration error: {e}")
        return None

    url = f"{base_url}{path}"
    headers = {"Accept": "application/json"}

    if token:
        headers["Authorization"] = f"Bearer {token}"
    elif not is_public_endpoint(path):
        headers.update(get_auth_header())

    try:
        if method == "GET":
            resp = requests.get(url, headers=headers, params=params, timeout=timeout)
        elif method == "POST":
            resp = requests.post(url, json=json, headers=headers, params=params, timeout=timeout)
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")

    except requests.exceptions.Timeout:
        if IS_DEV:
            print(f"[API] Timeout on {method} {path}")
        st.error(f"⏱️ Request timed out after {timeout}s. Please try again.")
        return None

    except requests.exceptions.ConnectionError:
        if IS_DEV:
            print(f"[API] Connection error on {method} {path}")
        st.error(f"🔌 Cannot connect to backend at {base_url}. Please check your connection.")
        return None

    if resp.status_code == 401 and not token and not is_public_endpoint(path):
        if IS_DEV:
            print(f"[API] 401 on {path}, clearing session")
        st.warning("🔒 Your session has expired. Please log in again.")
        clear_auth()
        st.session_state["nav_page"] = "Login"
        return None

    if resp.status_code == 403 and IS_DEV:
        print(f"[API] 403 Forbidden on {path}")

    return resp
