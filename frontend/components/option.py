"""
frontend/components/option.py
Labelled checkbox for report options.

The component is controlled: the page owns the value and passes it back in as
`checked` on every rerun. Toggling calls `on_change(name, checked)` so one
handler can serve a whole group of options.
"""

from typing import Any, Callable, MutableMapping, Optional

import streamlit as st

OnChange = Callable[[str, bool], None]


def option_key(name: str) -> str:
    return f"option_{name}"


def make_option_handler(
    name: str,
    key: str,
    on_change: OnChange,
    session_state: MutableMapping[str, Any],
) -> Callable[[], None]:
    """
    Build the Streamlit on_change callback for one option.

    Streamlit has already written the new widget value to session_state[key]
    when the callback runs.
    """
    def _handler() -> None:
        on_change(name, bool(session_state.get(key)))

    return _handler


def render_option(
    name: str,
    label: str,
    on_change: OnChange,
    checked: Optional[bool] = None,
    key: Optional[str] = None,
) -> bool:
    """
    Draw a checkbox labelled `label`.

    Args:
        name: Option name passed back to on_change
        label: Text shown next to the box
        on_change: Called as on_change(name, checked) when the user toggles it
        checked: Current value; None leaves the box unchecked
        key: Widget key (default "option_<name>")

    Returns:
        The checkbox value for this run
    """
    ss = st.session_state
    key = key or option_key(name)

    # Widget values set through session_state must be written before the widget is created
    ss[key] = bool(checked)

    return st.checkbox(
        label,
        key=key,
        on_change=make_option_handler(name, key, on_change, ss),
    )
