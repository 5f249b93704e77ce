"""
Session-state and cache helpers for the Streamlit app.

Kept apart from ``streamlit_app`` so they can be used without configuring a
page. Functions that touch session state take the state mapping explicitly
and default to ``st.session_state``.
"""

from typing import MutableMapping, Optional

import streamlit as st

from EAP.core.logging_config import get_logger
from EAP.services.database.client import RDSClient

logger = get_logger(__name__)

FLASH_KEY = "flash_message"
UPLOAD_NONCE_KEY = "upload_nonce"
DB_STATUS_TTL_SECONDS = 60


def _state(state: Optional[MutableMapping]) -> MutableMapping:
    return st.session_state if state is None else state


def flash(message: str, state: Optional[MutableMapping] = None) -> None:
    """Queue a success message to show after the next rerun."""
    _state(state)[FLASH_KEY] = message


def pop_flash(state: Optional[MutableMapping] = None) -> Optional[str]:
    return _state(state).pop(FLASH_KEY, None)


def upload_widget_key(state: Optional[MutableMapping] = None) -> str:
    return f"file_upload_{_state(state).get(UPLOAD_NONCE_KEY, 0)}"


def reset_upload_widget(state: Optional[MutableMapping] = None) -> None:
    """Give the uploader a new key so the stored file is not offered again."""
    state = _state(state)
    state[UPLOAD_NONCE_KEY] = state.get(UPLOAD_NONCE_KEY, 0) + 1


@st.cache_data(ttl=DB_STATUS_TTL_SECONDS, show_spinner=False)
def database_status(_rds_client: RDSClient) -> bool:
    """Connectivity check for the sidebar, at most once per TTL window."""
    connected = _rds_client.ping()
    logger.debug(f"Database ping: {'ok' if connected else 'failed'}")
    return connected
