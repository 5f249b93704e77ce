"""
User interface modules for the Excel Analytics Platform.

Modules:
    streamlit_app: Streamlit web UI
    state: Flash messages, uploader reset and the cached database check
"""
