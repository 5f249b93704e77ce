"""
Application launcher for the Streamlit UI.

This module provides a command-line entry point for launching the
Streamlit web interface through the project's console scripts.

Module Input:
    - Command-line invocation via the ``eap-app`` entry point

Module Output:
    - Launches Streamlit server with the analytics application
    - Exits with Streamlit's exit code

Usage:
    $ eap-app

    Or directly:
    $ python -m EAP.app_launcher
"""

import sys
from pathlib import Path

from EAP.core.logging_config import get_logger

logger = get_logger(__name__)

APP_PATH = Path(__file__).parent / "ui" / "streamlit_app.py"
DEFAULT_PORT = 8501


def build_argv(app_path: Path = APP_PATH, port: int = DEFAULT_PORT) -> list:
    return [
        "streamlit",
        "run",
        str(app_path),
        f"--server.port={port}",
        "--server.headless=true"
    ]


def main():
    """
    Launch the Streamlit application.

    Side Effects:
        - Replaces sys.argv for the Streamlit CLI
        - Starts Streamlit server (blocking)

    Raises:
        SystemExit: If the app module is missing, or with Streamlit's return code
    """
    import streamlit.web.cli as stcli

    if not APP_PATH.exists():
        logger.error(f"Streamlit app not found at {APP_PATH}")
        sys.exit(1)

    logger.info(f"Launching Excel Analytics Platform UI from {APP_PATH}")

    sys.argv = build_argv()
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
