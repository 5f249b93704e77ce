"""Console entry point for the UI."""

from EAP import app_launcher


def test_app_module_is_packaged():
    assert app_launcher.APP_PATH.exists()
    assert app_launcher.APP_PATH.name == "streamlit_app.py"


def test_build_argv():
    argv = app_launcher.build_argv()
    assert argv[:2] == ["streamlit", "run"]
    assert "--server.port=8501" in argv
    assert "--server.headless=true" in argv
