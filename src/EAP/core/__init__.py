"""Settings, logging and the exception hierarchy shared by every module."""
