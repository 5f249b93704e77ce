"""
Centralized logging configuration for the application.

Provides standardized logging setup with console and rotating file handlers,
ensuring consistent log formatting across all modules.

Module Input:
    - Logger name strings from calling modules
    - Log level and directory from settings

Module Output:
    - Formatted log entries to console (stdout)
    - Formatted log entries to rotating file (logs/app.log)
    - Configured logger instances for modules
"""
import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

from .settings import settings


class LoggerConfig:
    """Class to manage logger configuration and creation."""

    # Loggers already given handlers
    _configured_loggers = set()

    def __init__(
        self,
        log_level: int = logging.INFO,
        log_dir: str = "logs",
        log_file: str = "app.log",
        max_bytes: int = 10_485_760,  # 10MB
        backup_count: int = 5
    ):
        """
        Initialize logger configuration.

        Args:
            log_level: Minimum logging level (default: INFO)
            log_dir: Directory where log files are saved
            log_file: Name of the log file
            max_bytes: Maximum size of log file before rotation (10MB default)
            backup_count: Number of backup log files to keep
        """
        self.log_level = log_level
        self.log_dir = Path(log_dir)
        self.log_file = log_file
        self.max_bytes = max_bytes
        self.backup_count = backup_count

        # Streamlit Community Cloud has a read-only app directory
        self.file_logging = os.environ.get("EAP_DISABLE_FILE_LOGS", "").lower() not in ("1", "true", "yes")

    def _create_formatter(self) -> logging.Formatter:
        """
        Create the shared log formatter.

        Format: "2024-01-15 10:30:45 | INFO | module:function:line | message"
        """
        return logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def _create_console_handler(self) -> logging.StreamHandler:
        """Create console handler that outputs to stdout."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(self._create_formatter())
        return console_handler

    def _create_file_handler(self) -> Optional[RotatingFileHandler]:
        """
        Create rotating file handler.

        Returns:
            RotatingFileHandler or None: File handler (None when file logging
            is disabled)

        Note:
            - Automatically rotates when file reaches max_bytes
            - Keeps backup_count number of old log files
        """
        if not self.file_logging:
            return None

        self.log_dir.mkdir(parents=True, exist_ok=True)
        log_file_path = self.log_dir / self.log_file

        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(self.log_level)
        file_handler.setFormatter(self._create_formatter())

        return file_handler

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger with standardized configuration.

        Creates a logger instance with both console and rotating file handlers.
        Repeated calls for the same name return the already configured logger.

        Args:
            name: Logger name, typically __name__ from calling module

        Returns:
            logging.Logger: Configured logger instance ready for use
        """
        if name in LoggerConfig._configured_loggers:
            return logging.getLogger(name)

        logger = logging.getLogger(name)
        logger.setLevel(self.log_level)

        if logger.handlers:
            return logger

        logger.addHandler(self._create_console_handler())

        file_handler = self._create_file_handler()
        if file_handler is not None:
            logger.addHandler(file_handler)

        # Handlers live on each module logger
        logger.propagate = False

        LoggerConfig._configured_loggers.add(name)

        return logger

    @staticmethod
    def setup_root_logger(log_level: int = logging.INFO):
        """
        Configure the root logger for libraries that use it.

        Args:
            log_level: Minimum logging level (default: INFO)
        """
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        # boto3 is chatty at INFO
        logging.getLogger("botocore").setLevel(logging.WARNING)


_default_config = LoggerConfig(
    log_level=logging.getLevelName(settings.log_level.upper()) if isinstance(
        logging.getLevelName(settings.log_level.upper()), int
    ) else logging.INFO,
    log_dir=str(settings.log_dir),
    log_file=settings.log_file,
)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with default configuration.

    Example:
        from EAP.core.logging_config import get_logger

        logger = get_logger(__name__)
        logger.info("Application started")
    """
    return _default_config.get_logger(name)


def setup_root_logger(log_level: Optional[int] = None):
    """Configure the root logger using the configured level."""
    LoggerConfig.setup_root_logger(log_level or _default_config.log_level)
