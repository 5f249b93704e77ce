"""
Centralized configuration management using Pydantic.

This module defines the Settings class which loads and validates application
configuration from environment variables or .env file.

Module Input:
    - Environment variables from OS
    - .env file in project root (optional)
    - Default values defined in class

Module Output:
    - Validated configuration object (singleton)
    - Helper methods for upload rules
    - Database connection parameters
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and .env file.

    Attributes:
        AWS Configuration:
            aws_access_key_id (Optional[str]): AWS access key for API calls
            aws_secret_access_key (Optional[str]): AWS secret key
            aws_default_region (str): Default AWS region (default: "us-east-1")
            aws_profile (Optional[str]): Named AWS profile to use

        Cognito Configuration:
            cognito_user_pool_id (str): User pool backing sign-in
            cognito_client_id (str): App client id used for auth flows
            cognito_client_secret (Optional[str]): App client secret, when the
                client was created with one

        S3 Configuration:
            s3_bucket_files (str): Bucket holding uploaded spreadsheets
            s3_prefix_files (str): Optional key prefix inside the bucket

        RDS Configuration:
            rds_host (str): MySQL RDS endpoint hostname
            rds_port (int): MySQL port (default: 3306)
            rds_database (str): Database name
            rds_username (str): Database user
            rds_password (str): Database password
            rds_pool_size (int): Connection pool size (default: 5)

        Upload / Analysis Configuration:
            upload_max_size_mb (int): Largest accepted upload
            upload_allowed_extensions (str): Comma-separated extensions
            chart_max_points (int): Points plotted per chart
            analytics_sample_rows (int): Rows stored in each sheet summary
            preview_max_rows (int): Rows shown in the data preview

        Logging Configuration:
            log_level (str): Minimum log level (default: "INFO")
            log_dir (Path): Directory for log files (default: "logs")
            log_file (str): Log file name (default: "app.log")
    """

    # ---------------- AWS Configuration ----------------
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_default_region: str = "us-east-1"
    aws_profile: Optional[str] = None

    # ---------------- Cognito ----------------
    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    cognito_client_secret: Optional[str] = None

    # ---------------- S3 ----------------
    s3_bucket_files: str = "excel-files"
    s3_prefix_files: str = ""

    # ---------------- RDS Configuration ----------------
    rds_host: str = "localhost"
    rds_port: int = 3306
    rds_database: str = "excel_analytics"
    rds_username: str = "admin"
    rds_password: str = ""
    rds_pool_size: int = 5

    # ---------------- Upload / Analysis ----------------
    upload_max_size_mb: int = 50
    upload_allowed_extensions: str = ".xlsx,.xls,.csv"
    chart_max_points: int = 20
    analytics_sample_rows: int = 5
    preview_max_rows: int = 100

    # ---------------- Logging ----------------
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_file: str = "app.log"

    # ---------------- Pydantic Settings ----------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---------------- Helper Methods ----------------
    def get_allowed_extensions(self) -> set[str]:
        """
        Parse the configured extension list.

        Returns:
            set[str]: Lower-cased extensions, each starting with "."

        Raises:
            ConfigError: If an entry does not start with "."
        """
        extensions = {
            ext.strip().lower()
            for ext in self.upload_allowed_extensions.split(",")
            if ext.strip()
        }
        bad = sorted(ext for ext in extensions if not ext.startswith("."))
        if bad:
            raise ConfigError(
                "Invalid upload extension list",
                details={"invalid": bad, "value": self.upload_allowed_extensions}
            )
        return extensions

    def get_aws_session_kwargs(self) -> dict[str, str]:
        """
        Keyword arguments for ``boto3.Session``.

        A named profile wins over static keys; with neither, boto3 falls back
        to its default credential chain.
        """
        session_kwargs = {"region_name": self.aws_default_region}
        if self.aws_profile:
            session_kwargs["profile_name"] = self.aws_profile
        elif self.aws_access_key_id and self.aws_secret_access_key:
            session_kwargs.update({
                "aws_access_key_id": self.aws_access_key_id,
                "aws_secret_access_key": self.aws_secret_access_key
            })
        return session_kwargs

    def get_database_config(self) -> dict[str, object]:
        """
        Get database connection configuration as dictionary.

        Returns connection parameters suitable for pymysql.connect().
        """
        return {
            "host": self.rds_host,
            "port": self.rds_port,
            "database": self.rds_database,
            "user": self.rds_username,
            "password": self.rds_password,
            "charset": "utf8mb4"
        }


# Singleton instance shared across the app
settings = Settings()
