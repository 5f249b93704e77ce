"""
Custom exceptions for the Excel Analytics Platform.

This module defines a hierarchy of domain-specific exceptions so that every
failure coming out of the managed backend (auth, storage, database) or out of
spreadsheet parsing reaches the UI in one consistent shape.

Module Input:
    - Error conditions from service components
    - Optional error details as dictionaries

Module Output:
    - Structured exception objects with message, details and a short title
    - Consistent error interface for UI notification handlers
"""
from typing import Optional, Any


class AnalyticsPlatformError(Exception):
    """
    Base exception for all platform errors.

    Provides a common base class so the UI can catch one type at each call
    site and render a single notification.

    Attributes:
        message (str): Human-readable error description
        details (dict[str, Any]): Optional structured error details
        title (str): Short notification heading shown above the message
    """

    title = "Error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.

        Args:
            message (str): Human-readable error description
            details (Optional[dict[str, Any]]): Additional structured error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(AnalyticsPlatformError):
    """
    Raised when configuration is invalid or missing.

    Common scenarios:
        - Missing Cognito app client id
        - Empty bucket name
        - Malformed allowed-extension list
    """
    title = "Configuration error"


class AuthError(AnalyticsPlatformError):
    """
    Raised when a managed-auth call fails.

    Common scenarios:
        - Wrong email or password
        - Account already exists on sign-up
        - Account not yet confirmed
        - Expired access token
    """
    title = "Authentication failed"


class AccessDeniedError(AnalyticsPlatformError):
    """
    Raised when a row-level-security policy rejects an operation.

    Common scenarios:
        - No policy grants the command on the table (default deny)
        - Inserting a row owned by another user
        - Touching a storage object outside the caller's folder
    """
    title = "Access denied"


class StorageError(AnalyticsPlatformError):
    """
    Raised when an object-storage call fails.

    Common scenarios:
        - Bucket does not exist
        - Credentials rejected
        - Object key not found on download
    """
    title = "Storage error"


class DatabaseError(AnalyticsPlatformError):
    """
    Raised when database operations fail.

    Common scenarios:
        - Connection failures to RDS
        - SQL syntax errors
        - Constraint violations
    """
    title = "Database error"


class FileValidationError(AnalyticsPlatformError):
    """
    Raised when an uploaded file is rejected before it reaches storage.

    Common scenarios:
        - Unsupported MIME type or extension
        - Empty file
        - File above the configured size limit
    """
    title = "Invalid file type"


class SpreadsheetParseError(AnalyticsPlatformError):
    """
    Raised when a workbook or CSV cannot be read into sheets.

    Common scenarios:
        - Corrupt or password-protected workbook
        - Binary that is not a spreadsheet
        - Undecodable CSV text
    """
    title = "Error"


class ChartConfigError(AnalyticsPlatformError):
    """
    Raised when a chart cannot be built from the selected configuration.

    Common scenarios:
        - Unknown chart type
        - Axis column missing from the sheet
    """
    title = "Error"
