"""
Upload validation for spreadsheet files.

This module provides the FileValidator class that decides whether a file the
user dropped into the upload form may go to storage: it must be an Excel
workbook (.xlsx, .xls) or a CSV file, non-empty, and under the configured
size limit.

Module Input:
    - Original file name, reported MIME type and size

Module Output:
    - SpreadsheetType classification
    - FileValidationError with a user-facing message on rejection
"""

import mimetypes
from enum import Enum
from pathlib import PurePath
from typing import Dict, Optional, Set

from EAP.core.exceptions import FileValidationError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings

logger = get_logger(__name__)


class SpreadsheetType(Enum):
    """
    Supported upload formats.

    Values are the canonical MIME types the browser reports.
    """
    XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    XLS = "application/vnd.ms-excel"
    CSV = "text/csv"


EXTENSION_TO_TYPE: Dict[str, SpreadsheetType] = {
    ".xlsx": SpreadsheetType.XLSX,
    ".xls": SpreadsheetType.XLS,
    ".csv": SpreadsheetType.CSV,
}

MIME_TO_TYPE: Dict[str, SpreadsheetType] = {t.value: t for t in SpreadsheetType}

# Reported by some browsers/OSes instead of a real type
GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

INVALID_TYPE_MESSAGE = "Please upload an Excel (.xlsx, .xls) or CSV file."


class FileValidator:
    """
    Gatekeeper for the upload form.

    Attributes:
        allowed_extensions (Set[str]): Extensions accepted by the form
        max_file_size_mb (int): Maximum allowed file size in megabytes
    """

    def __init__(
        self,
        allowed_extensions: Optional[Set[str]] = None,
        max_file_size_mb: Optional[int] = None
    ):
        self.allowed_extensions = (
            {ext.lower() for ext in allowed_extensions}
            if allowed_extensions else settings.get_allowed_extensions()
        )
        self.max_file_size_mb = max_file_size_mb or settings.upload_max_size_mb

        mimetypes.init()

        logger.info(
            f"Initialized FileValidator: extensions={sorted(self.allowed_extensions)}, "
            f"max_size={self.max_file_size_mb}MB"
        )

    def detect_type(self, file_name: str, content_type: Optional[str] = None) -> Optional[SpreadsheetType]:
        """
        Classify an upload.

        The reported MIME type wins when it is specific; a missing or generic
        one falls back to the extension.

        Example:
            >>> FileValidator().detect_type("data.csv", "text/csv")
            <SpreadsheetType.CSV: 'text/csv'>
            >>> FileValidator().detect_type("book.xlsx", None)
            <SpreadsheetType.XLSX: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'>
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in GENERIC_MIME_TYPES:
            return MIME_TO_TYPE.get(mime)

        extension = PurePath(file_name).suffix.lower()
        if extension not in self.allowed_extensions:
            return None
        return EXTENSION_TO_TYPE.get(extension)

    def content_type_for(self, file_name: str) -> str:
        """MIME type to record on the stored object."""
        extension = PurePath(file_name).suffix.lower()
        if extension in EXTENSION_TO_TYPE:
            return EXTENSION_TO_TYPE[extension].value
        guessed, _ = mimetypes.guess_type(file_name)
        return guessed or "application/octet-stream"

    def validate(self, file_name: str, size: int, content_type: Optional[str] = None) -> SpreadsheetType:
        """
        Validate one upload.

        Returns:
            SpreadsheetType: Detected format

        Raises:
            FileValidationError: If the file is not a supported spreadsheet,
                is empty, or is too large
        """
        file_type = self.detect_type(file_name, content_type)
        if file_type is None:
            logger.warning(f"Rejected {file_name}: unsupported type '{content_type}'")
            raise FileValidationError(
                INVALID_TYPE_MESSAGE,
                details={"file_name": file_name, "content_type": content_type}
            )

        if size <= 0:
            raise FileValidationError(
                "The selected file is empty.",
                details={"file_name": file_name}
            )

        size_mb = size / (1024 * 1024)
        if size_mb > self.max_file_size_mb:
            raise FileValidationError(
                f"File is larger than {self.max_file_size_mb} MB.",
                details={"file_name": file_name, "size_mb": round(size_mb, 2)}
            )

        logger.debug(f"Validated {file_name} as {file_type.name}")
        return file_type
