"""
File lifecycle orchestration: upload, list, download, delete and open.

This module provides the FileService class that sequences the storage,
database and parsing calls behind each action in the UI. Each step is one
backend call awaited before the next; a failing step raises and the
remaining steps do not run.
"""

from pathlib import PurePath
from typing import Callable, List, Optional, Tuple

from EAP.core.exceptions import AnalyticsPlatformError, AccessDeniedError, DatabaseError
from EAP.core.logging_config import get_logger
from EAP.services.auth.cognito_client import AuthSession
from EAP.services.database.repositories import AnalyticsRepository, FileRecord, FileRepository
from EAP.services.processing import spreadsheet_parser
from EAP.services.processing.spreadsheet_parser import SheetData
from EAP.services.storage.file_validator import FileValidator
from EAP.services.storage.s3_client import S3Client, build_object_key

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


class FileService:
    """
    Orchestrates the per-user file actions.

    Attributes:
        storage (S3Client): Bucket holding the uploaded bytes
        files (FileRepository): ``excel_files`` access
        analytics (AnalyticsRepository): ``analytics_data`` access
        validator (FileValidator): Upload gatekeeper
    """

    def __init__(
        self,
        storage: S3Client,
        files: FileRepository,
        analytics: AnalyticsRepository,
        validator: Optional[FileValidator] = None
    ):
        self.storage = storage
        self.files = files
        self.analytics = analytics
        self.validator = validator or FileValidator()

    def upload(
        self,
        session: AuthSession,
        original_name: str,
        data: bytes,
        content_type: Optional[str] = None,
        progress: Optional[ProgressCallback] = None
    ) -> FileRecord:
        """
        Validate, store and record one file.

        Args:
            session (AuthSession): Signed-in caller
            original_name (str): Name of the file on the user's machine
            data (bytes): File contents
            content_type (Optional[str]): MIME type reported by the browser
            progress (Optional[ProgressCallback]): Receives 0, 50 and 100

        Returns:
            FileRecord: The new ``excel_files`` row

        Raises:
            FileValidationError: If the file is rejected before upload
            StorageError: If the bucket upload fails
            DatabaseError: If the metadata insert fails
        """
        report = progress or (lambda percent: None)
        original_name = PurePath(original_name).name

        self.validator.validate(original_name, len(data), content_type)
        report(0)

        file_path = build_object_key(session.user_id, original_name)
        filename = PurePath(file_path).name

        self.storage.upload_bytes(
            file_path,
            data,
            auth_uid=session.user_id,
            content_type=self.validator.content_type_for(original_name),
        )
        report(50)

        record = self.files.insert(
            session.user_id,
            user_id=session.user_id,
            filename=filename,
            original_name=original_name,
            file_size=len(data),
            file_path=file_path,
            status="uploaded",
        )
        report(100)

        logger.info(f"Uploaded {original_name} for {session.user_id} as {file_path}")
        return record

    def list_files(self, session: AuthSession) -> List[FileRecord]:
        return self.files.list_for_user(session.user_id)

    def download(self, session: AuthSession, record: FileRecord) -> Tuple[str, bytes]:
        """
        Fetch a stored file.

        Returns:
            Tuple[str, bytes]: (original file name, contents)
        """
        data = self.storage.download_bytes(record.file_path, auth_uid=session.user_id)
        return record.original_name, data

    def delete(self, session: AuthSession, record: FileRecord) -> None:
        """
        Remove the stored object, then the metadata row.

        Raises:
            StorageError: If the object removal fails (the row is kept)
            AccessDeniedError: If no row of the caller's was deleted
        """
        self.storage.remove([record.file_path], auth_uid=session.user_id)
        affected = self.files.delete(session.user_id, record.id)
        if affected == 0:
            raise AccessDeniedError(
                "File not found or not owned by the current user",
                details={"file_id": record.id}
            )

    def open_file(self, session: AuthSession, record: FileRecord) -> List[SheetData]:
        """
        Download, parse and summarize a file for the viewer.

        The object is fetched from ``{user_id}/{filename}``. Summaries are
        upserted per sheet; a summary write failure is logged and does not
        hide the parsed data. A parse failure marks the file ``error``.

        Raises:
            StorageError: If the download fails
            SpreadsheetParseError: If the file cannot be parsed
        """
        key = f"{session.user_id}/{record.filename}"
        data = self.storage.download_bytes(key, auth_uid=session.user_id)

        try:
            sheets = spreadsheet_parser.parse_workbook(data, record.original_name)
        except AnalyticsPlatformError:
            self._mark(session, record, status="error")
            raise

        self.save_analytics(session, record, sheets)
        self._mark(
            session,
            record,
            sheet_count=len(sheets),
            row_count=spreadsheet_parser.total_rows(sheets),
        )
        return sheets

    def save_analytics(self, session: AuthSession, record: FileRecord, sheets: List[SheetData]) -> int:
        """Upsert one summary per sheet; returns how many were written."""
        saved = 0
        for sheet in sheets:
            try:
                self.analytics.upsert(
                    session.user_id,
                    file_id=record.id,
                    sheet_name=sheet.name,
                    data=spreadsheet_parser.build_sheet_summary(sheet),
                )
                saved += 1
            except (DatabaseError, AccessDeniedError) as e:
                logger.error(
                    f"Failed to save analytics data for {record.id}/{sheet.name}: {e.message}",
                    extra={"details": e.details}
                )
        return saved

    def _mark(self, session: AuthSession, record: FileRecord, **changes) -> None:
        try:
            self.files.update_stats(session.user_id, record.id, **changes)
        except DatabaseError as e:
            logger.error(f"Failed to update file {record.id}: {e.message}")
