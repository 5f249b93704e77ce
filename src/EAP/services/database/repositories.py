"""
Table access for files, analytics summaries and profiles.

Every method takes the caller id (``auth_uid``) of the signed-in user and
narrows its statement with the row-level policy for that table and command.
Records are returned as Pydantic models.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from EAP.core.exceptions import AccessDeniedError
from EAP.core.logging_config import get_logger
from EAP.services.database import policies
from EAP.services.database.client import RDSClient

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FileRecord(BaseModel):
    """Row of ``excel_files``."""
    id: str
    user_id: str
    filename: str
    original_name: str
    file_size: int
    file_path: str
    upload_date: datetime
    status: str = "uploaded"
    sheet_count: int = 0
    row_count: int = 0


class AnalyticsRecord(BaseModel):
    """Row of ``analytics_data``."""
    id: str
    file_id: str
    user_id: str
    sheet_name: str
    data: Dict[str, Any]
    created_at: Optional[datetime] = None


class ProfileRecord(BaseModel):
    """Row of ``profiles``."""
    id: str
    user_id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FileRepository:
    """CRUD for uploaded file metadata."""

    table = "excel_files"
    columns = (
        "id, user_id, filename, original_name, file_size, file_path, "
        "upload_date, status, sheet_count, row_count"
    )

    def __init__(self, rds_client: RDSClient):
        self.rds_client = rds_client

    def insert(
        self,
        auth_uid: str,
        user_id: str,
        filename: str,
        original_name: str,
        file_size: int,
        file_path: str,
        status: str = "uploaded"
    ) -> FileRecord:
        record = FileRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            filename=filename,
            original_name=original_name,
            file_size=file_size,
            file_path=file_path,
            upload_date=_now(),
            status=status,
        )
        row = record.model_dump()
        policies.check_row(self.table, "INSERT", row, auth_uid)

        self.rds_client.execute_update(
            f"""
            INSERT INTO `{self.table}`
                (id, user_id, filename, original_name, file_size, file_path, upload_date, status, sheet_count, row_count)
            VALUES
                (%(id)s, %(user_id)s, %(filename)s, %(original_name)s, %(file_size)s, %(file_path)s,
                 %(upload_date)s, %(status)s, %(sheet_count)s, %(row_count)s)
            """,
            row
        )
        logger.info("Recorded file %s (%s) for user %s", record.id, original_name, user_id)
        return record

    def list_for_user(self, auth_uid: str) -> List[FileRecord]:
        """Caller's files, newest first."""
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"""
            SELECT {self.columns}
            FROM `{self.table}`
            WHERE user_id = %(user_id)s AND ({predicate})
            ORDER BY upload_date DESC
            """,
            {**params, "user_id": auth_uid}
        )
        return [FileRecord(**row) for row in rows]

    def get(self, auth_uid: str, file_id: str) -> Optional[FileRecord]:
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"""
            SELECT {self.columns}
            FROM `{self.table}`
            WHERE id = %(id)s AND ({predicate})
            """,
            {**params, "id": file_id}
        )
        return FileRecord(**rows[0]) if rows else None

    def update_stats(
        self,
        auth_uid: str,
        file_id: str,
        status: Optional[str] = None,
        sheet_count: Optional[int] = None,
        row_count: Optional[int] = None
    ) -> int:
        """Record parse results (or an error status) on the file row."""
        changes = {
            key: value
            for key, value in (("status", status), ("sheet_count", sheet_count), ("row_count", row_count))
            if value is not None
        }
        if not changes:
            return 0

        predicate, params = policies.scope(self.table, "UPDATE", auth_uid)
        assignments = ", ".join(f"`{key}` = %({key})s" for key in changes)
        return self.rds_client.execute_update(
            f"UPDATE `{self.table}` SET {assignments} WHERE id = %(id)s AND ({predicate})",
            {**params, **changes, "id": file_id}
        )

    def delete(self, auth_uid: str, file_id: str) -> int:
        """Delete one of the caller's files. Analytics rows cascade."""
        predicate, params = policies.scope(self.table, "DELETE", auth_uid)
        affected = self.rds_client.execute_update(
            f"""
            DELETE FROM `{self.table}`
            WHERE id = %(id)s AND user_id = %(user_id)s AND ({predicate})
            """,
            {**params, "id": file_id, "user_id": auth_uid}
        )
        logger.info("Deleted %d file row(s) for id %s", affected, file_id)
        return affected


class AnalyticsRepository:
    """Per-sheet JSON summaries."""

    table = "analytics_data"

    def __init__(self, rds_client: RDSClient):
        self.rds_client = rds_client

    def upsert(self, auth_uid: str, file_id: str, sheet_name: str, data: Dict[str, Any]) -> AnalyticsRecord:
        """
        Insert or refresh the summary for ``(file_id, sheet_name)``.

        The refresh only applies to a row the caller owns. The stored row is
        read back afterwards, so the returned id is the one in the table.

        Raises:
            AccessDeniedError: If the existing row belongs to another user
        """
        row = {
            "id": str(uuid.uuid4()),
            "file_id": file_id,
            "user_id": auth_uid,
            "sheet_name": sheet_name,
        }
        policies.check_row(self.table, "INSERT", row, auth_uid)
        update_policy = policies.get_policy(self.table, "UPDATE")

        self.rds_client.execute_update(
            f"""
            INSERT INTO `{self.table}` (id, file_id, user_id, sheet_name, data)
            VALUES (%(id)s, %(file_id)s, %(user_id)s, %(sheet_name)s, %(data)s) AS new
            ON DUPLICATE KEY UPDATE
                data = IF(`{self.table}`.`{update_policy.owner_column}` = new.user_id, new.data, `{self.table}`.data)
            """,
            {**row, "data": json.dumps(data, default=str)}
        )

        stored = self.get(auth_uid, file_id, sheet_name)
        if stored is None or stored.user_id != auth_uid:
            logger.warning("Summary %s/%s is owned by another user", file_id, sheet_name)
            raise AccessDeniedError(
                f"New row violates row-level security policy for table {self.table}",
                details={"policy": update_policy.name, "table": self.table, "file_id": file_id}
            )
        return stored

    def get(self, auth_uid: str, file_id: str, sheet_name: str) -> Optional[AnalyticsRecord]:
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"""
            SELECT id, file_id, user_id, sheet_name, data, created_at
            FROM `{self.table}`
            WHERE file_id = %(file_id)s AND sheet_name = %(sheet_name)s AND ({predicate})
            """,
            {**params, "file_id": file_id, "sheet_name": sheet_name}
        )
        return self._to_record(rows[0]) if rows else None

    def list_for_file(self, auth_uid: str, file_id: str) -> List[AnalyticsRecord]:
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"""
            SELECT id, file_id, user_id, sheet_name, data, created_at
            FROM `{self.table}`
            WHERE file_id = %(file_id)s AND ({predicate})
            ORDER BY sheet_name
            """,
            {**params, "file_id": file_id}
        )
        return [self._to_record(row) for row in rows]

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> AnalyticsRecord:
        data = row["data"]
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        return AnalyticsRecord(**{**row, "data": data})


class ProfileRepository:
    """User profile records."""

    table = "profiles"
    columns = "id, user_id, display_name, avatar_url, created_at, updated_at"

    def __init__(self, rds_client: RDSClient):
        self.rds_client = rds_client

    def get_by_user(self, auth_uid: str, user_id: str) -> Optional[ProfileRecord]:
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"SELECT {self.columns} FROM `{self.table}` WHERE user_id = %(user_id)s AND ({predicate})",
            {**params, "user_id": user_id}
        )
        return ProfileRecord(**rows[0]) if rows else None

    def list_all(self, auth_uid: str) -> List[ProfileRecord]:
        predicate, params = policies.scope(self.table, "SELECT", auth_uid)
        rows = self.rds_client.execute_query(
            f"SELECT {self.columns} FROM `{self.table}` WHERE {predicate} ORDER BY created_at",
            params
        )
        return [ProfileRecord(**row) for row in rows]

    def insert(self, auth_uid: str, user_id: str, display_name: Optional[str] = None) -> ProfileRecord:
        now = _now()
        record = ProfileRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
        row = record.model_dump()
        policies.check_row(self.table, "INSERT", row, auth_uid)

        self.rds_client.execute_update(
            f"""
            INSERT INTO `{self.table}` (id, user_id, display_name, avatar_url, created_at, updated_at)
            VALUES (%(id)s, %(user_id)s, %(display_name)s, %(avatar_url)s, %(created_at)s, %(updated_at)s)
            """,
            row
        )
        logger.info("Created profile for user %s", user_id)
        return record

    def update(
        self,
        auth_uid: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None
    ) -> int:
        """Update the caller's own profile; ``updated_at`` is set by trigger."""
        predicate, params = policies.scope(self.table, "UPDATE", auth_uid)
        return self.rds_client.execute_update(
            f"""
            UPDATE `{self.table}`
            SET display_name = %(display_name)s, avatar_url = %(avatar_url)s
            WHERE user_id = %(user_id)s AND ({predicate})
            """,
            {**params, "display_name": display_name, "avatar_url": avatar_url, "user_id": auth_uid}
        )
