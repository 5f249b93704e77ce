"""
Row-level security policies for tables and storage objects.

The managed MySQL instance has no native row-level security, so owner
scoping is declared here as data and applied by the repositories: every
statement issued on behalf of a signed-in user is narrowed with the SQL
predicate of the policy that grants the command, and inserts are checked
against the policy's owner column before they reach the database.

A table/command pair with no policy is denied, matching how a table with
row-level security enabled behaves when no policy grants access.

Module Input:
    - Table name, command and caller id from repositories
    - Bucket name and object key from the storage client

Module Output:
    - SQL predicate fragments with an ``auth_uid`` named parameter
    - AccessDeniedError for denied commands and failed checks
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from EAP.core.exceptions import AccessDeniedError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings

logger = get_logger(__name__)

COMMANDS = ("SELECT", "INSERT", "UPDATE", "DELETE")


class RowPolicy(BaseModel):
    """
    One row-level policy.

    ``owner_column`` set means the policy only admits rows whose owner column
    equals the caller id. ``owner_column`` unset means the policy admits every
    row (``USING (true)``).
    """

    name: str
    table: str
    command: str
    owner_column: Optional[str] = "user_id"

    def predicate(self) -> str:
        """SQL condition for rows the caller may see or touch."""
        if self.owner_column is None:
            return "TRUE"
        return f"`{self.owner_column}` = %(auth_uid)s"

    def check(self, row: Dict[str, Any], auth_uid: str) -> bool:
        """Evaluate the policy against a row about to be written."""
        if self.owner_column is None:
            return True
        return str(row.get(self.owner_column)) == str(auth_uid)


class StoragePolicy(BaseModel):
    """Object policy: the first folder of the key must be the caller id."""

    name: str
    bucket: str
    command: str

    def check(self, key: str, auth_uid: str) -> bool:
        folders = key.split("/")[:-1]
        return bool(folders) and folders[0] == str(auth_uid)


TABLE_POLICIES: List[RowPolicy] = [
    RowPolicy(name="Users can view all profiles", table="profiles", command="SELECT", owner_column=None),
    RowPolicy(name="Users can update their own profile", table="profiles", command="UPDATE"),
    RowPolicy(name="Users can insert their own profile", table="profiles", command="INSERT"),

    RowPolicy(name="Users can view their own files", table="excel_files", command="SELECT"),
    RowPolicy(name="Users can upload their own files", table="excel_files", command="INSERT"),
    RowPolicy(name="Users can update their own files", table="excel_files", command="UPDATE"),
    RowPolicy(name="Users can delete their own files", table="excel_files", command="DELETE"),

    RowPolicy(name="Users can view their own analytics", table="analytics_data", command="SELECT"),
    RowPolicy(name="Users can create their own analytics", table="analytics_data", command="INSERT"),
    RowPolicy(name="Users can refresh their own analytics", table="analytics_data", command="UPDATE"),
]

STORAGE_POLICIES: List[StoragePolicy] = [
    StoragePolicy(name="Users can view their own files", bucket=settings.s3_bucket_files, command="SELECT"),
    StoragePolicy(name="Users can upload their own files", bucket=settings.s3_bucket_files, command="INSERT"),
    StoragePolicy(name="Users can update their own files", bucket=settings.s3_bucket_files, command="UPDATE"),
    StoragePolicy(name="Users can delete their own files", bucket=settings.s3_bucket_files, command="DELETE"),
]


def _normalize_command(command: str) -> str:
    cmd = command.strip().upper()
    if cmd not in COMMANDS:
        raise ValueError(f"Unknown command: {command}")
    return cmd


def get_policy(table: str, command: str) -> RowPolicy:
    """
    Find the policy granting ``command`` on ``table``.

    Raises:
        AccessDeniedError: If no policy grants the command
    """
    cmd = _normalize_command(command)
    for policy in TABLE_POLICIES:
        if policy.table == table and policy.command == cmd:
            return policy

    logger.warning("No policy grants %s on %s", cmd, table)
    raise AccessDeniedError(
        f"Permission denied for {cmd} on table {table}",
        details={"table": table, "command": cmd}
    )


def scope(table: str, command: str, auth_uid: str) -> Tuple[str, Dict[str, Any]]:
    """
    Return the predicate and parameters narrowing a statement to the caller.

    Example:
        >>> scope("excel_files", "select", "u-1")
        ('`user_id` = %(auth_uid)s', {'auth_uid': 'u-1'})
    """
    policy = get_policy(table, command)
    return policy.predicate(), {"auth_uid": auth_uid}


def check_row(table: str, command: str, row: Dict[str, Any], auth_uid: str) -> None:
    """
    Apply the WITH CHECK side of a policy to a row about to be written.

    Raises:
        AccessDeniedError: If the row violates the policy
    """
    policy = get_policy(table, command)
    if not policy.check(row, auth_uid):
        logger.warning("Row rejected by policy '%s' on %s", policy.name, table)
        raise AccessDeniedError(
            f"New row violates row-level security policy for table {table}",
            details={"policy": policy.name, "table": table}
        )


def check_object(bucket: str, command: str, key: str, auth_uid: str) -> None:
    """
    Authorize a storage call on ``key`` in ``bucket``.

    Raises:
        AccessDeniedError: If no policy covers the bucket/command or the key
            lies outside the caller's folder
    """
    cmd = _normalize_command(command)
    for policy in STORAGE_POLICIES:
        if policy.bucket == bucket and policy.command == cmd:
            if policy.check(key, auth_uid):
                return
            logger.warning("Object '%s' rejected by policy '%s'", key, policy.name)
            raise AccessDeniedError(
                "Object is outside the caller's folder",
                details={"policy": policy.name, "bucket": bucket, "key": key}
            )

    raise AccessDeniedError(
        f"Permission denied for {cmd} on bucket {bucket}",
        details={"bucket": bucket, "command": cmd}
    )
