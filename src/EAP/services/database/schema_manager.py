"""
Schema management for the platform's MySQL tables.

Applies the bundled SQL migrations (tables, foreign keys, triggers) to the
configured database. Safe to run repeatedly: tables use
``CREATE TABLE IF NOT EXISTS`` and triggers are only created when missing.

Usage:
    $ eap-migrate
"""

import re
import sys
from importlib import resources
from typing import List, Optional

from EAP.core.exceptions import AnalyticsPlatformError
from EAP.core.logging_config import get_logger, setup_root_logger
from EAP.services.database.client import RDSClient

logger = get_logger(__name__)

MIGRATIONS_PACKAGE = "EAP.services.database.migrations"

_TRIGGER_NAME = re.compile(r"^CREATE\s+TRIGGER\s+`?(\w+)`?", re.IGNORECASE)


def split_statements(sql: str) -> List[str]:
    """
    Split a migration script into individual statements.

    Comment lines are dropped; statements end with ``;`` at end of line.
    """
    statements = []
    current: List[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        current.append(line.rstrip())
        if stripped.endswith(";"):
            statements.append("\n".join(current).rstrip(";").strip())
            current = []
    if current:
        statements.append("\n".join(current).strip())
    return statements


def load_migrations() -> List[tuple]:
    """Return (name, sql) pairs for bundled migrations in filename order."""
    files = sorted(
        (entry for entry in resources.files(MIGRATIONS_PACKAGE).iterdir() if entry.name.endswith(".sql")),
        key=lambda entry: entry.name
    )
    return [(entry.name, entry.read_text(encoding="utf-8")) for entry in files]


class SchemaManager:
    """Applies migrations through an RDSClient."""

    def __init__(self, rds_client: Optional[RDSClient] = None):
        self.rds_client = rds_client or RDSClient()

    def pending_statements(self, sql: str) -> List[str]:
        """Statements of ``sql`` that still need to run."""
        pending = []
        for statement in split_statements(sql):
            match = _TRIGGER_NAME.match(statement)
            if match and self.rds_client.trigger_exists(match.group(1)):
                logger.info("Trigger '%s' already exists", match.group(1))
                continue
            pending.append(statement)
        return pending

    def ensure_schema(self) -> int:
        """
        Bring the database up to the bundled schema.

        Returns:
            int: Number of statements executed
        """
        executed = 0
        for name, sql in load_migrations():
            statements = self.pending_statements(sql)
            logger.info("Applying %s (%d statement(s))", name, len(statements))
            self.rds_client.execute_statements(statements)
            executed += len(statements)

        logger.info("Schema is up to date (%d statement(s) executed)", executed)
        return executed


def main():
    """Console entry point: apply migrations and create the bucket."""
    from EAP.core.settings import settings
    from EAP.services.storage.s3_client import S3Client

    setup_root_logger()
    try:
        SchemaManager().ensure_schema()
        S3Client(settings.s3_bucket_files, settings.s3_prefix_files).ensure_bucket()
    except AnalyticsPlatformError as e:
        logger.error("Provisioning failed: %s", e.message, extra={"details": e.details})
        sys.exit(1)


if __name__ == "__main__":
    main()
