"""
MySQL RDS client with connection pooling.

This module provides the RDSClient class for managing MySQL database
connections and executing DDL (schema) and DML (data) statements with
proper error handling and connection reuse.

Module Input:
    - Database credentials from settings
    - SQL statements and parameters

Module Output:
    - Query results as lists of dicts
    - Affected row counts
"""

import pymysql
from pymysql.cursors import DictCursor
from contextlib import contextmanager
from typing import List, Dict, Any, Optional, Union, Sequence
from threading import Lock

from EAP.core.exceptions import DatabaseError, ConfigError
from EAP.core.logging_config import get_logger
from EAP.core.settings import settings

logger = get_logger(__name__)

Params = Optional[Union[Sequence[Any], Dict[str, Any]]]


class RDSClient:
    """
    MySQL RDS client with connection pooling.

    Attributes:
        host (str): RDS endpoint hostname
        port (int): MySQL port
        database (str): Database name
        user (str): Database user
        _pool (List): Idle connections ready for reuse
        _pool_lock (Lock): Thread-safe pool access
        _pool_size (int): Maximum idle pool size

    Thread Safety:
        Thread-safe for all operations via connection pooling and locking.
        Streamlit runs each browser session on its own thread.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        pool_size: Optional[int] = None,
        verify: bool = True
    ):
        """
        Initialize RDS client with connection parameters.

        Defaults to settings values if parameters not provided.

        Args:
            host (Optional[str]): RDS endpoint (default: from settings)
            port (Optional[int]): MySQL port (default: from settings)
            database (Optional[str]): Database name (default: from settings)
            user (Optional[str]): Database user (default: from settings)
            password (Optional[str]): Database password (default: from settings)
            pool_size (Optional[int]): Connection pool size (default: from settings)
            verify (bool): Open and close one connection to fail fast

        Raises:
            ConfigError: If required connection parameters are missing
            DatabaseError: If initial connection test fails
        """
        config = settings.get_database_config()
        self.host = host or config["host"]
        self.port = port or config["port"]
        self.database = database or config["database"]
        self.user = user or config["user"]
        self._password = password if password is not None else config["password"]
        self._charset = config["charset"]
        self._pool_size = pool_size or settings.rds_pool_size

        if not all([self.host, self.database, self.user]):
            raise ConfigError(
                "Missing required database connection parameters",
                details={
                    "host": bool(self.host),
                    "database": bool(self.database),
                    "user": bool(self.user)
                }
            )

        self._pool: List[pymysql.connections.Connection] = []
        self._pool_lock = Lock()

        if verify:
            conn = self._create_connection()
            conn.close()
        logger.info(
            f"RDS client initialized: {self.user}@{self.host}:{self.port}/{self.database}"
        )

    def _create_connection(self) -> pymysql.connections.Connection:
        """
        Create new MySQL connection.

        Raises:
            DatabaseError: If connection creation fails
        """
        try:
            return pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self._password,
                database=self.database,
                charset=self._charset,
                cursorclass=DictCursor,
                autocommit=False,
                connect_timeout=10,
                read_timeout=30,
                write_timeout=30
            )
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Failed to connect to RDS: {str(e)}",
                details={"host": self.host, "port": self.port, "database": self.database}
            )

    @contextmanager
    def get_connection(self):
        """
        Get connection from pool with automatic return.

        Example:
            >>> with client.get_connection() as conn:
            ...     with conn.cursor() as cursor:
            ...         cursor.execute("SELECT 1")
        """
        conn = None
        with self._pool_lock:
            if self._pool:
                conn = self._pool.pop()

        if conn is None or not conn.open:
            conn = self._create_connection()

        try:
            yield conn
        except Exception:
            if conn.open:
                conn.rollback()
                conn.close()
            raise

        with self._pool_lock:
            if len(self._pool) < self._pool_size and conn.open:
                self._pool.append(conn)
            else:
                conn.close()

    def execute_query(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """
        Execute SELECT query and return results.

        Args:
            query (str): SQL SELECT query
            params: Positional tuple or named dict for safe substitution

        Returns:
            List[Dict[str, Any]]: Query results as list of dicts

        Raises:
            DatabaseError: If query execution fails
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    results = list(cursor.fetchall())
                conn.commit()
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Query execution failed: {e.args[-1] if e.args else e}",
                details={"query": query[:200]}
            )

        logger.debug(f"Query returned {len(results)} rows: {query[:100]}...")
        return results

    def execute_update(self, query: str, params: Params = None) -> int:
        """
        Execute INSERT/UPDATE/DELETE statement and commit.

        Returns:
            int: Number of affected rows

        Raises:
            DatabaseError: If execution fails
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    affected_rows = cursor.rowcount
                conn.commit()
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Update execution failed: {e.args[-1] if e.args else e}",
                details={"query": query[:200]}
            )

        logger.debug(f"Updated {affected_rows} rows: {query[:100]}...")
        return affected_rows

    def execute_statements(self, statements: List[str]) -> None:
        """
        Run DDL statements in order on one connection.

        Raises:
            DatabaseError: If any statement fails
        """
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    for statement in statements:
                        cursor.execute(statement)
                conn.commit()
        except pymysql.MySQLError as e:
            raise DatabaseError(
                f"Schema statement failed: {e.args[-1] if e.args else e}",
                details={"statements": len(statements)}
            )

    def trigger_exists(self, trigger_name: str) -> bool:
        """Check if trigger exists in database."""
        result = self.execute_query(
            """
            SELECT COUNT(*) AS count
            FROM information_schema.triggers
            WHERE trigger_schema = %s AND trigger_name = %s
            """,
            (self.database, trigger_name)
        )
        return result[0]["count"] > 0

    def ping(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            self.execute_query("SELECT 1 AS ok")
            return True
        except DatabaseError as e:
            logger.warning(f"Database ping failed: {e.message}")
            return False
