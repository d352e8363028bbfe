"""
DuckDB connection and schema management for photovault.
"""

import threading
from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import IMAGE_COLUMNS, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)

IN_MEMORY = ":memory:"


class DatabaseManager:
    """
    Owns a single DuckDB connection.

    DuckDB connections are not safe to share between threads, so every
    statement goes through ``execute_query`` which serializes access with a
    lock.
    """

    def __init__(self, db_path: str = IN_MEMORY):
        """
        Initialize DatabaseManager.

        Args:
            db_path: Path to the DuckDB database file, or ``:memory:``
        """
        self.db_path = db_path
        self._connection: duckdb.DuckDBPyConnection | None = None
        self._lock = threading.Lock()

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Get or create the database connection."""
        if self._connection is None:
            if self.db_path != IN_MEMORY:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = duckdb.connect(self.db_path)
            logger.info("database_connected", db_path=self.db_path)
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("database_closed", db_path=self.db_path)

    def initialize_schema(self) -> None:
        """
        Create tables and indexes if they don't exist.

        Raises:
            RuntimeError: If the schema definition does not match ImageRecord
            duckdb.Error: If database operations fail
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is not compatible with ImageRecord model")

        for statement in get_schema_statements():
            self.execute_query(statement)
        logger.info("database_schema_initialized", db_path=self.db_path)

    def verify_schema(self) -> bool:
        """
        Verify that the images table exists with every required column.

        Returns:
            True if schema is valid, False otherwise
        """
        try:
            columns = self.execute_query("PRAGMA table_info('images')")
        except duckdb.Error as e:
            logger.warning("schema_verification_failed", error=str(e))
            return False

        column_names = {col[1] for col in columns}
        missing = set(IMAGE_COLUMNS) - column_names
        if missing:
            logger.warning("schema_columns_missing", missing_columns=sorted(missing))
            return False
        return True

    def execute_query(self, query: str, parameters: tuple | list | None = None) -> list[tuple[Any, ...]]:
        """
        Execute a SQL statement and return all result rows.

        Raises:
            duckdb.Error: If query execution fails
        """
        with self._lock:
            conn = self.connect()
            if parameters:
                result = conn.execute(query, parameters)
            else:
                result = conn.execute(query)
            try:
                return result.fetchall()
            except duckdb.InvalidInputError:
                # DDL statements produce no result set
                return []

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def create_database(db_path: str = IN_MEMORY) -> DatabaseManager:
    """
    Open (creating if needed) a database and make sure the schema is in place.

    Raises:
        RuntimeError: If the schema cannot be created or verified
    """
    db_manager = DatabaseManager(db_path)
    try:
        db_manager.initialize_schema()
    except duckdb.Error as e:
        db_manager.close()
        raise RuntimeError(f"Database creation failed: {e}") from e

    if not db_manager.verify_schema():
        db_manager.close()
        raise RuntimeError("Schema verification failed after creation")

    return db_manager
