"""Query execution against the reporting database."""

from __future__ import annotations

import copy
import logging
import re
import sqlite3
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .errors import DatabaseError, UnsafeQueryError, ValidationError

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite:"

# Best-effort denylist, not a SQL parser.
DANGEROUS_PATTERNS = [
    re.compile(r";\s*(drop|delete|truncate|alter|create|insert|update)\s+", re.IGNORECASE),
    re.compile(r"union\s+select", re.IGNORECASE),
    re.compile(r"exec\s*\(", re.IGNORECASE),
    re.compile(r"script\s*>", re.IGNORECASE),
]

IDENTIFIER_PATTERN = re.compile(r"^\w+$")

SAMPLE_ROWS: List[Dict[str, Any]] = [
    {"id": 1, "name": "John Doe", "email": "john@example.com", "department": "Engineering", "salary": 75000, "hire_date": "2023-01-15"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com", "department": "Marketing", "salary": 65000, "hire_date": "2023-02-20"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com", "department": "Sales", "salary": 70000, "hire_date": "2023-03-10"},
    {"id": 4, "name": "Alice Brown", "email": "alice@example.com", "department": "HR", "salary": 60000, "hire_date": "2023-04-05"},
    {"id": 5, "name": "Charlie Wilson", "email": "charlie@example.com", "department": "Engineering", "salary": 80000, "hire_date": "2023-05-12"},
]


def sample_rows() -> List[Dict[str, Any]]:
    """Demonstration rows used when no database is available."""

    return copy.deepcopy(SAMPLE_ROWS)


def validate_query(sql: str) -> bool:
    """Return ``False`` when ``sql`` matches one of the dangerous patterns."""

    return not any(pattern.search(sql) for pattern in DANGEROUS_PATTERNS)


def ensure_safe_query(sql: str) -> None:
    if not sql.strip().lower().startswith("select"):
        raise UnsafeQueryError("Only SELECT queries are allowed")
    if not validate_query(sql):
        raise UnsafeQueryError("Query contains potentially dangerous patterns")


class QueryDatabase:
    """An explicitly opened connection to a SQLite database.

    Construct with a ``sqlite:<path>`` URL, call :meth:`open` (or use the
    instance as a context manager) and pass it to whatever needs to run
    queries.  :meth:`close` releases the connection.
    """

    def __init__(self, url: str) -> None:
        if not url or not url.startswith(SQLITE_PREFIX):
            raise DatabaseError(f"Unsupported database URL '{url}'; expected sqlite:<path>")
        self.url = url
        self.path = _sqlite_path(url)
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> "QueryDatabase":
        if self._connection is not None:
            return self
        try:
            connection = sqlite3.connect(self.path)
            connection.execute("SELECT 1")
        except sqlite3.Error as exc:
            logger.error("Database connection failed: %s", exc)
            raise DatabaseError(f"Database connection failed: {exc}") from exc
        self._connection = connection
        logger.info("SQLite database connected: %s", self.path)
        return self

    def close(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        finally:
            self._connection = None
        logger.info("Database connection closed")

    def __enter__(self) -> "QueryDatabase":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run ``sql`` with positional ``params`` and return one dict per row."""

        if self._connection is None:
            raise DatabaseError("Database not initialized; open the connection first")
        logger.info("Executing query: %s", sql[:100])
        try:
            cursor = self._connection.execute(sql, list(params))
            columns = [column[0] for column in cursor.description or ()]
            # object dtype keeps sqlite's ints as ints when a column holds NULLs
            frame = pd.DataFrame(cursor.fetchall(), columns=columns, dtype=object)
        except Exception as exc:
            logger.error("Query execution failed: %s", exc)
            raise DatabaseError(f"Database query failed: {exc}") from exc
        frame = frame.where(pd.notna(frame), None)
        return frame.to_dict(orient="records")

    def execute_safe(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a SELECT query after the denylist check."""

        ensure_safe_query(sql)
        return self.execute(sql, params)

    def schema(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        """List tables, or the columns of ``table``."""

        if table is None:
            return self.execute(
                "SELECT name AS table_name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
        if not IDENTIFIER_PATTERN.match(table):
            raise ValidationError(f"Invalid table name '{table}'")
        return self.execute(
            "SELECT name AS column_name, type AS data_type, "
            "CASE WHEN \"notnull\" THEN 'NO' ELSE 'YES' END AS is_nullable "
            "FROM pragma_table_info(?)",
            [table],
        )


def _sqlite_path(url: str) -> str:
    path = url[len(SQLITE_PREFIX):]
    if path.startswith("///"):
        path = path[2:]
    elif path.startswith("//"):
        path = path[2:]
    if not path:
        raise DatabaseError("SQLite URL must include a database path")
    return path


__all__ = [
    "QueryDatabase",
    "SAMPLE_ROWS",
    "ensure_safe_query",
    "sample_rows",
    "validate_query",
]
