"""
Driver base interfaces for sqlshim.

This module defines the contract that all database drivers
(MySQL, PostgreSQL, SQLite3) must satisfy, plus the bookkeeping they all
share:

- query counter and optional per-query timing log
- transaction depth counter
- the most recent cursor and SQL text (for error() and insert_id())
- rollback of an open transaction when a statement fails

Concrete drivers only supply the native pieces:

    _execute(sql, unbuffered) -> native cursor   (raises native errors)
    _record_error(exc)                            (fills error_no / error_msg)
    native_errors                                 (tuple of exception classes)

and the operations whose semantics genuinely differ per backend
(result, num_rows, insert_id, escape, close, ...).

This file provides:
- DBDriver: abstract base class
- DriverLike: structural protocol
- ensure_driver: runtime validator
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from . import helpers
from .result import Result
from ..errors import QueryTooLongError

logger = logging.getLogger(__name__)


MAX_QUERY_LENGTH = 140_000

SavedQuery = Tuple[str, float]


# ---------------------------------------------------------------------------
# Abstract Base Driver
# ---------------------------------------------------------------------------

class DBDriver(ABC):
    """
    Abstract base class for a sqlshim driver.

    Concrete subclasses open their native link in __init__ and raise
    ConfigurationError / ConnectError when that is impossible.

    Class attributes
    ----------------
    backend:
        Result tag for this driver ("mysql", "pgsql", "sqlite3").
    product_name:
        Name reported by get_version().
    begin_sql:
        Statement that opens a transaction.
    native_errors:
        Exceptions from the native client that mean "statement failed".
    """

    backend: str = ""
    product_name: str = ""
    begin_sql: str = "BEGIN"
    native_errors: Tuple[type, ...] = ()

    def __init__(self, *, debug: bool = False):
        self.debug = debug

        self.saved_queries: List[SavedQuery] = []
        self.num_queries = 0
        self.in_transaction = 0

        self.query_result: Optional[Any] = None
        self.last_query = ""
        # Survives free_result(), unlike query_result.
        self.last_succeeded = False

        self.error_no = 0
        self.error_msg = "Unknown"

    # ------------------------------------------------------------------
    # Native hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _execute(self, sql: str, unbuffered: bool) -> Any:
        """
        Run one statement and return the native cursor.

        Must raise one of `native_errors` when the backend rejects it.
        """
        raise NotImplementedError

    def _record_error(self, exc: BaseException) -> None:
        """Remember code / message of a failed statement. Override per backend."""
        self.error_no = 0
        self.error_msg = str(exc) or "Unknown"

    def prepare_sql(self, sql: str) -> str:
        """Rewrite SQL text before execution. Default: unchanged."""
        return sql

    def _wrap(self, cursor: Any) -> Result:
        return Result(True, **{self.backend: cursor})

    def _run_quietly(self, sql: str) -> bool:
        """
        Execute a control statement (BEGIN / COMMIT / ROLLBACK).

        Control statements are not counted, logged or remembered as the
        last query.
        """
        try:
            cursor = self._execute(sql, False)
        except self.native_errors as e:
            logger.debug("%s failed on %s: %s", sql, self.backend, e)
            return False

        try:
            cursor.close()
        except Exception:
            logger.debug("Ignoring error while closing %s cursor", sql, exc_info=True)
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def start_transaction(self) -> bool:
        """
        Begin a transaction.

        Nesting is counted but not enforced with savepoints; the return
        value only says whether the BEGIN statement itself succeeded.
        """
        self.in_transaction += 1
        return self._run_quietly(self.begin_sql)

    def end_transaction(self) -> bool:
        """
        Commit; on failure roll back and return False.

        The depth counter always goes down by one (never below zero).
        """
        self.in_transaction = max(self.in_transaction - 1, 0)

        if self._run_quietly("COMMIT"):
            return True

        logger.warning("COMMIT failed on %s; rolling back", self.backend)
        self._run_quietly("ROLLBACK")
        return False

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def query(self, sql: str, unbuffered: bool = False) -> Result:
        """
        Execute a single SQL statement.

        Returns
        -------
        Result
            Valid unless the backend reported a fatal error. On failure
            error() describes what went wrong, and an open transaction has
            been rolled back.

        Raises
        ------
        QueryTooLongError
            If the statement is longer than MAX_QUERY_LENGTH characters.
        """
        if len(sql) > MAX_QUERY_LENGTH:
            raise QueryTooLongError(len(sql), MAX_QUERY_LENGTH)

        sql = self.prepare_sql(sql)
        q_start = time.perf_counter()

        try:
            cursor = self._execute(sql, unbuffered)
        except self.native_errors as e:
            if self.debug:
                self.saved_queries.append((sql, 0))

            self.last_query = sql
            self.query_result = None
            self.last_succeeded = False
            self._record_error(e)
            logger.warning("Query failed on %s: %s | SQL: %.200s", self.backend, self.error_msg, sql)

            if self.in_transaction:
                self._run_quietly("ROLLBACK")
                self.in_transaction -= 1

            return Result(False)

        elapsed = time.perf_counter() - q_start
        if self.debug:
            self.saved_queries.append((sql, round(elapsed, 5)))
        logger.debug("%s query took %.5fs: %.200s", self.backend, elapsed, sql)

        self.last_query = sql
        self.query_result = cursor
        self.last_succeeded = True
        self.num_queries += 1

        return self._wrap(cursor)

    def result(self, query_id: Result, row: int = 0, col: int = 0) -> Any:
        """
        Fetch one cell.

        row=0 takes the next row in cursor order; a non-zero row seeks to
        that absolute offset first. Returns False on an invalid handle or
        when the row / column does not exist.
        """
        cursor = self._cursor(query_id)
        if cursor is None:
            return False

        try:
            if row:
                cursor.scroll(row, mode="absolute")
            cur_row = self._fetchone(cursor)
        except (IndexError, *self.native_errors):
            return False

        return _cell(cur_row, col)

    def fetch_assoc(self, query_id: Result) -> Optional[Dict[str, Any]] | bool:
        """Next row as {column: value}; None when exhausted, False if invalid."""
        cursor = self._cursor(query_id)
        if cursor is None:
            return False
        return helpers.row_to_dict(helpers.column_names(cursor), self._fetchone(cursor))

    def fetch_row(self, query_id: Result) -> Optional[List[Any]] | bool:
        """Next row as a list; None when exhausted, False if invalid."""
        cursor = self._cursor(query_id)
        if cursor is None:
            return False
        return helpers.row_to_list(self._fetchone(cursor))

    @abstractmethod
    def num_rows(self, query_id: Result) -> int | bool:
        raise NotImplementedError

    @abstractmethod
    def affected_rows(self) -> int | bool:
        raise NotImplementedError

    @abstractmethod
    def insert_id(self) -> int | bool:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def get_num_queries(self) -> int:
        return self.num_queries

    def get_saved_queries(self) -> List[SavedQuery]:
        return list(self.saved_queries)

    def free_result(self, query_id: Result) -> None:
        """Release the handle's cursor. Freeing twice is a no-op."""
        if query_id.native is not None and query_id.native is self.query_result:
            self.query_result = None
        query_id.free()

    def error(self) -> Dict[str, Any]:
        return {
            "error_sql": self.last_query,
            "error_no": self.error_no,
            "error_msg": self.error_msg,
        }

    # ------------------------------------------------------------------
    # Connection-level operations
    # ------------------------------------------------------------------

    @abstractmethod
    def escape(self, text: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def set_names(self, names: str) -> Result:
        raise NotImplementedError

    @abstractmethod
    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_version(self) -> Dict[str, str]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _cursor(self, query_id: Result) -> Optional[Any]:
        # Invalid and already-freed handles both yield None.
        if not query_id.is_valid():
            return None
        return query_id.native

    def _fetchone(self, cursor: Any) -> Optional[Any]:
        # Statements without a result set (INSERT, CREATE, ...) have no
        # description; DB-API cursors raise on fetch in that case.
        if cursor.description is None:
            return None
        return cursor.fetchone()

    def _free_current(self) -> None:
        cursor, self.query_result = self.query_result, None
        if cursor is None:
            return
        try:
            cursor.close()
        except Exception:
            logger.debug("Ignoring error while freeing the current %s cursor", self.backend, exc_info=True)

    def _commit_open_transaction(self) -> None:
        """Commit a still-open transaction before the link goes away."""
        if not self.in_transaction:
            return
        if self.debug:
            self.saved_queries.append(("COMMIT", 0))
        self._run_quietly("COMMIT")
        self.in_transaction = 0


def _cell(row: Optional[Any], col: int) -> Any:
    if row is None:
        return False
    try:
        return row[col]
    except IndexError:
        return False


# ---------------------------------------------------------------------------
# Structural Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class DriverLike(Protocol):
    """
    Structural protocol for objects usable as a sqlshim driver.

    The Database facade forwards every public call to such an object
    without knowing the concrete implementation.
    """

    def start_transaction(self) -> bool: ...
    def end_transaction(self) -> bool: ...
    def query(self, sql: str, unbuffered: bool = False) -> Result: ...
    def result(self, query_id: Result, row: int = 0, col: int = 0) -> Any: ...
    def fetch_assoc(self, query_id: Result) -> Any: ...
    def fetch_row(self, query_id: Result) -> Any: ...
    def num_rows(self, query_id: Result) -> Any: ...
    def affected_rows(self) -> Any: ...
    def insert_id(self) -> Any: ...
    def get_num_queries(self) -> int: ...
    def get_saved_queries(self) -> List[SavedQuery]: ...
    def free_result(self, query_id: Result) -> None: ...
    def escape(self, text: str) -> str: ...
    def error(self) -> Dict[str, Any]: ...
    def close(self) -> bool: ...
    def set_names(self, names: str) -> Result: ...
    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool: ...
    def get_version(self) -> Dict[str, str]: ...


DRIVER_OPERATIONS = (
    "start_transaction", "end_transaction", "query", "result",
    "fetch_assoc", "fetch_row", "num_rows", "affected_rows", "insert_id",
    "get_num_queries", "get_saved_queries", "free_result", "escape",
    "error", "close", "set_names", "set_charset", "get_version",
)


# ---------------------------------------------------------------------------
# Runtime Guard
# ---------------------------------------------------------------------------

def ensure_driver(driver: Any) -> DriverLike:
    """
    Validate that an object behaves like a sqlshim driver.

    First, try an isinstance check against DriverLike.
    If that fails, fall back to manual attribute inspection so the error
    message names what is missing.

    Raises:
        TypeError if required operations are missing.
    """
    if not isinstance(driver, DriverLike):
        missing = [
            name for name in DRIVER_OPERATIONS
            if not callable(getattr(driver, name, None))
        ]

        if missing:
            raise TypeError(
                f"Invalid sqlshim driver {driver!r}: missing operations {missing}"
            )

    return driver  # type: ignore[return-value]


__all__ = [
    "DBDriver",
    "DriverLike",
    "ensure_driver",
    "MAX_QUERY_LENGTH",
    "DRIVER_OPERATIONS",
]
