"""
SQLite3 driver for sqlshim.

Used for:
    - local development
    - tests
    - small single-process deployments

The database "name" is a file path. Host, username and the persistent
flag have no meaning for SQLite and are ignored.

Backend specifics handled here:
    - ".sqlite3" suffix and on-demand file creation
    - column names lose their "table." / "alias." prefix in fetch_assoc()
    - num_rows() is not supported (always False)
    - result(row=N) buffers the remaining rows to reach offset N
    - no character-set control
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import sqlite3
from typing import Any, Dict, Optional

from . import helpers
from .backend_base import DBDriver
from .result import Result
from ..errors import ConnectError

logger = logging.getLogger(__name__)


SUFFIX = ".sqlite3"


def resolve_db_path(name: str) -> Path:
    """
    Apply the ".sqlite3" suffix rule.

    Example:
        "data/forum"          -> "data/forum.sqlite3"
        "data/forum.SQLite3"  -> unchanged
    """
    if not name.lower().endswith(SUFFIX):
        name += SUFFIX
    return Path(name)


class SQLiteDriver(DBDriver):
    """
    SQLite3 driver.

    Parameters
    ----------
    host, username : str
        Ignored.
    password : str
        Encryption key in SQLite builds that support it. The stdlib
        sqlite3 module has no such support, so it is ignored.
    name : str
        Path to the database file.
    persistent : bool
        Ignored.
    debug : bool
        Keep a (sql, seconds) log of every statement.
    """

    backend = "sqlite3"
    product_name = "SQLite3"
    begin_sql = "BEGIN TRANSACTION"
    native_errors = (sqlite3.Error, sqlite3.Warning)

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        name: str,
        persistent: bool = False,
        *,
        debug: bool = False,
    ):
        super().__init__(debug=debug)

        if password:
            logger.debug("SQLite encryption keys are not supported; ignoring password")

        self.path = resolve_db_path(name)
        self._ensure_file()

        uri = f"{self.path.resolve().as_uri()}?mode=rw"
        try:
            self.link_id: Optional[sqlite3.Connection] = sqlite3.connect(
                uri, uri=True, isolation_level=None
            )
        except sqlite3.Error as e:
            raise ConnectError(f"Unable to open database '{self.path}': {e}") from e

        logger.info("Opened SQLite database %s", self.path)

    def _ensure_file(self) -> None:
        """
        Create the database file if missing, then check it is usable.

        Raises
        ------
        ConnectError
            If the file cannot be created or is not readable and writable.
        """
        path = self.path
        if not path.exists():
            try:
                path.touch()
                os.chmod(path, 0o666)
            except OSError as e:
                raise ConnectError(
                    f"Unable to create new database '{path}'. Permission denied."
                ) from e

        if not os.access(path, os.R_OK):
            raise ConnectError(f"Unable to open database '{path}' for reading. Permission denied.")

        if not os.access(path, os.W_OK):
            raise ConnectError(f"Unable to open database '{path}' for writing. Permission denied.")

    # ------------------------------------------------------------------
    # Native hooks
    # ------------------------------------------------------------------

    def _execute(self, sql: str, unbuffered: bool) -> Any:
        cursor = self.link_id.cursor()
        try:
            cursor.execute(sql)
        except Exception:
            cursor.close()
            raise
        return cursor

    def _record_error(self, exc: BaseException) -> None:
        # sqlite_errorcode is only present on Python 3.11+.
        self.error_no = getattr(exc, "sqlite_errorcode", 0) or 0
        self.error_msg = str(exc) or "Unknown"

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def result(self, query_id: Result, row: int = 0, col: int = 0) -> Any:
        """
        Fetch one cell.

        Unlike the server backends, a non-zero `row` is an offset into the
        rows not yet fetched: they are all read into memory first.
        """
        cursor = self._cursor(query_id)
        if cursor is None:
            return False

        if row:
            remaining = cursor.fetchall() if cursor.description is not None else []
            cur_row = remaining[row] if row < len(remaining) else None
        else:
            cur_row = self._fetchone(cursor)

        if cur_row is None or col >= len(cur_row):
            return False
        return cur_row[col]

    def fetch_assoc(self, query_id: Result) -> Optional[Dict[str, Any]] | bool:
        row = super().fetch_assoc(query_id)
        if not row:
            return row
        return helpers.strip_table_prefix(row)

    def num_rows(self, query_id: Result) -> int | bool:
        # SQLite cannot count a result set without consuming it.
        return False

    def affected_rows(self) -> int | bool:
        if not self.last_succeeded:
            return False
        return self._scalar("SELECT changes()")

    def insert_id(self) -> int | bool:
        if not self.link_id:
            return False
        return self._scalar("SELECT last_insert_rowid()")

    def _scalar(self, sql: str) -> Any:
        cursor = self.link_id.execute(sql)
        try:
            return cursor.fetchone()[0]
        finally:
            cursor.close()

    # ------------------------------------------------------------------
    # Connection-level operations
    # ------------------------------------------------------------------

    def escape(self, text: str) -> str:
        # NUL cannot appear inside a statement, so splice it in with char(0).
        return text.replace("'", "''").replace("\x00", "' || char(0) || '")

    def close(self) -> bool:
        if not self.link_id:
            return False

        self._commit_open_transaction()
        self._free_current()
        link, self.link_id = self.link_id, None

        try:
            link.close()
        except sqlite3.Error:
            return False
        return True

    def set_names(self, names: str) -> Result:
        return Result(False)

    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool:
        return False

    def get_version(self) -> Dict[str, str]:
        return {
            "name": self.product_name,
            "version": sqlite3.sqlite_version,
        }


__all__ = ["SQLiteDriver", "resolve_db_path"]
