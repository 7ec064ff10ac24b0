"""
MySQL / MariaDB driver for sqlshim.

Backed by PyMySQL. The link runs in autocommit mode so that transactions
are controlled explicitly with START TRANSACTION / COMMIT / ROLLBACK,
exactly like every other driver.

Backend specifics handled here:
    - "host:port" selects a custom port
    - persistent=True reuses a process-wide link (see connection.py)
    - unbuffered=True streams rows with an SSCursor
    - real set_names() / set_charset() support
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

try:
    import pymysql  # type: ignore
    import pymysql.cursors  # type: ignore
except ImportError:
    pymysql = None

from . import helpers
from .backend_base import DBDriver
from .connection import persistent_links
from .result import Result
from ..errors import ConfigurationError, ConnectError

logger = logging.getLogger(__name__)


class MySQLDriver(DBDriver):
    """
    MySQL driver.

    Parameters
    ----------
    host : str
        Server host, optionally "host:port".
    username, password : str
        Credentials.
    name : str
        Database to select.
    persistent : bool
        Reuse an idle link opened earlier with the same parameters.
    debug : bool
        Keep a (sql, seconds) log of every statement.
    """

    backend = "mysql"
    product_name = "MySQL"
    begin_sql = "START TRANSACTION"

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
        if pymysql is None:
            raise ConfigurationError(
                "PyMySQL is not installed. It is required to use a MySQL or "
                "MariaDB database (pip install PyMySQL)."
            )

        super().__init__(debug=debug)
        self.native_errors = (pymysql.err.Error,)
        self.persistent = persistent

        try:
            host, port = helpers.split_host_port(host)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self._link_key = (
            self.backend, host, port, name, username,
            hashlib.sha256(password.encode("utf-8")).hexdigest(),
        )

        def open_link():
            kwargs: Dict[str, Any] = {
                "host": host or "localhost",
                "user": username,
                "password": password,
                "database": name or None,
                "autocommit": True,
            }
            if port is not None:
                kwargs["port"] = port
            return pymysql.connect(**kwargs)

        try:
            if persistent:
                self.link_id = persistent_links.acquire(
                    self._link_key, open_link, _link_alive
                )
            else:
                self.link_id = open_link()
        except pymysql.err.Error as e:
            raise ConnectError(
                f"Unable to connect to MySQL and select database {name!r} "
                f"on {host or 'localhost'}. MySQL reported: {e}"
            ) from e

        logger.info("Connected to MySQL at %s (database %r)", host or "localhost", name)

    # ------------------------------------------------------------------
    # Native hooks
    # ------------------------------------------------------------------

    def _execute(self, sql: str, unbuffered: bool) -> Any:
        cursor_class = pymysql.cursors.SSCursor if unbuffered else pymysql.cursors.Cursor
        cursor = self.link_id.cursor(cursor_class)
        try:
            cursor.execute(sql)
        except Exception:
            cursor.close()
            raise
        return cursor

    def _record_error(self, exc: BaseException) -> None:
        # pymysql errors carry (errno, message) in args.
        args = getattr(exc, "args", ())
        if len(args) >= 2 and isinstance(args[0], int):
            self.error_no, self.error_msg = args[0], str(args[1]) or "Unknown"
        else:
            self.error_no, self.error_msg = 0, str(exc) or "Unknown"

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def num_rows(self, query_id: Result) -> int | bool:
        cursor = self._cursor(query_id)
        if cursor is None:
            return False
        count = cursor.rowcount
        # An unbuffered cursor does not know its size until fully read.
        if count is None or count < 0 or isinstance(cursor, pymysql.cursors.SSCursor):
            return False
        return count

    def affected_rows(self) -> int | bool:
        if not self.link_id:
            return False
        return self.link_id.affected_rows()

    def insert_id(self) -> int | bool:
        if not self.link_id:
            return False
        return self.link_id.insert_id()

    # ------------------------------------------------------------------
    # Connection-level operations
    # ------------------------------------------------------------------

    def escape(self, text: str) -> str:
        return self.link_id.escape_string(text)

    def close(self) -> bool:
        if not self.link_id:
            return False

        # A parked link must not carry uncommitted writes to its next user.
        if self.persistent and self.in_transaction:
            self._run_quietly("ROLLBACK")
            self.in_transaction = 0

        self._free_current()
        link, self.link_id = self.link_id, None

        if self.persistent and _link_alive(link):
            persistent_links.release(self._link_key, link)
            return True

        try:
            link.close()
        except pymysql.err.Error:
            return False
        return True

    def set_names(self, names: str) -> Result:
        return self.query(f"SET NAMES '{self.escape(names)}'")

    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool:
        try:
            self.link_id.set_character_set(charset, collation)
        except pymysql.err.Error as e:
            logger.warning("Unable to set MySQL character set %r: %s", charset, e)
            return False
        return True

    def get_version(self) -> Dict[str, str]:
        result = self.query("SELECT VERSION()")
        try:
            version = helpers.parse_mysql_version(self.result(result))
        finally:
            self.free_result(result)

        return {
            "name": self.product_name,
            "version": version,
        }


def _link_alive(link: Any) -> bool:
    if not getattr(link, "open", False):
        return False
    try:
        link.ping(reconnect=True)
    except Exception:
        return False
    return True


__all__ = ["MySQLDriver"]
