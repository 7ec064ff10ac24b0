"""
PostgreSQL driver for sqlshim.

Backed by psycopg2. Like the MySQL driver, the link runs in autocommit
mode and transactions are opened explicitly with BEGIN.

Backend specifics handled here:
    - "LIMIT offset,count" is rewritten to "LIMIT count OFFSET offset"
    - insert_id() is recovered from the table's id sequence (best effort)
    - unbuffered queries are not supported; the hint is ignored
    - set_charset() maps onto the client encoding
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

try:
    import psycopg2  # type: ignore
except ImportError:
    psycopg2 = None

from . import helpers
from .backend_base import DBDriver
from .connection import persistent_links
from .result import Result
from ..errors import ConfigurationError, ConnectError

logger = logging.getLogger(__name__)


class PostgresDriver(DBDriver):
    """
    PostgreSQL driver.

    Parameters
    ----------
    host : str
        Server host, optionally "host:port". Empty means the libpq default
        (usually the local socket).
    username, password : str
        Credentials; empty values are left to libpq defaults.
    name : str
        Database name.
    persistent : bool
        Reuse an idle link opened earlier with the same parameters.
    debug : bool
        Keep a (sql, seconds) log of every statement.
    """

    backend = "pgsql"
    product_name = "PostgreSQL"
    begin_sql = "BEGIN"

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
        if psycopg2 is None:
            raise ConfigurationError(
                "psycopg2 is not installed. It is required to use a "
                "PostgreSQL database (pip install psycopg2-binary)."
            )

        super().__init__(debug=debug)
        self.native_errors = (psycopg2.Error,)
        self.persistent = persistent

        # SQL text and row count of the most recent successful statement.
        # Both outlive free_result(), so insert_id() / affected_rows() still
        # work after the cursor is released.
        self._result_sql: Optional[str] = None
        self._result_rowcount: Optional[int] = None

        # Only non-empty parts are passed, so libpq defaults apply to the rest.
        conn_kwargs: Dict[str, Any] = {}
        port = None
        if host:
            try:
                host, port = helpers.split_host_port(host)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            conn_kwargs["host"] = host
            if port is not None:
                conn_kwargs["port"] = port
        if name:
            conn_kwargs["dbname"] = name
        if username:
            conn_kwargs["user"] = username
        if password:
            conn_kwargs["password"] = password

        self._link_key = (
            self.backend, host, port, name, username,
            hashlib.sha256(password.encode("utf-8")).hexdigest(),
        )

        def open_link():
            link = psycopg2.connect(**conn_kwargs)
            link.autocommit = True
            return link

        try:
            if persistent:
                self.link_id = persistent_links.acquire(
                    self._link_key, open_link, _link_alive
                )
            else:
                self.link_id = open_link()
        except psycopg2.Error as e:
            raise ConnectError(
                f"Unable to connect to PostgreSQL server {host or '(default)'} "
                f"(database {name!r}): {e}"
            ) from e

        logger.info("Connected to PostgreSQL at %s (database %r)", host or "(default)", name)

    # ------------------------------------------------------------------
    # Native hooks
    # ------------------------------------------------------------------

    def prepare_sql(self, sql: str) -> str:
        return helpers.rewrite_limit(sql)

    def _execute(self, sql: str, unbuffered: bool) -> Any:
        cursor = self.link_id.cursor()
        try:
            cursor.execute(sql)
        except Exception:
            cursor.close()
            raise
        return cursor

    def _record_error(self, exc: BaseException) -> None:
        self.error_no = 0
        self.error_msg = (getattr(exc, "pgerror", None) or str(exc) or "Unknown").strip()

    def query(self, sql: str, unbuffered: bool = False) -> Result:
        result = super().query(sql, unbuffered)
        if result.is_valid():
            self._result_sql = self.last_query
            self._result_rowcount = result.native.rowcount
        else:
            self._result_sql = self._result_rowcount = None
        return result

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def num_rows(self, query_id: Result) -> int | bool:
        cursor = self._cursor(query_id)
        if cursor is None:
            return False
        return cursor.rowcount

    def affected_rows(self) -> int | bool:
        if self._result_rowcount is None:
            return False
        return self._result_rowcount

    def insert_id(self) -> int | bool:
        """
        Current value of the id sequence behind the last INSERT.

        Best effort only: the table name is taken from the text of the
        most recent statement, and the sequence is assumed to be called
        "<table>_id_seq". Tables whose name ends in "groups" use
        "<table>_g_id_seq". Quoted or schema-qualified names, multi-table
        inserts and non-sequence keys are not recognised.
        """
        if not self._result_sql:
            return False

        table_name = helpers.insert_table_name(self._result_sql)
        if table_name is None:
            return False

        if table_name.endswith("groups"):
            table_name += "_g"

        try:
            cursor = self._execute(f"SELECT currval('{table_name}_id_seq')", False)
        except psycopg2.Error as e:
            logger.debug("insert_id lookup failed for %s: %s", table_name, e)
            return False

        try:
            row = cursor.fetchone()
        finally:
            cursor.close()
        return int(row[0]) if row else False

    # ------------------------------------------------------------------
    # Connection-level operations
    # ------------------------------------------------------------------

    def escape(self, text: str) -> str:
        # PostgreSQL text values cannot contain NUL.
        text = text.replace("\x00", "")
        if self.link_id.get_parameter_status("standard_conforming_strings") == "off":
            text = text.replace("\\", "\\\\")
        return text.replace("'", "''")

    def close(self) -> bool:
        if not self.link_id:
            return False

        self._commit_open_transaction()
        self._free_current()
        link, self.link_id = self.link_id, None

        if self.persistent and _link_alive(link):
            persistent_links.release(self._link_key, link)
            return True

        try:
            link.close()
        except psycopg2.Error:
            return False
        return True

    def set_names(self, names: str) -> Result:
        return self.query(f"SET NAMES '{self.escape(names)}'")

    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool:
        try:
            self.link_id.set_client_encoding(charset)
        except psycopg2.Error as e:
            logger.warning("Unable to set PostgreSQL client encoding %r: %s", charset, e)
            return False
        return True

    def get_version(self) -> Dict[str, str]:
        result = self.query("SELECT VERSION()")
        try:
            version = helpers.parse_postgres_version(self.result(result))
        finally:
            self.free_result(result)

        return {
            "name": self.product_name,
            "version": version,
        }


def _link_alive(link: Any) -> bool:
    return getattr(link, "closed", 1) == 0


__all__ = ["PostgresDriver"]
