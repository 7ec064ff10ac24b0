"""
Core façade for sqlshim.

Database is the single entrypoint held by application code. It:

    - remembers the connection parameters until first use,
    - picks the driver implementation by name from a static registry,
    - opens the connection lazily, on the first operation,
    - forwards every call verbatim to the driver.

    db = Database("sqlite3", name="data/app")
    res = db.query("SELECT 1")
    db.fetch_row(res)        # -> [1]
    db.close()

The façade performs no validation or transformation of its own beyond
choosing the driver; everything else is the driver's contract.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from .config import ConnectionParams, load_config
from .db import DBDriver, Result, ensure_driver, get_driver_class
from .errors import ConnectError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Database façade
# ---------------------------------------------------------------------------

class Database:
    """
    Lazily connected façade over one sqlshim driver.

    Parameters
    ----------
    driver:
        Backend name: "mysql", "pgsql" or "sqlite3" (aliases such as
        "mysqli", "postgres", "sqlite" are accepted). Unknown names raise
        ConfigurationError immediately, before any I/O.
    host, username, password, name:
        Connection settings; see ConnectionParams.
    persistent:
        Reuse a process-wide native link (MySQL / PostgreSQL only).
    charset:
        Applied with set_names() and set_charset() right after connecting.
    debug:
        Record (sql, seconds) for every statement; see get_saved_queries().
    """

    def __init__(
        self,
        driver: str,
        host: str = "",
        username: str = "",
        password: str = "",
        name: str = "",
        persistent: bool = False,
        charset: Optional[str] = None,
        *,
        debug: bool = False,
    ):
        params = ConnectionParams(
            driver=driver,
            host=host,
            username=username,
            password=password,
            name=name,
            persistent=persistent,
            charset=charset,
            debug=debug,
        )

        self._driver_class = get_driver_class(driver)
        self._params: Optional[ConnectionParams] = params
        self._closed = False
        self.driver: Optional[DBDriver] = None

        if debug:
            logging.basicConfig(level=logging.DEBUG)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_config(cls, config: Optional[ConnectionParams] = None) -> "Database":
        """Construct a Database from ConnectionParams (default: environment)."""
        cfg = config or load_config()
        return cls(
            cfg.driver,
            cfg.host,
            cfg.username,
            cfg.password,
            cfg.name,
            cfg.persistent,
            cfg.charset,
            debug=cfg.debug,
        )

    @classmethod
    def from_env(cls) -> "Database":
        """Construct a Database using environment variables."""
        return cls.from_config(load_config())

    # ------------------------------------------------------------------
    # Lazy connection
    # ------------------------------------------------------------------

    def _connect(self) -> DBDriver:
        if self.driver is not None:
            return self.driver

        params = self._params
        if params is None:
            raise ConnectError("The database connection has been closed.")

        logger.debug("Opening %s connection", params.driver)
        driver = self._driver_class(
            params.host,
            params.username,
            params.password,
            params.name,
            params.persistent,
            debug=params.debug,
        )
        self.driver = ensure_driver(driver)

        # Credentials are not kept once the link exists.
        self._params = None

        if params.charset:
            self.driver.set_names(params.charset)
            self.driver.set_charset(params.charset)

        return self.driver

    def is_active(self) -> bool:
        """True once the underlying driver has been instantiated."""
        return self.driver is not None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def start_transaction(self) -> bool:
        return self._connect().start_transaction()

    def end_transaction(self) -> bool:
        return self._connect().end_transaction()

    # ------------------------------------------------------------------
    # Queries and results
    # ------------------------------------------------------------------

    def query(self, sql: str, unbuffered: bool = False) -> Result:
        return self._connect().query(sql, unbuffered)

    def result(self, query_id: Result, row: int = 0, col: int = 0) -> Any:
        return self._connect().result(query_id, row, col)

    def fetch_assoc(self, query_id: Result) -> Optional[Dict[str, Any]] | bool:
        return self._connect().fetch_assoc(query_id)

    def fetch_row(self, query_id: Result) -> Optional[List[Any]] | bool:
        return self._connect().fetch_row(query_id)

    def num_rows(self, query_id: Result) -> int | bool:
        return self._connect().num_rows(query_id)

    def affected_rows(self) -> int | bool:
        return self._connect().affected_rows()

    def insert_id(self) -> int | bool:
        return self._connect().insert_id()

    def get_num_queries(self) -> int:
        return self._connect().get_num_queries()

    def get_saved_queries(self) -> List[Tuple[str, float]]:
        return self._connect().get_saved_queries()

    def free_result(self, query_id: Result) -> None:
        self._connect().free_result(query_id)

    # ------------------------------------------------------------------
    # Connection-level operations
    # ------------------------------------------------------------------

    def escape(self, text: str) -> str:
        return self._connect().escape(text)

    def error(self) -> Dict[str, Any]:
        return self._connect().error()

    def close(self) -> bool:
        """
        Close the connection.

        Does not connect: on a façade that was never used (or is already
        closed) this is a no-op returning False. After closing a live
        connection the façade cannot be reused, because the connection
        parameters were dropped when it connected.
        """
        driver, self.driver = self.driver, None

        if driver is None:
            return False

        self._closed = True
        return driver.close()

    def set_names(self, names: str) -> Result:
        return self._connect().set_names(names)

    def set_charset(self, charset: str, collation: Optional[str] = None) -> bool:
        return self._connect().set_charset(charset, collation)

    def get_version(self) -> Dict[str, str]:
        return self._connect().get_version()

    # ------------------------------------------------------------------
    # Context manager syntax:
    #     with Database("sqlite3", name="app") as db:
    #         ...
    # ------------------------------------------------------------------

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.driver is not None:
            try:
                self.close()
            except Exception:
                logger.exception("Error closing database connection")
        return False

    def __repr__(self) -> str:
        state = "active" if self.driver is not None else ("closed" if self._closed else "idle")
        return f"<Database {self._driver_class.__name__} {state}>"


# ---------------------------------------------------------------------------
# Convenience
# ---------------------------------------------------------------------------

def create_database(config: Optional[ConnectionParams] = None) -> Database:
    """
    Convenience constructor used by services / scripts.
    """
    return Database.from_config(config)


__all__ = [
    "Database",
    "create_database",
]
