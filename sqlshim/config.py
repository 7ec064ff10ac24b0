"""
Connection settings for sqlshim.

This module centralizes the parameters a Database facade needs:

    - driver selection (mysql / pgsql / sqlite3)
    - host (optionally "host:port"), username, password
    - database name, or file path for SQLite
    - persistent-connection flag
    - character set applied right after connecting
    - debug flag (per-query timing log)

It provides:
    ConnectionParams  – immutable settings object
    load_config()     – load from environment variables or defaults
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Optional


@dataclass(frozen=True)
class ConnectionParams:
    """
    Canonical connection settings.

    Attributes
    ----------
    driver:
        Backend identifier, e.g. "mysql", "pgsql" or "sqlite3".

    host:
        Server host name. "db.local:5433" selects a custom port.
        Ignored by SQLite.

    username, password:
        Credentials. The password never appears in repr().

    name:
        - For MySQL / PostgreSQL: the database name.
        - For SQLite: path to the database file (".sqlite3" is appended
          when missing).

    persistent:
        Reuse a process-wide native link instead of opening a new one.
        Ignored by SQLite.

    charset:
        Character set applied with set_names() + set_charset() right after
        the connection is opened.

    debug:
        Record every statement and its execution time in the driver's
        saved-queries log.
    """

    driver: str
    host: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    name: str = ""
    persistent: bool = False
    charset: Optional[str] = None
    debug: bool = False


def load_config() -> ConnectionParams:
    """
    Load ConnectionParams from environment variables, falling back to defaults.

    Recognized variables:
        SQLSHIM_DB_DRIVER      (mysql|pgsql|sqlite3, default sqlite3)
        SQLSHIM_DB_HOST        (host or host:port)
        SQLSHIM_DB_USER
        SQLSHIM_DB_PASSWORD
        SQLSHIM_DB_NAME        (database name or SQLite path, default "sqlshim")
        SQLSHIM_DB_PERSISTENT  ("true" / "false" / "1" / "0")
        SQLSHIM_DB_CHARSET     (e.g. "utf8mb4")
        SQLSHIM_DB_DEBUG       ("true" / "false" / "1" / "0")

    Returns
    -------
    ConnectionParams
    """

    def _env_flag(name: str, default: bool) -> bool:
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in ("1", "true", "yes", "on")

    return ConnectionParams(
        driver=os.getenv("SQLSHIM_DB_DRIVER", "sqlite3"),
        host=os.getenv("SQLSHIM_DB_HOST", ""),
        username=os.getenv("SQLSHIM_DB_USER", ""),
        password=os.getenv("SQLSHIM_DB_PASSWORD", ""),
        name=os.getenv("SQLSHIM_DB_NAME", "sqlshim"),

        persistent=_env_flag("SQLSHIM_DB_PERSISTENT", default=False),
        charset=os.getenv("SQLSHIM_DB_CHARSET") or None,

        debug=_env_flag(
            "SQLSHIM_DB_DEBUG",
            default=False
        ),
    )
