"""
sqlshim.db

Driver layer for sqlshim.

This package provides:

- The driver contract:
      * DBDriver       (abstract base class)
      * DriverLike     (structural protocol)
      * ensure_driver  (runtime validator)

- The result handle:
      * Result

- Concrete drivers, one per backend:
      * MySQLDriver     (PyMySQL)
      * PostgresDriver  (psycopg2)
      * SQLiteDriver    (stdlib sqlite3)

- The static registry mapping driver names to implementations:
      * DRIVERS
      * get_driver_class

- Persistent link cache:
      * PersistentLinks / persistent_links
"""

from typing import Dict, Type

from .backend_base import DBDriver, DriverLike, ensure_driver, MAX_QUERY_LENGTH
from .connection import PersistentLinks, persistent_links
from .mysql_backend import MySQLDriver
from .postgres_backend import PostgresDriver
from .result import Result
from .sqlite_backend import SQLiteDriver
from ..errors import ConfigurationError

DRIVERS: Dict[str, Type[DBDriver]] = {
    "mysql": MySQLDriver,
    "mysqli": MySQLDriver,
    "mariadb": MySQLDriver,
    "pgsql": PostgresDriver,
    "postgres": PostgresDriver,
    "postgresql": PostgresDriver,
    "sqlite": SQLiteDriver,
    "sqlite3": SQLiteDriver,
}


def get_driver_class(name: str) -> Type[DBDriver]:
    """
    Look up a driver implementation by name (case-insensitive).

    Raises
    ------
    ConfigurationError
        If `name` is not a supported database type.
    """
    try:
        return DRIVERS[(name or "").strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"{name!r} is not a valid database type. Please check your "
            f"database settings (supported: {', '.join(sorted(DRIVERS))})."
        ) from None


__all__ = [
    # Contract
    "DBDriver",
    "DriverLike",
    "ensure_driver",
    "MAX_QUERY_LENGTH",

    # Results
    "Result",

    # Drivers
    "MySQLDriver",
    "PostgresDriver",
    "SQLiteDriver",
    "DRIVERS",
    "get_driver_class",

    # Persistent links
    "PersistentLinks",
    "persistent_links",
]
