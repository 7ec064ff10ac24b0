"""
sqlshim

Top-level package initializer for the sqlshim database layer.

This module does not contain any logic.
It exposes the façade, the configuration helpers and the exception types.

Submodules include:
    - core     (Database façade)
    - config   (ConnectionParams, load_config)
    - errors   (exception taxonomy)
    - db/      (driver contract, result handle, drivers)
"""

from .config import ConnectionParams, load_config
from .core import Database, create_database
from .db import Result
from .errors import (
    SQLShimError,
    ConfigurationError,
    ConnectError,
    QueryTooLongError,
)

__all__ = [
    "Database",
    "create_database",
    "ConnectionParams",
    "load_config",
    "Result",
    "SQLShimError",
    "ConfigurationError",
    "ConnectError",
    "QueryTooLongError",
]
