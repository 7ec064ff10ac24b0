"""
Shared driver helper utilities.

These are small, pure functions that several drivers rely on:
    - splitting "host:port"
    - rewriting MySQL-style pagination for PostgreSQL
    - mapping DB-API rows to lists / dicts
    - cleaning up SQLite column names
    - extracting version numbers from server banners

Drivers import this module as `.helpers`
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence, Tuple


# ----------------------------------------------------------------------
# Connection parameters
# ----------------------------------------------------------------------

def split_host_port(host: str) -> Tuple[str, Optional[int]]:
    """
    Split an optional port off a host string.

    Example:
        "db.local:3307" -> ("db.local", 3307)
        "db.local"      -> ("db.local", None)

    Raises
    ------
    ValueError
        If the part after ":" is not a port number.
    """
    if ":" not in host:
        return host, None

    host, _, port = host.partition(":")
    port = port.strip()
    if not port.isdigit():
        raise ValueError(f"Invalid port in database host: {port!r}")
    return host, int(port)


# ----------------------------------------------------------------------
# SQL rewriting
# ----------------------------------------------------------------------

_LIMIT_COMMA = re.compile(r"LIMIT ([0-9]+),([ 0-9]+)")


def rewrite_limit(sql: str) -> str:
    """
    Turn "LIMIT offset,count" into "LIMIT count OFFSET offset".

    PostgreSQL only understands the second form. This is a textual
    substitution; it does not parse the statement.

    Example:
        "SELECT * FROM t LIMIT 5,10" -> "SELECT * FROM t LIMIT 10 OFFSET 5"
    """
    if "LIMIT" not in sql:
        return sql
    return _LIMIT_COMMA.sub(
        lambda m: f"LIMIT {m.group(2).strip()} OFFSET {m.group(1)}", sql
    )


_INSERT_TABLE = re.compile(r"^INSERT INTO ([a-z0-9_\-]+)", re.IGNORECASE | re.DOTALL)


def insert_table_name(sql: str) -> Optional[str]:
    """Return the target table of an "INSERT INTO <table>" statement, if any."""
    match = _INSERT_TABLE.match(sql)
    return match.group(1) if match else None


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------

def column_names(cursor: Any) -> List[str]:
    """Column names from a DB-API cursor description (empty if none)."""
    description = getattr(cursor, "description", None) or ()
    return [col[0] for col in description]


def row_to_list(row: Optional[Sequence[Any]]) -> Optional[List[Any]]:
    if row is None:
        return None
    return list(row)


def row_to_dict(names: Sequence[str], row: Optional[Sequence[Any]]) -> Optional[Dict[str, Any]]:
    """
    Map a positional row onto column names.

    Duplicate column names keep the last value, which matches how the
    native associative fetches behave.
    """
    if row is None:
        return None
    return dict(zip(names, row))


def strip_table_prefix(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop "table." / "alias." prefixes from column names.

    Example:
        {"t.id": 1, "name": "x"} -> {"id": 1, "name": "x"}
    """
    cleaned: Dict[str, Any] = {}
    for key, value in row.items():
        _, dot, bare = key.partition(".")
        cleaned[bare if dot else key] = value
    return cleaned


# ----------------------------------------------------------------------
# Version banners
# ----------------------------------------------------------------------

def parse_mysql_version(banner: Any) -> str:
    """
    "8.0.36-0ubuntu0.22.04.1" -> "8.0.36"
    "10.11.6-MariaDB"         -> "10.11.6"
    """
    return re.sub(r"^([^-]+).*$", r"\1", str(banner), flags=re.DOTALL)


def parse_postgres_version(banner: Any) -> str:
    """
    "PostgreSQL 15.4 (Debian 15.4-1.pgdg120+1) on x86_64-pc-linux-gnu, ..."
        -> "15.4"
    """
    return re.sub(r"^[^0-9]+([^\s,-]+).*$", r"\1", str(banner), flags=re.DOTALL)


__all__ = [
    "split_host_port",
    "rewrite_limit",
    "insert_table_name",
    "column_names",
    "row_to_list",
    "row_to_dict",
    "strip_table_prefix",
    "parse_mysql_version",
    "parse_postgres_version",
]
