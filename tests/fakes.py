"""
In-process stand-ins for PyMySQL and psycopg2 connections.

Both fakes run the SQL they receive on an in-memory sqlite3 database and
translate sqlite3 errors into the real pymysql / psycopg2 exception
classes, so the drivers' error handling is exercised unchanged.
"""

from __future__ import annotations

import sqlite3
from typing import Any, Callable, Dict, List, Optional

import psycopg2
import pymysql
import pymysql.converters
import pymysql.cursors


class FakeCursor:
    """Buffered DB-API cursor over an sqlite3 connection."""

    def __init__(self, link: "_FakeLink", unbuffered: bool = False):
        self.link = link
        self.unbuffered = unbuffered
        self.description = None
        self.rowcount = -1
        self.closed = False
        self._rows: List[tuple] = []
        self._pos = 0

    def execute(self, sql: str, args: Any = None) -> int:
        self.link.executed.append(sql)
        stripped = sql.strip()

        if stripped.upper().startswith("SET "):
            self.link.set_statements.append(stripped)
            self.rowcount = 0
            return 0

        if stripped.upper() == "START TRANSACTION":
            stripped = "BEGIN"

        try:
            cur = self.link.db.execute(stripped)
        except sqlite3.Error as e:
            raise self.link.translate_error(e) from e

        self.description = cur.description
        if cur.description is not None:
            self._rows = cur.fetchall()
            self.rowcount = len(self._rows)
        else:
            self.rowcount = cur.rowcount
            self.link.last_affected = cur.rowcount
            self.link.last_insert_id = cur.lastrowid or 0
        return self.rowcount

    def fetchone(self) -> Optional[tuple]:
        if self._pos >= len(self._rows):
            return None
        row = self._rows[self._pos]
        self._pos += 1
        return row

    def fetchall(self) -> List[tuple]:
        rows = self._rows[self._pos:]
        self._pos = len(self._rows)
        return rows

    def scroll(self, value: int, mode: str = "relative") -> None:
        target = value if mode == "absolute" else self._pos + value
        if not 0 <= target < len(self._rows):
            raise IndexError("out of range")
        self._pos = target

    def close(self) -> None:
        self.closed = True


class _FakeLink:
    def __init__(self, version_banner: str, **kwargs: Any):
        self.kwargs = kwargs
        self.db = sqlite3.connect(":memory:", isolation_level=None)
        self.db.create_function("version", 0, lambda: version_banner)

        self.executed: List[str] = []
        self.set_statements: List[str] = []
        self.cursors: List[FakeCursor] = []
        self.last_affected = 0
        self.last_insert_id = 0

    def translate_error(self, exc: sqlite3.Error) -> Exception:
        raise NotImplementedError

    def _close_db(self) -> None:
        self.db.close()


class FakeMySQLLink(_FakeLink):
    """Mimics the parts of pymysql.connections.Connection sqlshim uses."""

    def __init__(self, **kwargs: Any):
        super().__init__("8.0.36-0ubuntu0.22.04.1", **kwargs)
        self.open = True
        self.pings = 0
        self.charset: Optional[str] = None
        self.collation: Optional[str] = None

    def translate_error(self, exc: sqlite3.Error) -> Exception:
        return pymysql.err.ProgrammingError(1146, str(exc))

    def cursor(self, cursor_class: Any = None) -> FakeCursor:
        cur = FakeCursor(self, unbuffered=cursor_class is pymysql.cursors.SSCursor)
        self.cursors.append(cur)
        return cur

    def affected_rows(self) -> int:
        return self.last_affected

    def insert_id(self) -> int:
        return self.last_insert_id

    def escape_string(self, s: str) -> str:
        return pymysql.converters.escape_string(s)

    def set_character_set(self, charset: str, collation: Optional[str] = None) -> None:
        if charset == "bogus":
            raise pymysql.err.OperationalError(1115, "Unknown character set: 'bogus'")
        self.charset = charset
        self.collation = collation

    def ping(self, reconnect: bool = True) -> None:
        if not self.open:
            raise pymysql.err.Error("Already closed")
        self.pings += 1

    def close(self) -> None:
        if not self.open:
            raise pymysql.err.Error("Already closed")
        self.open = False
        self._close_db()


class FakePostgresLink(_FakeLink):
    """Mimics the parts of a psycopg2 connection sqlshim uses."""

    def __init__(self, **kwargs: Any):
        super().__init__(
            "PostgreSQL 15.4 (Debian 15.4-1.pgdg120+1) on x86_64-pc-linux-gnu, "
            "compiled by gcc (Debian 12.2.0-14) 12.2.0, 64-bit",
            **kwargs,
        )
        self.closed = 0
        self.autocommit = False
        self.client_encoding = "UTF8"
        self.standard_conforming_strings = "on"

        self.sequences: Dict[str, int] = {}
        self.sequence_lookups: List[str] = []
        self.db.create_function("currval", 1, self._currval)

    def _currval(self, name: str) -> int:
        self.sequence_lookups.append(name)
        return self.sequences[name]

    def translate_error(self, exc: sqlite3.Error) -> Exception:
        return psycopg2.ProgrammingError(f"ERROR:  {exc}")

    def cursor(self) -> FakeCursor:
        cur = FakeCursor(self)
        self.cursors.append(cur)
        return cur

    def get_parameter_status(self, name: str) -> Optional[str]:
        if name == "standard_conforming_strings":
            return self.standard_conforming_strings
        return None

    def set_client_encoding(self, encoding: str) -> None:
        if encoding == "bogus":
            raise psycopg2.ProgrammingError('invalid value for parameter "client_encoding": "bogus"')
        self.client_encoding = encoding

    def close(self) -> None:
        if not self.closed:
            self.closed = 1
            self._close_db()


def link_factory(link_class: type) -> Callable[..., Any]:
    """
    Build a replacement for pymysql.connect / psycopg2.connect that
    records every link it hands out.
    """
    created: List[Any] = []

    def connect(*args: Any, **kwargs: Any) -> Any:
        link = link_class(**kwargs)
        created.append(link)
        return link

    connect.created = created  # type: ignore[attr-defined]
    return connect
