"""
Result handle returned by every driver's query().

A Result wraps at most one backend-native cursor and remembers which
backend produced it:

    Result(True,  mysql=cursor)    -> type == "mysql"
    Result(True,  sqlite3=cursor)  -> type == "sqlite3"
    Result(True,  pgsql=cursor)    -> type == "pgsql"
    Result(False)                  -> type == "invalid"

The native cursor is released with free(), or by using the handle as a
context manager:

    with db.query("SELECT id FROM users") as res:
        for row in iter(lambda: db.fetch_row(res), None):
            ...
"""

from __future__ import annotations

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


INVALID = "invalid"

# Slot order decides which payload wins when more than one is supplied.
_SLOTS = ("mysql", "sqlite3", "pgsql")


class Result:
    """
    Tagged wrapper around one native result object.

    Attributes
    ----------
    type:
        "mysql", "sqlite3", "pgsql" or "invalid" when no native object
        was supplied.
    """

    __slots__ = ("type", "_native", "_valid", "_freed")

    def __init__(
        self,
        valid: bool,
        *,
        mysql: Any = None,
        sqlite3: Any = None,
        pgsql: Any = None,
    ):
        self._valid = bool(valid)
        self._native: Optional[Any] = None
        self._freed = False
        self.type = INVALID

        for tag, payload in zip(_SLOTS, (mysql, sqlite3, pgsql)):
            if payload is not None:
                self._native = payload
                self.type = tag
                break

    def is_valid(self) -> bool:
        """True iff the backend reported no fatal error for the statement."""
        return self._valid

    @property
    def native(self) -> Optional[Any]:
        """The wrapped native cursor, or None once freed / when absent."""
        return self._native

    @property
    def is_freed(self) -> bool:
        return self._freed

    def free(self) -> None:
        """
        Release the native cursor.

        Safe to call any number of times: the reference is cleared after
        the first release, so later calls do nothing.
        """
        native, self._native = self._native, None
        if native is None:
            return

        self._freed = True
        try:
            native.close()
        except Exception:
            # A cursor whose connection is already gone cannot be closed.
            logger.debug("Ignoring error while freeing %s result", self.type, exc_info=True)

    # ------------------------------------------------------------------
    # Context manager syntax:
    #     with db.query(sql) as res:
    #         ...
    # ------------------------------------------------------------------

    def __enter__(self) -> "Result":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.free()
        return False

    def __bool__(self) -> bool:
        return self._valid

    def __repr__(self) -> str:
        state = "freed" if self._freed else ("valid" if self._valid else "invalid")
        return f"<Result type={self.type!r} {state}>"


__all__ = ["Result", "INVALID"]
