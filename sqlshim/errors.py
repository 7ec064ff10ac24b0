"""
Exception types raised by sqlshim.

Only fatal conditions are raised. A statement that the backend rejects is
not an exception: it comes back as an invalid Result, and the details are
available from ``error()``.

    SQLShimError
        ConfigurationError   unknown driver name, missing client library
        ConnectError         backend unreachable, bad credentials,
                             unusable SQLite file, use after close()
        QueryTooLongError    statement over MAX_QUERY_LENGTH characters
"""

from __future__ import annotations


class SQLShimError(RuntimeError):
    """Base class for every error raised by sqlshim."""


class ConfigurationError(SQLShimError, ValueError):
    """The requested driver cannot be used in this environment."""


class ConnectError(SQLShimError):
    """The physical connection could not be established or is gone."""


class QueryTooLongError(SQLShimError):
    """
    Raised when a statement exceeds the length ceiling.

    This is treated as a programming error, so it is raised instead of
    being reported through an invalid Result.
    """

    def __init__(self, length: int, limit: int):
        super().__init__(
            f"Insane query ({length} characters, limit {limit}). Aborting."
        )
        self.length = length
        self.limit = limit


__all__ = [
    "SQLShimError",
    "ConfigurationError",
    "ConnectError",
    "QueryTooLongError",
]
