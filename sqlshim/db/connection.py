"""
Persistent native links.

PyMySQL and psycopg2 have no "persistent connect" primitive, so drivers
opened with persistent=True park their native link here instead of
closing it. The next driver asking for the same key reuses it if it is
still alive.

    links = PersistentLinks()
    link = links.acquire(key, open_link, is_alive)
    ...
    links.release(key, link)

A link is handed to one driver at a time; a second driver with the same
key while the first still holds it gets a fresh link.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)


class PersistentLinks:
    """
    Process-wide cache of idle native connections, keyed by connection
    parameters.
    """

    def __init__(self):
        self._idle: Dict[Hashable, List[Any]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------

    def acquire(
        self,
        key: Hashable,
        open_link: Callable[[], Any],
        is_alive: Callable[[Any], bool],
    ) -> Any:
        """
        Return an idle link for `key`, or open a new one.

        Idle links that fail `is_alive` are closed and discarded.
        """
        while True:
            with self._lock:
                bucket = self._idle.get(key)
                link = bucket.pop() if bucket else None

            if link is None:
                return open_link()

            try:
                alive = is_alive(link)
            except Exception:
                alive = False

            if alive:
                logger.debug("Reusing persistent link for %s", _describe(key))
                return link

            _close_quietly(link)

    def release(self, key: Hashable, link: Any) -> None:
        """Park `link` so a later acquire() with the same key can reuse it."""
        with self._lock:
            self._idle.setdefault(key, []).append(link)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def idle_count(self, key: Hashable) -> int:
        with self._lock:
            return len(self._idle.get(key, ()))

    def close_all(self) -> None:
        """Close every idle link (e.g. at interpreter shutdown or in tests)."""
        with self._lock:
            buckets, self._idle = self._idle, {}

        for links in buckets.values():
            for link in links:
                _close_quietly(link)


def _close_quietly(link: Any) -> None:
    try:
        link.close()
    except Exception:
        logger.debug("Ignoring error while closing a stale persistent link", exc_info=True)


def _describe(key: Hashable) -> str:
    # Keys are (backend, host, port, dbname, user); never log the password.
    if isinstance(key, tuple):
        return "/".join(str(part) for part in key[:4])
    return str(key)


# One cache per process, shared by every driver.
persistent_links = PersistentLinks()


__all__ = ["PersistentLinks", "persistent_links"]
