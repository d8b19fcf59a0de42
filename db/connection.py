"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.

psycopg2's own pools fail immediately when exhausted and open connections
while holding their lock, so this pool keeps its own bookkeeping:
    - Bounded checkout: callers wait at most `acquire_timeout` for a
      connection, then get a PoolTimeoutError.
    - New connections are opened on a background thread, never under the
      pool lock, so a slow or unreachable server cannot stretch a wait past
      the timeout or block `release()`.
    - Connection recycling: closed, stale (idle too long) and old (past
      `max_lifetime`) connections are replaced on checkout.
    - Scoped acquisition through the `connection()` context manager.

One pool exists per process. `init_pool()` creates it (or returns the one
already created), and `close_pool()` tears it down at shutdown.
"""

import math
import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import psycopg2
import psycopg2.extensions
from psycopg2 import pool

from config import DatabaseSettings, PoolSettings
from utils.logger import get_logger

logger = get_logger(__name__)

# libpq treats connect_timeout values below 2 as 2
_MIN_CONNECT_TIMEOUT = 2


class PoolTimeoutError(pool.PoolError):
    """Raised when no connection becomes available within the acquire timeout."""


class _ConnectAttempt:
    """A connection being opened for a waiting caller."""

    def __init__(self):
        self.done = False
        self.error: Optional[Exception] = None


class ConnectionPool:
    """
    A bounded, thread-safe pool of PostgreSQL connections.

    Args:
        settings: Where and how to connect.
        tuning: Size and timeout configuration.
        clock: Monotonic clock for connection ages, replaceable in tests.

    Raises:
        psycopg2.OperationalError: If the initial `min_idle` connections
            cannot be opened.
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        tuning: Optional[PoolSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.tuning = tuning or PoolSettings()
        self._clock = clock
        self._connect_kwargs = dict(settings.connect_kwargs())
        self._connect_kwargs.setdefault(
            "connect_timeout",
            max(_MIN_CONNECT_TIMEOUT, math.ceil(self.tuning.acquire_timeout)),
        )
        self._cond = threading.Condition(threading.Lock())
        self._idle: deque = deque()
        # id(conn) -> (opened_at, last_returned_at)
        self._ages: dict[int, tuple[float, float]] = {}
        self._total = 0  # open or opening, idle or checked out
        self._in_use = 0
        self._closed = False

        try:
            for _ in range(self.tuning.min_idle):
                self._keep(psycopg2.connect(**self._connect_kwargs))
        except psycopg2.Error:
            for conn in self._idle:
                conn.close()
            raise

    @property
    def in_use(self) -> int:
        """Number of connections currently checked out."""
        with self._cond:
            return self._in_use

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self):
        """
        Check a connection out of the pool, waiting up to `acquire_timeout`.

        Returns:
            A live psycopg2 connection. Must be handed back with `release()`.

        Raises:
            PoolTimeoutError: If no connection is available in time.
            psycopg2.pool.PoolError: If the pool has been closed.
            psycopg2.OperationalError: If a new connection could not be opened.
        """
        deadline = time.monotonic() + self.tuning.acquire_timeout
        attempt: Optional[_ConnectAttempt] = None
        stale = []
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise pool.PoolError("connection pool is closed")

                    while self._idle:
                        conn = self._idle.pop()
                        if self._is_expired(conn):
                            self._forget(conn)
                            stale.append(conn)
                            continue
                        self._in_use += 1
                        return conn

                    if attempt is not None and attempt.done:
                        if attempt.error is not None:
                            raise attempt.error
                        # another waiter took the new connection
                        attempt = None
                    if attempt is None and self._total < self.tuning.max_size:
                        attempt = self._start_connect()

                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise PoolTimeoutError(
                            f"Timed out after {self.tuning.acquire_timeout:g}s waiting for a "
                            f"database connection (pool size {self.tuning.max_size})."
                        )
                    self._cond.wait(remaining)
        finally:
            for conn in stale:
                logger.debug(f"Recycling pooled connection {id(conn)}.")
                conn.close()

    def release(self, conn) -> None:
        """
        Return a connection to the pool. Connections released after the pool
        was closed, or beyond `min_idle` idle ones, are closed instead.
        """
        if not conn.closed:
            status = conn.info.transaction_status
            if status == psycopg2.extensions.TRANSACTION_STATUS_UNKNOWN:
                conn.close()
            elif status != psycopg2.extensions.TRANSACTION_STATUS_IDLE:
                try:
                    conn.rollback()
                except psycopg2.Error:
                    conn.close()

        with self._cond:
            self._in_use -= 1
            keep = (
                not self._closed
                and not conn.closed
                and len(self._idle) < self.tuning.min_idle
            )
            if keep:
                opened_at, _ = self._ages.get(id(conn), (self._clock(), 0.0))
                self._ages[id(conn)] = (opened_at, self._clock())
                self._idle.append(conn)
            else:
                self._forget(conn)
            self._cond.notify()

        if not keep and not conn.closed:
            conn.close()

    @contextmanager
    def connection(self) -> Iterator["psycopg2.extensions.connection"]:
        """
        Scoped acquisition: yields a connection and always releases it,
        including when the block raises.

        Usage:
            with pool.connection() as conn:
                with conn.cursor() as cur:
                    ...
        """
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        """
        Close the idle connections and refuse new checkouts. Connections still
        checked out keep working and are closed when released.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            for conn in idle:
                self._forget(conn)
            self._cond.notify_all()
        for conn in idle:
            conn.close()
        logger.info("Database connection pool closed.")

    # ── internals (called with self._cond held unless noted) ──

    def _keep(self, conn) -> None:
        """Register a freshly opened connection as idle."""
        now = self._clock()
        self._ages[id(conn)] = (now, now)
        self._idle.append(conn)
        self._total += 1

    def _forget(self, conn) -> None:
        self._ages.pop(id(conn), None)
        self._total -= 1

    def _start_connect(self) -> _ConnectAttempt:
        attempt = _ConnectAttempt()
        self._total += 1
        threading.Thread(
            target=self._open_connection, args=(attempt,), name="pool-connect", daemon=True
        ).start()
        return attempt

    def _open_connection(self, attempt: _ConnectAttempt) -> None:
        """Runs on its own thread, without the lock, while the caller waits."""
        try:
            conn = psycopg2.connect(**self._connect_kwargs)
        except psycopg2.Error as e:
            logger.warning(f"Failed to open database connection: {e}")
            with self._cond:
                self._total -= 1
                attempt.error, attempt.done = e, True
                self._cond.notify_all()
            return

        with self._cond:
            self._total -= 1
            attempt.done = True
            kept = not self._closed
            if kept:
                self._keep(conn)
            self._cond.notify_all()
        if not kept:
            conn.close()

    def _is_expired(self, conn) -> bool:
        if conn.closed:
            return True
        opened_at, returned_at = self._ages.get(id(conn), (self._clock(), self._clock()))
        now = self._clock()
        if now - opened_at >= self.tuning.max_lifetime:
            return True
        return now - returned_at >= self.tuning.idle_timeout


_pool: Optional[ConnectionPool] = None
_init_lock = threading.Lock()


def init_pool(settings: DatabaseSettings, tuning: Optional[PoolSettings] = None) -> ConnectionPool:
    """
    Initialize the process-wide connection pool.

    Safe to call more than once: later calls return the pool created by the
    first one and ignore their arguments.

    Args:
        settings: Database connection settings.
        tuning: Pool size and timeouts (defaults: 5 connections, 10s acquire
            timeout, 10 min idle timeout, 30 min max lifetime).

    Returns:
        The shared ConnectionPool handle.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    with _init_lock:
        if _pool is not None:
            logger.debug("Database connection pool already initialized; reusing it.")
            return _pool
        try:
            _pool = ConnectionPool(settings, tuning)
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise
        logger.info(
            f"Database connection pool initialized "
            f"(host={settings.host}, db={settings.name}, max_size={_pool.tuning.max_size})."
        )
        return _pool


def get_pool() -> ConnectionPool:
    """
    Return the process-wide pool.

    Raises:
        RuntimeError: If the pool has not been initialized.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool


def close_pool() -> None:
    """Close the process-wide pool. Does nothing if no pool was created."""
    global _pool
    with _init_lock:
        if _pool is not None:
            _pool.close()
            _pool = None
