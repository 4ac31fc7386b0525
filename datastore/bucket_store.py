"""Embedded ordered key-value store with named buckets.

Buckets live in a single SQLite file. Keys are strings stored as their UTF-8
bytes, so ``scan`` walks them in byte order; values are opaque bytes.
All access goes through ``view()`` (shared, read-only snapshot) or
``update()`` (exclusive, single writer) transactions.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

MAX_KEY_SIZE = 32768

# Seconds a writer waits for the write lock held by another transaction.
_BUSY_TIMEOUT = 60.0

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS buckets (name BLOB PRIMARY KEY) WITHOUT ROWID",
    "CREATE TABLE IF NOT EXISTS entries ("
    "bucket BLOB NOT NULL, key BLOB NOT NULL, value BLOB NOT NULL, "
    "PRIMARY KEY (bucket, key)) WITHOUT ROWID",
)


class StoreError(Exception):
    """Base class for every failure raised by the bucket store."""


class StoreClosedError(StoreError):
    pass


class TransactionClosedError(StoreError):
    pass


class ReadOnlyTransactionError(StoreError):
    pass


class BucketNameRequiredError(StoreError):
    pass


class BucketExistsError(StoreError):
    pass


class KeyRequiredError(StoreError):
    pass


class KeyTooLargeError(StoreError):
    pass


def _encode_name(name: str) -> bytes:
    if not name:
        raise BucketNameRequiredError("bucket name required")
    return name.encode("utf-8")


def _encode_key(key: str) -> bytes:
    if not key:
        raise KeyRequiredError("key required")
    raw = key.encode("utf-8")
    if len(raw) > MAX_KEY_SIZE:
        raise KeyTooLargeError("key too large")
    return raw


class Bucket:
    """Ordered collection of key/value pairs inside one transaction."""

    def __init__(self, tx: "Transaction", name: str) -> None:
        self._tx = tx
        self.name = name
        self._raw_name = name.encode("utf-8")

    def get(self, key: str) -> Optional[bytes]:
        conn = self._tx._connection()
        row = conn.execute(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?",
            (self._raw_name, key.encode("utf-8")),
        ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def put(self, key: str, value: bytes) -> None:
        conn = self._tx._writable_connection()
        conn.execute(
            "INSERT OR REPLACE INTO entries (bucket, key, value) VALUES (?, ?, ?)",
            (self._raw_name, _encode_key(key), bytes(value)),
        )

    def scan(self, start: Optional[str] = None) -> Iterator[tuple[str, bytes]]:
        """Yield ``(key, value)`` pairs in key order, beginning at the first key >= ``start``."""

        conn = self._tx._connection()
        if start:
            cursor = conn.execute(
                "SELECT key, value FROM entries WHERE bucket = ? AND key >= ? ORDER BY key",
                (self._raw_name, start.encode("utf-8")),
            )
        else:
            cursor = conn.execute(
                "SELECT key, value FROM entries WHERE bucket = ? ORDER BY key",
                (self._raw_name,),
            )
        for raw_key, value in cursor:
            yield bytes(raw_key).decode("utf-8"), bytes(value)

    def count(self) -> int:
        conn = self._tx._connection()
        (total,) = conn.execute(
            "SELECT COUNT(*) FROM entries WHERE bucket = ?", (self._raw_name,)
        ).fetchone()
        return int(total)


class Transaction:

    def __init__(self, conn: sqlite3.Connection, writable: bool) -> None:
        self._conn: Optional[sqlite3.Connection] = conn
        self.writable = writable

    def bucket(self, name: str) -> Optional[Bucket]:
        conn = self._connection()
        row = conn.execute(
            "SELECT 1 FROM buckets WHERE name = ?", (name.encode("utf-8"),)
        ).fetchone()
        if row is None:
            return None
        return Bucket(self, name)

    def create_bucket(self, name: str) -> Bucket:
        raw_name = _encode_name(name)
        conn = self._writable_connection()
        if self.bucket(name) is not None:
            raise BucketExistsError("bucket already exists")
        conn.execute("INSERT INTO buckets (name) VALUES (?)", (raw_name,))
        return Bucket(self, name)

    def create_bucket_if_not_exists(self, name: str) -> Bucket:
        raw_name = _encode_name(name)
        conn = self._writable_connection()
        conn.execute("INSERT OR IGNORE INTO buckets (name) VALUES (?)", (raw_name,))
        return Bucket(self, name)

    def bucket_names(self) -> list[str]:
        conn = self._connection()
        rows = conn.execute("SELECT name FROM buckets ORDER BY name").fetchall()
        return [bytes(row[0]).decode("utf-8") for row in rows]

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise TransactionClosedError("tx closed")
        return self._conn

    def _writable_connection(self) -> sqlite3.Connection:
        conn = self._connection()
        if not self.writable:
            raise ReadOnlyTransactionError("tx not writable")
        return conn

    def _close(self) -> None:
        self._conn = None


class BucketStore:
    """Single-file store handing out scoped read and read-write transactions."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._closed = False
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"open {self.path}: {exc}") from exc
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                conn.execute(statement)
        except sqlite3.Error as exc:
            raise StoreError(f"open {self.path}: {exc}") from exc
        finally:
            conn.close()

    @classmethod
    def open(cls, path: Union[str, Path]) -> "BucketStore":
        return cls(path)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    @contextmanager
    def view(self) -> Iterator[Transaction]:
        """Run the block inside a read-only snapshot transaction."""
        with self._transaction(writable=False) as tx:
            yield tx

    @contextmanager
    def update(self) -> Iterator[Transaction]:
        """Run the block inside the exclusive read-write transaction.

        The transaction commits when the block finishes and rolls back when it
        raises, so callers never see a partially applied write.
        """
        with self._transaction(writable=True) as tx:
            yield tx

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(
            str(self.path),
            timeout=_BUSY_TIMEOUT,
            isolation_level=None,
        )

    @contextmanager
    def _transaction(self, writable: bool) -> Iterator[Transaction]:
        if self._closed:
            raise StoreClosedError("database not open")
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

        tx = Transaction(conn, writable=writable)
        try:
            conn.execute("BEGIN IMMEDIATE" if writable else "BEGIN")
            yield tx
            conn.execute("COMMIT" if writable else "ROLLBACK")
        except sqlite3.Error as exc:
            _rollback(conn)
            raise StoreError(str(exc)) from exc
        except BaseException:
            _rollback(conn)
            raise
        finally:
            tx._close()
            conn.close()


def _rollback(conn: sqlite3.Connection) -> None:
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error:
        logger.exception("Rollback failed")
