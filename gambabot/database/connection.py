"""SQLite connection management for the ledger, duel and cooldown tables.

A single aiosqlite connection is shared by the whole process. Every use of it
goes through an asyncio.Lock so that a transaction opened by one task never
picks up statements issued by another.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

PRAGMAS = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "foreign_keys": "ON",
    "temp_store": "2",
    "cache_size": "-32000",
}

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id   TEXT PRIMARY KEY,
    name      TEXT NOT NULL,
    last_seen REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS users_name_idx ON users (name);

CREATE TABLE IF NOT EXISTS ledger (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id    TEXT    NOT NULL,
    game       TEXT    NOT NULL,
    delta      INTEGER NOT NULL,
    created_at REAL    NOT NULL
);
CREATE INDEX IF NOT EXISTS ledger_user_idx ON ledger (user_id);

CREATE TABLE IF NOT EXISTS duels (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    challenger_id TEXT    NOT NULL,
    target_id     TEXT    NOT NULL,
    amount        INTEGER NOT NULL CHECK (amount > 0),
    created_at    REAL    NOT NULL,
    pending       INTEGER NOT NULL DEFAULT 1,
    accepted      INTEGER NOT NULL DEFAULT 0,
    won           INTEGER NOT NULL DEFAULT 0,
    resolved_at   REAL,
    CHECK (challenger_id <> target_id)
);
CREATE INDEX IF NOT EXISTS duels_pending_target_idx ON duels (target_id) WHERE pending = 1;

-- One row per user involved in a pending duel, in either role.
CREATE TABLE IF NOT EXISTS pending_duel_users (
    user_id TEXT    PRIMARY KEY,
    duel_id INTEGER NOT NULL REFERENCES duels (id)
);

CREATE TABLE IF NOT EXISTS cooldowns (
    scope    TEXT NOT NULL,
    command  TEXT NOT NULL,
    key      TEXT NOT NULL,
    last_run REAL NOT NULL,
    PRIMARY KEY (scope, command, key)
);
"""


class Database:
    """Owns the aiosqlite connection and the schema.

    Usage:
        db = Database("gambabot.db")
        await db.connect()
        async with db.transaction() as conn:
            ...
        await db.close()
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the connection, apply pragmas and create missing tables."""
        if self._conn is not None:
            logger.warning("Database already connected")
            return

        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        # isolation_level=None: we issue BEGIN/COMMIT ourselves
        conn = await aiosqlite.connect(self.path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        try:
            for name, value in PRAGMAS.items():
                await conn.execute(f"PRAGMA {name} = {value}")
            await conn.executescript(SCHEMA)
        except aiosqlite.Error:
            await conn.close()
            raise
        self._conn = conn
        logger.info(f"Database ready at {self.path}")

    async def close(self) -> None:
        """Close the connection (no-op if it was never opened)."""
        if self._conn is None:
            return
        async with self._lock:
            try:
                await self._conn.execute("PRAGMA optimize")
            except aiosqlite.Error as e:
                logger.warning(f"PRAGMA optimize failed on close: {e}")
            await self._conn.close()
            self._conn = None
        logger.info("Database closed")

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the raw connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    # ── Access ───────────────────────────────────────────────────────

    @contextlib.asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Exclusive use of the connection, each statement autocommitted."""
        async with self._lock:
            yield self.conn

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Exclusive use of the connection inside BEGIN IMMEDIATE ... COMMIT.

        Any exception, including a failed COMMIT, rolls the transaction back
        and is re-raised.
        """
        async with self._lock:
            conn = self.conn
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            else:
                try:
                    await conn.execute("COMMIT")
                except aiosqlite.Error:
                    # a failed COMMIT leaves the transaction open
                    await conn.execute("ROLLBACK")
                    raise

