"""Shared plumbing for repositories."""

from __future__ import annotations

import contextlib
import copy
import time
from collections.abc import AsyncIterator
from typing import Callable, TypeVar

import aiosqlite

from gambabot.database.connection import Database
from gambabot.errors import StoreError

Clock = Callable[[], float]

R = TypeVar("R", bound="Repository")


class Repository:
    """Base class binding a repository to a Database.

    A repository can be rebound to a connection that is already inside a
    transaction with `with_conn`, so several repositories can write within one
    `Database.transaction()`.
    """

    def __init__(self, db: Database, clock: Clock = time.time) -> None:
        self.db = db
        self.clock = clock
        self._conn: aiosqlite.Connection | None = None

    def with_conn(self: R, conn: aiosqlite.Connection) -> R:
        """Return a copy of this repository that runs on `conn`."""
        bound = copy.copy(self)
        bound._conn = conn
        return bound

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the bound connection, or take the shared one for a single call."""
        try:
            if self._conn is not None:
                yield self._conn
            else:
                async with self.db.connection() as conn:
                    yield conn
        except aiosqlite.Error as e:
            raise StoreError(f"{type(self).__name__}: {type(e).__name__}: {e}") from e

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the bound connection, or open a new transaction."""
        if self._conn is not None:
            yield self._conn
            return
        try:
            async with self.db.transaction() as conn:
                yield conn
        except aiosqlite.Error as e:
            raise StoreError(f"{type(self).__name__}: {type(e).__name__}: {e}") from e
