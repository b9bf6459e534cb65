"""Append-only points ledger.

A balance is never stored. It is always the sum of a user's deltas, so two
writers crediting the same user cannot lose each other's update. Business
rules (e.g. "cannot go negative") are the caller's job.
"""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

from gambabot.database.models import LedgerEntry
from gambabot.database.repositories.base import Repository

logger = logging.getLogger(__name__)

_COLUMNS = "id, user_id, game, delta, created_at"

# (user_id, game, delta)
Transaction = Tuple[str, str, int]


class Ledger(Repository):
    """Records point deltas and derives balances from them."""

    async def record(self, user_id: str, game: str, delta: int) -> LedgerEntry:
        """Append one entry."""
        async with self.acquire() as conn:
            entry = await self._insert(conn, user_id, game, delta)
        logger.debug(f"Ledger: {user_id} {delta:+d} ({game})")
        return entry

    async def record_many(self, transactions: Iterable[Transaction]) -> list[LedgerEntry]:
        """Append several entries atomically: either all are written or none."""
        async with self.transaction() as conn:
            entries = [
                await self._insert(conn, user_id, game, delta)
                for user_id, game, delta in transactions
            ]
        return entries

    async def balance_of(self, user_id: str) -> int:
        """Sum of every delta recorded for `user_id` (0 if none)."""
        async with self.acquire() as conn:
            async with conn.execute(
                "SELECT COALESCE(SUM(delta), 0) FROM ledger WHERE user_id = ?",
                (user_id,),
            ) as cursor:
                row = await cursor.fetchone()
        return int(row[0])

    async def entries_for(self, user_id: str) -> list[LedgerEntry]:
        """All entries for `user_id` in insertion order."""
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM ledger WHERE user_id = ? ORDER BY id",
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [LedgerEntry.from_row(row) for row in rows]

    async def _insert(self, conn, user_id: str, game: str, delta: int) -> LedgerEntry:
        created_at = self.clock()
        cursor = await conn.execute(
            "INSERT INTO ledger (user_id, game, delta, created_at) VALUES (?, ?, ?, ?)",
            (user_id, game, int(delta), created_at),
        )
        entry_id = cursor.lastrowid
        await cursor.close()
        return LedgerEntry.from_row(
            {
                "id": entry_id,
                "user_id": user_id,
                "game": game,
                "delta": int(delta),
                "created_at": created_at,
            }
        )
