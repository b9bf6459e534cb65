"""Repository for the duels and pending_duel_users tables."""

from __future__ import annotations

import logging

import aiosqlite

from gambabot.database.models import Duel
from gambabot.database.repositories.base import Repository
from gambabot.errors import DuelInvariantError

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, challenger_id, target_id, amount, created_at, pending, accepted, won, resolved_at"
)


class DuelRepository(Repository):
    """Pure SQL operations for duels.

    `cutoff` arguments are epoch timestamps: a pending duel created at or
    before the cutoff has outlived its acceptance window and is ignored.
    """

    async def create(self, challenger_id: str, target_id: str, amount: int) -> Duel:
        """Insert a pending duel and claim both participants.

        Raises:
            DuelInvariantError: If either user already holds a pending duel.
        """
        created_at = self.clock()
        async with self.transaction() as conn:
            cursor = await conn.execute(
                "INSERT INTO duels (challenger_id, target_id, amount, created_at) "
                "VALUES (?, ?, ?, ?)",
                (challenger_id, target_id, amount, created_at),
            )
            duel_id = cursor.lastrowid
            await cursor.close()
            try:
                await conn.executemany(
                    "INSERT INTO pending_duel_users (user_id, duel_id) VALUES (?, ?)",
                    [(challenger_id, duel_id), (target_id, duel_id)],
                )
            except aiosqlite.IntegrityError as e:
                raise DuelInvariantError(
                    f"duel {challenger_id} vs {target_id}: a participant already has a pending duel"
                ) from e

        return Duel.from_row(
            {
                "id": duel_id,
                "challenger_id": challenger_id,
                "target_id": target_id,
                "amount": amount,
                "created_at": created_at,
                "pending": 1,
                "accepted": 0,
                "won": 0,
                "resolved_at": None,
            }
        )

    async def by_id(self, duel_id: int) -> Duel | None:
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM duels WHERE id = ?", (duel_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return Duel.from_row(row) if row else None

    async def pending_involving(self, user_id: str, cutoff: float) -> list[Duel]:
        """Live pending duels where `user_id` is challenger or target."""
        return await self._pending(
            "(challenger_id = ? OR target_id = ?)", (user_id, user_id), cutoff
        )

    async def pending_against(self, target_id: str, cutoff: float) -> list[Duel]:
        """Live pending duels targeting `target_id`."""
        return await self._pending("target_id = ?", (target_id,), cutoff)

    async def resolve(self, duel_id: int, *, accepted: bool, won: bool = False) -> bool:
        """Move a pending duel to a terminal state.

        Returns False if the duel was no longer pending (e.g. a concurrent
        accept got there first), in which case nothing is written.
        """
        async with self.transaction() as conn:
            cursor = await conn.execute(
                "UPDATE duels SET pending = 0, accepted = ?, won = ?, resolved_at = ? "
                "WHERE id = ? AND pending = 1",
                (int(accepted), int(won), self.clock(), duel_id),
            )
            changed = cursor.rowcount
            await cursor.close()
            if changed == 0:
                return False
            await conn.execute(
                "DELETE FROM pending_duel_users WHERE duel_id = ?", (duel_id,)
            )
        return True

    async def expire_stale(self, cutoff: float) -> int:
        """Expire every pending duel created at or before `cutoff`. Returns the count."""
        async with self.transaction() as conn:
            async with conn.execute(
                "SELECT id FROM duels WHERE pending = 1 AND created_at <= ?", (cutoff,)
            ) as cursor:
                stale = [row["id"] for row in await cursor.fetchall()]
            if not stale:
                return 0
            now = self.clock()
            await conn.executemany(
                "UPDATE duels SET pending = 0, accepted = 0, resolved_at = ? "
                "WHERE id = ? AND pending = 1",
                [(now, duel_id) for duel_id in stale],
            )
            await conn.executemany(
                "DELETE FROM pending_duel_users WHERE duel_id = ?",
                [(duel_id,) for duel_id in stale],
            )
        logger.info(f"Expired {len(stale)} stale duel(s)")
        return len(stale)

    async def _pending(self, where: str, params: tuple, cutoff: float) -> list[Duel]:
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM duels "
                f"WHERE pending = 1 AND created_at > ? AND {where} ORDER BY id",
                (cutoff, *params),
            ) as cursor:
                rows = await cursor.fetchall()
        return [Duel.from_row(row) for row in rows]
