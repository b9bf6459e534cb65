"""Repository for the cooldowns table."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gambabot.database.models import CooldownRecord
from gambabot.database.repositories.base import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Claim:
    """A successful cooldown claim, kept so it can be handed back."""

    scope: str
    command: str
    key: str
    claimed_at: float
    previous: float | None


class CooldownStore(Repository):
    """One row per (scope, command, key) holding the last successful run.

    `claim` checks the window and stamps `last_run` in one transaction, so two
    concurrent invocations can never both get through the same window.
    """

    async def claim(
        self, scope: str, command: str, key: str, seconds: float
    ) -> Claim | None:
        """Claim the window. Returns None while the previous run is too recent."""
        now = self.clock()
        async with self.transaction() as conn:
            async with conn.execute(
                "SELECT last_run FROM cooldowns WHERE scope = ? AND command = ? AND key = ?",
                (scope, command, key),
            ) as cursor:
                row = await cursor.fetchone()
            previous = row["last_run"] if row else None
            if previous is not None and now - previous < seconds:
                return None
            await conn.execute(
                "INSERT INTO cooldowns (scope, command, key, last_run) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (scope, command, key) DO UPDATE SET last_run = excluded.last_run",
                (scope, command, key, now),
            )
        return Claim(scope, command, key, now, previous)

    async def release(self, claim: Claim) -> None:
        """Undo `claim`, unless a later run has stamped the row since."""
        async with self.transaction() as conn:
            if claim.previous is None:
                await conn.execute(
                    "DELETE FROM cooldowns "
                    "WHERE scope = ? AND command = ? AND key = ? AND last_run = ?",
                    (claim.scope, claim.command, claim.key, claim.claimed_at),
                )
            else:
                await conn.execute(
                    "UPDATE cooldowns SET last_run = ? "
                    "WHERE scope = ? AND command = ? AND key = ? AND last_run = ?",
                    (
                        claim.previous,
                        claim.scope,
                        claim.command,
                        claim.key,
                        claim.claimed_at,
                    ),
                )
        logger.debug(f"Released cooldown {claim.scope}/{claim.command}/{claim.key}")

    async def get(self, scope: str, command: str, key: str) -> CooldownRecord | None:
        async with self.acquire() as conn:
            async with conn.execute(
                "SELECT scope, command, key, last_run FROM cooldowns "
                "WHERE scope = ? AND command = ? AND key = ?",
                (scope, command, key),
            ) as cursor:
                row = await cursor.fetchone()
        return CooldownRecord.from_row(row) if row else None
