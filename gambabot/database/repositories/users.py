"""Repository for the users table."""

from __future__ import annotations

import logging
from typing import Iterable

from gambabot.database.models import User
from gambabot.database.repositories.base import Repository

logger = logging.getLogger(__name__)

_COLUMNS = "user_id, name, last_seen"

# stay well under SQLite's bound-parameter limit
_LOOKUP_CHUNK = 500


class UserRepository(Repository):
    """Maps platform user IDs to the login they were last seen with."""

    async def remember(self, user_id: str, name: str) -> None:
        """Record that `user_id` just chatted as `name`."""
        async with self.acquire() as conn:
            await conn.execute(
                "INSERT INTO users (user_id, name, last_seen) VALUES (?, ?, ?) "
                "ON CONFLICT (user_id) DO UPDATE SET "
                "name = excluded.name, last_seen = excluded.last_seen",
                (user_id, name.lower(), self.clock()),
            )

    async def by_id(self, user_id: str) -> User | None:
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE user_id = ?", (user_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return User.from_row(row) if row else None

    async def by_name(self, name: str) -> User | None:
        """Look up a login (case-insensitive, leading @ ignored).

        If a login was used by several accounts, the most recently seen wins.
        """
        login = name.lstrip("@").lower()
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE name = ? "
                "ORDER BY last_seen DESC LIMIT 1",
                (login,),
            ) as cursor:
                row = await cursor.fetchone()
        return User.from_row(row) if row else None

    async def by_ids(self, user_ids: Iterable[str]) -> list[User]:
        """The known users among `user_ids`. Unknown IDs are skipped."""
        ids = list(dict.fromkeys(user_ids))
        users: list[User] = []
        async with self.acquire() as conn:
            for start in range(0, len(ids), _LOOKUP_CHUNK):
                chunk = ids[start : start + _LOOKUP_CHUNK]
                marks = ", ".join("?" * len(chunk))
                async with conn.execute(
                    f"SELECT {_COLUMNS} FROM users WHERE user_id IN ({marks})", chunk
                ) as cursor:
                    users.extend(User.from_row(row) for row in await cursor.fetchall())
        return sorted(users, key=lambda u: u.user_id)

    async def active_since(self, since: float) -> list[User]:
        """Users seen at or after the epoch timestamp `since`."""
        async with self.acquire() as conn:
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM users WHERE last_seen >= ? ORDER BY user_id",
                (since,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [User.from_row(row) for row in rows]
