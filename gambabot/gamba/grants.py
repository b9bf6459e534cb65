from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Iterable, Optional

from gambabot.database.repositories import Ledger, UserRepository

logger = logging.getLogger(__name__)

GRANT_GAME = "AutomaticGrant"

# () -> user IDs currently present in chat, e.g. TwitchApi.current_chatter_ids
ChatterSource = Callable[[], Iterable[str]]


class PointGranter:
    """Periodically grants points to everyone in chat.

    Users seen chatting during the last interval get `amount`. Users who are
    only present in chat (lurkers) get `inactive_amount`, provided the bot has
    seen them chat at least once. Nobody gets more than one grant per run.

    Args:
        users: Used to find who was active and who is known.
        ledger: Receives one AutomaticGrant entry per user.
        interval: Seconds between grants; also the activity lookback.
        amount: Points granted per active user per run.
        inactive_amount: Points granted per lurker per run.
        chatters: Source of the user IDs currently in chat. Without one
            only active users are granted.
    """

    def __init__(
        self,
        users: UserRepository,
        ledger: Ledger,
        interval: float = 600,
        amount: int = 10,
        inactive_amount: int = 3,
        chatters: Optional[ChatterSource] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.users = users
        self.ledger = ledger
        self.interval = interval
        self.amount = amount
        self.inactive_amount = inactive_amount
        self.chatters = chatters
        self.clock = clock

    def _present_ids(self) -> list[str]:
        if self.chatters is None:
            return []
        try:
            return list(self.chatters())
        except Exception:
            logger.exception("Failed to list current chatters")
            return []

    async def grant_once(self) -> int:
        """Grant points to active users and lurkers. Returns how many were granted."""
        active = await self.users.active_since(self.clock() - self.interval)
        grants = {user.user_id: self.amount for user in active}

        for user in await self.users.by_ids(self._present_ids()):
            # active wins over present
            grants.setdefault(user.user_id, self.inactive_amount)

        grants = {user_id: n for user_id, n in grants.items() if n > 0}
        if not grants:
            return 0
        await self.ledger.record_many(
            (user_id, GRANT_GAME, n) for user_id, n in grants.items()
        )
        active_ids = {user.user_id for user in active}
        lurkers = sum(1 for user_id in grants if user_id not in active_ids)
        logger.info(
            f"Granted points to {len(grants)} user(s): "
            f"{len(grants) - lurkers} active, {lurkers} lurking"
        )
        return len(grants)

    async def run(self) -> None:
        """Grant every interval until cancelled. Failures are logged and retried next run."""
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.grant_once()
            except Exception:
                logger.exception("Automatic point grant failed")
