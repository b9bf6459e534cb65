from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from gambabot.commands import (
    CommandRegistry,
    Dispatcher,
    GambaCommands,
    register_builtins,
    register_gamba,
)
from gambabot.config import BotConfig
from gambabot.database import Database
from gambabot.database.repositories import CooldownStore, DuelRepository, Ledger, UserRepository
from gambabot.gamba import CoinFlip, DuelService, PointGranter, SystemCoin

__all__ = ["Services", "bootstrap"]

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a running bot shares, built once and passed explicitly."""

    db: Database
    users: UserRepository
    ledger: Ledger
    duel_repo: DuelRepository
    cooldowns: CooldownStore
    duels: DuelService
    granter: PointGranter
    registry: CommandRegistry
    dispatcher: Dispatcher

    async def close(self) -> None:
        await self.db.close()


async def bootstrap(
    config: BotConfig,
    *,
    db: Optional[Database] = None,
    coin: Optional[CoinFlip] = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    """Connect storage and build the command catalog.

    Args:
        config: Loaded bot configuration.
        db: Database to use instead of one at `config.database_path`.
        coin: Random source for roulette and duels (default: SystemCoin).
        clock: Epoch-seconds clock shared by every component.

    Raises:
        CatalogError: if two commands claim the same name.
    """
    if db is None:
        db = Database(config.database_path)
        await db.connect()
    coin = coin or SystemCoin()

    users = UserRepository(db, clock)
    ledger = Ledger(db, clock)
    duel_repo = DuelRepository(db, clock)
    cooldowns = CooldownStore(db, clock)
    duels = DuelService(duel_repo, ledger, coin, clock=clock)
    granter = PointGranter(
        users,
        ledger,
        interval=config.grant_interval,
        amount=config.grant_amount,
        inactive_amount=config.grant_inactive_amount,
        clock=clock,
    )

    registry = CommandRegistry()
    register_builtins(registry, config.bot_login)
    register_gamba(registry, GambaCommands(users, ledger, duels, coin, config.bot_login))
    logger.info(f"Registered {len(registry)} commands: {', '.join(registry.list_commands())}")

    return Services(
        db=db,
        users=users,
        ledger=ledger,
        duel_repo=duel_repo,
        cooldowns=cooldowns,
        duels=duels,
        granter=granter,
        registry=registry,
        dispatcher=Dispatcher(registry, cooldowns),
    )
