"""Duel state machine.

    Proposed --accept--> Accepted
             --decline-> Declined
             --timeout-> Expired

A duel stays Proposed for DUEL_PENDING_SECONDS after creation. Once that
window has passed it is treated as Expired everywhere, whether or not the
sweep has flipped its row yet. Each transition runs in a single transaction.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from gambabot.database.models import Duel
from gambabot.database.repositories import DuelRepository, Ledger
from gambabot.gamba.coin import CoinFlip

logger = logging.getLogger(__name__)

DUEL_PENDING_SECONDS = 30
DUEL_GAME = "Duel"


class Proposal(Enum):
    STARTED = "started"
    SELF = "self"
    TOO_SMALL = "too_small"
    NEGATIVE = "negative"
    CHALLENGER_SHORT = "challenger_short"
    TARGET_SHORT = "target_short"
    CHALLENGER_BUSY = "challenger_busy"
    TARGET_BUSY = "target_busy"


@dataclass(frozen=True)
class ProposalResult:
    """Outcome of a propose call.

    `balance` is the balance that failed the check for the *_SHORT outcomes.
    """

    outcome: Proposal
    duel: Optional[Duel] = None
    balance: int = 0


@dataclass(frozen=True)
class Settlement:
    """An accepted duel and who took the pot."""

    duel: Duel
    winner_id: str
    loser_id: str

    @property
    def amount(self) -> int:
        return self.duel.amount

    @property
    def challenger_won(self) -> bool:
        return self.winner_id == self.duel.challenger_id


class DuelService:
    """Proposes, accepts, declines and expires duels.

    Args:
        duels: Duel repository.
        ledger: Ledger used to check balances and settle accepted duels.
        coin: Random source deciding the winner. True means the challenger wins.
        window: Seconds a proposed duel may be answered.
        clock: Epoch-seconds clock.
    """

    def __init__(
        self,
        duels: DuelRepository,
        ledger: Ledger,
        coin: CoinFlip,
        window: float = DUEL_PENDING_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.duels = duels
        self.ledger = ledger
        self.coin = coin
        self.window = window
        self.clock = clock

    def _cutoff(self) -> float:
        return self.clock() - self.window

    async def propose(
        self, challenger_id: str, target_id: str, amount: int
    ) -> ProposalResult:
        """Start a duel if every precondition holds."""
        if challenger_id == target_id:
            return ProposalResult(Proposal.SELF)
        if amount == 0:
            return ProposalResult(Proposal.TOO_SMALL)
        if amount < 0:
            return ProposalResult(Proposal.NEGATIVE)

        async with self.duels.transaction() as conn:
            duels = self.duels.with_conn(conn)
            ledger = self.ledger.with_conn(conn)
            cutoff = self._cutoff()
            await duels.expire_stale(cutoff)

            challenger_balance = await ledger.balance_of(challenger_id)
            if amount > challenger_balance:
                return ProposalResult(Proposal.CHALLENGER_SHORT, balance=challenger_balance)
            target_balance = await ledger.balance_of(target_id)
            if amount > target_balance:
                return ProposalResult(Proposal.TARGET_SHORT, balance=target_balance)

            if await duels.pending_involving(challenger_id, cutoff):
                return ProposalResult(Proposal.CHALLENGER_BUSY)
            if await duels.pending_involving(target_id, cutoff):
                return ProposalResult(Proposal.TARGET_BUSY)

            duel = await duels.create(challenger_id, target_id, amount)

        logger.info(f"Duel {duel.id}: {challenger_id} -> {target_id} for {amount}")
        return ProposalResult(Proposal.STARTED, duel=duel)

    async def accept(self, target_id: str) -> Optional[Settlement]:
        """Accept the live duel against `target_id`. None if there is none."""
        async with self.duels.transaction() as conn:
            duels = self.duels.with_conn(conn)
            duel = await self._live_duel_against(duels, target_id)
            if duel is None:
                return None

            challenger_won = self.coin.flip()
            if challenger_won:
                winner, loser = duel.challenger_id, duel.target_id
            else:
                winner, loser = duel.target_id, duel.challenger_id

            if not await duels.resolve(duel.id, accepted=True, won=challenger_won):
                return None
            await self.ledger.with_conn(conn).record_many(
                [
                    (winner, DUEL_GAME, duel.amount),
                    (loser, DUEL_GAME, -duel.amount),
                ]
            )
            settled = await duels.by_id(duel.id)

        logger.info(f"Duel {duel.id} accepted, {winner} wins {duel.amount}")
        return Settlement(duel=settled or duel, winner_id=winner, loser_id=loser)

    async def decline(self, target_id: str) -> Optional[Duel]:
        """Decline the live duel against `target_id`. None if there is none."""
        async with self.duels.transaction() as conn:
            duels = self.duels.with_conn(conn)
            duel = await self._live_duel_against(duels, target_id)
            if duel is None:
                return None
            if not await duels.resolve(duel.id, accepted=False):
                return None
            declined = await duels.by_id(duel.id)

        logger.info(f"Duel {duel.id} declined")
        return declined

    async def expire_stale(self) -> int:
        """Flip every Proposed duel whose window has passed to Expired."""
        return await self.duels.expire_stale(self._cutoff())

    async def _live_duel_against(
        self, duels: DuelRepository, target_id: str
    ) -> Optional[Duel]:
        cutoff = self._cutoff()
        await duels.expire_stale(cutoff)
        pending = await duels.pending_against(target_id, cutoff)
        return pending[0] if pending else None


async def run_expiry_sweep(service: DuelService, interval: float) -> None:
    """Expire stale duels every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await service.expire_stale()
        except Exception:
            logger.exception("Duel expiry sweep failed")
