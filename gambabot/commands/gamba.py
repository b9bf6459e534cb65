from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from gambabot.commands.args import Arg, Param, ParamType
from gambabot.commands.registry import (
    Command,
    CommandContext,
    CommandRegistry,
    Cooldown,
    CooldownScope,
)
from gambabot.database.models import User
from gambabot.database.repositories import Ledger, UserRepository
from gambabot.gamba import DUEL_PENDING_SECONDS, CoinFlip, DuelService, Proposal
from gambabot.message import OutgoingMessage

logger = logging.getLogger(__name__)

ROULETTE_GAME = "Roulette"
GIVE_POINTS_GAME = "GivePoints"

Replies = List[OutgoingMessage]


def parse_wager(text: str, balance: int) -> Optional[int]:
    """Turn `all`, `N%` or `N` into a point amount. None if unparsable.

    Percentages are of `balance` and rounded down.
    """
    text = text.strip().lower()
    if text == "all":
        return balance
    try:
        if text.endswith("%"):
            return (balance * int(text[:-1])) // 100
        return int(text)
    except ValueError:
        return None


class GambaCommands:
    """Points, roulette and duel handlers.

    Args:
        users: Resolves `<user>` arguments to user IDs.
        ledger: Points ledger.
        duels: Duel state machine.
        coin: Random source for roulette. True means the player wins.
        bot_name: Used in "never been seen" replies.
    """

    def __init__(
        self,
        users: UserRepository,
        ledger: Ledger,
        duels: DuelService,
        coin: CoinFlip,
        bot_name: str,
    ) -> None:
        self.users = users
        self.ledger = ledger
        self.duels = duels
        self.coin = coin
        self.bot_name = bot_name

    # ----- helpers -----

    async def _lookup(
        self, ctx: CommandContext, name: str
    ) -> Tuple[Optional[User], Replies]:
        """Resolve a login, or return the reply to send when it is unknown."""
        user = await self.users.by_name(name)
        if user is None:
            return None, ctx.reply(f"{name} has never been seen by {self.bot_name}")
        return user, []

    # ----- handlers -----

    async def points(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        """Report how many points someone has (default: the caller)."""
        (target_arg,) = args
        if not target_arg.present or str(target_arg.value).lower() == ctx.user.lower():
            balance = await self.ledger.balance_of(ctx.user_id)
            return ctx.reply(f"GAMBA {ctx.user} has {balance} points")

        target, unknown = await self._lookup(ctx, str(target_arg.value))
        if target is None:
            return unknown
        balance = await self.ledger.balance_of(target.user_id)
        return ctx.reply(f"GAMBA {target_arg.value} has {balance} points")

    async def givepoints(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        target_arg, amount_arg = args
        if not target_arg.present or not amount_arg.present:
            return ctx.usage()
        name, amount = str(target_arg.value), int(amount_arg.value)

        if name.lower() == ctx.user.lower():
            return ctx.reply("You can't give points to yourself Pepega")
        if amount < 1:
            return ctx.reply("You must give at least 1 point.")

        target, unknown = await self._lookup(ctx, name)
        if target is None:
            return unknown
        if target.user_id == ctx.user_id:
            return ctx.reply("You can't give points to yourself Pepega")

        balance = await self.ledger.balance_of(ctx.user_id)
        if amount > balance:
            return ctx.reply(
                f"You can't give more points than you have (you have {balance} points)"
            )

        await self.ledger.record_many(
            [
                (ctx.user_id, GIVE_POINTS_GAME, -amount),
                (target.user_id, GIVE_POINTS_GAME, amount),
            ]
        )
        return ctx.reply(f"{ctx.user} gave {amount} points to {name} FeelsOkayMan <3")

    async def roulette(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        """Double or nothing on a coin flip."""
        (amount_arg,) = args
        if not amount_arg.present:
            return ctx.usage()

        balance = await self.ledger.balance_of(ctx.user_id)
        amount = parse_wager(str(amount_arg.value), balance)
        if amount is None:
            return ctx.usage()
        if amount < 0:
            return ctx.reply("nice try forsenCD")
        if amount == 0:
            return ctx.reply("You must roulette at least 1 point.")
        if amount > balance:
            return ctx.reply(
                f"{ctx.user}: You don't have enough points for that (current: {balance})"
            )

        won = self.coin.flip()
        delta = amount if won else -amount
        await self.ledger.record(ctx.user_id, ROULETTE_GAME, delta)

        outcome = "won" if won else "lost"
        return ctx.reply(
            f"GAMBA {ctx.user} {outcome} {amount} points in roulette "
            f"and now has {balance + delta} points!"
        )

    async def duel(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        target_arg, amount_arg = args
        if not target_arg.present or not amount_arg.present:
            return ctx.usage()
        name, amount = str(target_arg.value), int(amount_arg.value)

        if name.lower() == ctx.user.lower():
            return ctx.reply("You can't duel yourself Pepega")
        if amount == 0:
            return ctx.reply("You must duel at least 1 point.")

        target, unknown = await self._lookup(ctx, name)
        if target is None:
            return unknown

        result = await self.duels.propose(ctx.user_id, target.user_id, amount)
        replies = {
            Proposal.SELF: "You can't duel yourself Pepega",
            Proposal.TOO_SMALL: "You must duel at least 1 point.",
            Proposal.NEGATIVE: "nice try forsenCD",
            Proposal.CHALLENGER_SHORT: (
                f"You don't have enough points for that duel (you have {result.balance} points)"
            ),
            Proposal.TARGET_SHORT: (
                f"{name} don't have enough points for that duel (they have {result.balance} points)"
            ),
            Proposal.CHALLENGER_BUSY: "You already have a duel pending.",
            Proposal.TARGET_BUSY: "That chatter already has a duel pending.",
            Proposal.STARTED: (
                f"@{name}, {ctx.user} has started a duel for {amount} points! "
                f"Type {ctx.prefix}accept or {ctx.prefix}decline "
                f"in the next {self.duels.window:g} seconds!"
            ),
        }
        return ctx.reply(replies[result.outcome])

    async def accept(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        settlement = await self.duels.accept(ctx.user_id)
        if settlement is None:
            return ctx.reply("There are no duels pending against you.")

        challenger = await self.users.by_id(settlement.duel.challenger_id)
        challenger_name = challenger.name if challenger else settlement.duel.challenger_id
        if settlement.challenger_won:
            winner, loser = challenger_name, ctx.user
        else:
            winner, loser = ctx.user, challenger_name
        return ctx.reply(
            f"{winner} won the duel with {loser} and wins {settlement.amount} points!"
        )

    async def decline(self, ctx: CommandContext, args: List[Arg]) -> Replies:
        if await self.duels.decline(ctx.user_id) is None:
            return ctx.reply("There are no duels pending against you.")
        return ctx.reply("Declined duel.")


def register_gamba(registry: CommandRegistry, cmds: GambaCommands) -> GambaCommands:
    """Register the gamba commands on a registry.

    Returns:
        GambaCommands: The handler provider, for tests and introspection.
    """
    user_cooldown = Cooldown(CooldownScope.USER, 5)
    user_param = Param("user", ParamType.USERNAME, required=True)
    amount_param = Param("amount", ParamType.INTEGER, required=True)

    for command in (
        Command(
            name="points",
            aliases=("p",),
            handler=cmds.points,
            params=(Param("user", ParamType.USERNAME),),
            description="Checks how many points someone has.",
        ),
        Command(
            name="givepoints",
            aliases=("gp",),
            handler=cmds.givepoints,
            params=(user_param, amount_param),
            description="Give points to another chatter.",
        ),
        Command(
            name="roulette",
            aliases=("r",),
            handler=cmds.roulette,
            params=(Param("amount", required=True, usage="amount|percent%|all"),),
            cooldown=user_cooldown,
            description="Roulettes some points.",
        ),
        Command(
            name="duel",
            handler=cmds.duel,
            params=(user_param, amount_param),
            cooldown=user_cooldown,
            description=(
                "Duels another chatter. They have "
                f"{DUEL_PENDING_SECONDS} seconds to accept or decline."
            ),
        ),
        Command(
            name="accept",
            handler=cmds.accept,
            description="Accepts a duel.",
        ),
        Command(
            name="decline",
            handler=cmds.decline,
            description="Declines a duel.",
        ),
    ):
        registry.register(command)
    return cmds
