from __future__ import annotations

from typing import List

from .args import Arg, Param, ParamType
from .registry import Command, CommandContext, CommandRegistry, Cooldown, CooldownScope
from gambabot.message import OutgoingMessage
from gambabot.permission import Permission


class BuiltinCommands:
    """Small informational commands that need no storage.

    Args:
        bot_name: Login the bot chats as.
    """

    def __init__(self, bot_name: str):
        self.bot_name = bot_name

    # ----- handlers (all async, return a list of replies) -----

    async def botinfo(self, ctx: CommandContext, args: List[Arg]) -> List[OutgoingMessage]:
        """Describe the bot."""
        return ctx.reply(
            f"Beep boop, this is {self.bot_name} running in {ctx.channel} "
            f"with prefix {ctx.prefix}."
        )

    async def prefix(self, ctx: CommandContext, args: List[Arg]) -> List[OutgoingMessage]:
        """Report the channel's prefix."""
        return ctx.reply(f"This channel's prefix is {ctx.prefix}")

    async def echo(self, ctx: CommandContext, args: List[Arg]) -> List[OutgoingMessage]:
        """Repeat the given text."""
        (text,) = args
        if not text.present:
            return ctx.usage()
        return ctx.reply(str(text.value))


def register_builtins(registry: CommandRegistry, bot_name: str) -> BuiltinCommands:
    """Register all built-in command handlers on a registry.

    Args:
        registry: CommandRegistry instance to populate.
        bot_name: Login the bot chats as.

    Returns:
        BuiltinCommands: The command provider instance.
    """
    cmds = BuiltinCommands(bot_name)

    registry.register(
        Command(
            name="botinfo",
            handler=cmds.botinfo,
            description="Replies with info about the bot.",
        )
    )
    registry.register(
        Command(
            name="prefix",
            handler=cmds.prefix,
            description="Replies with the prefix in this channel.",
        )
    )
    registry.register(
        Command(
            name="echo",
            handler=cmds.echo,
            params=(Param("text", ParamType.VARIADIC, required=True),),
            permission=Permission.MOD,
            cooldown=Cooldown(CooldownScope.CHANNEL, 10),
            description="Repeats the given text.",
        )
    )

    # optional aliases
    registry.add_alias("bot", "botinfo")
    registry.add_alias("info", "botinfo")
    registry.add_alias("about", "botinfo")

    return cmds
