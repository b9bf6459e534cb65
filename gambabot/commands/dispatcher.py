from __future__ import annotations

import logging
from typing import List, Optional

from gambabot.commands.args import parse_args
from gambabot.commands.registry import Command, CommandContext, CommandRegistry
from gambabot.database.repositories import Claim, CooldownStore
from gambabot.message import IncomingMessage, OutgoingMessage
from gambabot.permission import authorized

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes one incoming message to at most one command handler.

    Args:
        registry: The command catalog (read-only once dispatching starts).
        cooldowns: Store used to gate commands that declare a cooldown.
    """

    def __init__(self, registry: CommandRegistry, cooldowns: CooldownStore) -> None:
        self.registry = registry
        self.cooldowns = cooldowns

    async def handle(self, msg: IncomingMessage) -> List[OutgoingMessage]:
        """Run the command `msg` invokes, if any, and return its replies.

        Unknown commands, insufficient permission and active cooldowns all
        return an empty list. Exceptions raised by the handler propagate; the
        cooldown window is handed back in that case.
        """
        resolved = self.registry.resolve(msg)
        if resolved is None:
            return []
        command, rest = resolved

        if not authorized(msg.permission, command.permission):
            logger.debug(
                f"{msg.user} ({msg.permission.name}) lacks {command.permission.name} "
                f"for {command.name}"
            )
            return []

        claim = await self._claim_cooldown(command, msg)
        if command.cooldown is not None and claim is None:
            logger.debug(f"{command.name} on cooldown for {command.cooldown.key_for(msg)}")
            return []

        args = parse_args(command.params, rest)
        ctx = CommandContext(message=msg, command=command)
        try:
            replies = await command.handler(ctx, args)
        except Exception:
            if claim is not None:
                await self.cooldowns.release(claim)
            raise

        return list(replies or [])

    async def _claim_cooldown(
        self, command: Command, msg: IncomingMessage
    ) -> Optional[Claim]:
        if command.cooldown is None:
            return None
        return await self.cooldowns.claim(
            command.cooldown.scope.value,
            command.name,
            command.cooldown.key_for(msg),
            command.cooldown.seconds,
        )
