from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from gambabot.commands.args import Arg, Param, ParamType
from gambabot.errors import CatalogError
from gambabot.message import IncomingMessage, OutgoingMessage
from gambabot.permission import Permission


class CooldownScope(Enum):
    """What a cooldown window is shared by."""

    CHANNEL = "channel"
    USER = "user"


@dataclass(frozen=True)
class Cooldown:
    """Minimum number of seconds between successful runs within one scope."""

    scope: CooldownScope
    seconds: float

    def key_for(self, msg: IncomingMessage) -> str:
        """Return the channel or user the window is tracked against."""
        if self.scope is CooldownScope.USER:
            return msg.user_id
        return msg.channel


@dataclass(frozen=True)
class CommandContext:
    """Runtime context for a single command invocation.

    Attributes:
        message: The chat message that invoked the command.
        command: The command being run.
    """

    message: IncomingMessage
    command: "Command"

    @property
    def channel(self) -> str:
        return self.message.channel

    @property
    def user(self) -> str:
        return self.message.user

    @property
    def user_id(self) -> str:
        return self.message.user_id

    @property
    def prefix(self) -> str:
        return self.message.prefix

    def reply(self, *texts: str) -> List[OutgoingMessage]:
        """Build replies addressed to the invoking channel."""
        return [OutgoingMessage(channel=self.message.channel, text=t) for t in texts]

    def usage(self) -> List[OutgoingMessage]:
        """Reply with the command's usage line."""
        return self.reply(f"Usage: {self.command.usage(self.message.prefix)}")


# Async handler signature: (ctx, args) -> replies
CommandHandler = Callable[[CommandContext, List[Arg]], Awaitable[List[OutgoingMessage]]]


@dataclass(frozen=True)
class Command:
    """A command the bot handles. Built once at startup and never mutated.

    Attributes:
        name: Primary invocation name.
        handler: Async function implementing the command.
        aliases: Alternate invocation names.
        params: Ordered parameters parsed from the text after the name.
        permission: Minimum level required to run the command.
        cooldown: Optional cooldown between successful runs.
        description: One-line human description.
        prefix_only: Whether the channel prefix is required to invoke it.
    """

    name: str
    handler: CommandHandler
    aliases: Tuple[str, ...] = ()
    params: Tuple[Param, ...] = ()
    permission: Permission = Permission.NORMAL
    cooldown: Optional[Cooldown] = None
    description: str = ""
    prefix_only: bool = True

    @property
    def invocations(self) -> Tuple[str, ...]:
        """Lowercased name followed by lowercased aliases."""
        return tuple(n.strip().lower() for n in (self.name, *self.aliases))

    def usage(self, prefix: str) -> str:
        """Return e.g. `$duel <user> <amount>`."""
        parts = [f"{prefix}{self.name}"]
        parts.extend(p.usage_fragment() for p in self.params)
        return " ".join(parts)

    def validate(self) -> None:
        """Raise CatalogError if the definition could be parsed ambiguously."""
        if not self.name.strip():
            raise CatalogError("Command name cannot be empty.")
        for name in self.invocations:
            if not name or any(c.isspace() for c in name):
                raise CatalogError(f"{self.name}: invalid invocation name {name!r}")
        if len(set(self.invocations)) != len(self.invocations):
            raise CatalogError(f"{self.name}: duplicate name/alias")

        seen_optional = False
        for i, param in enumerate(self.params):
            if param.type is ParamType.VARIADIC and i != len(self.params) - 1:
                raise CatalogError(
                    f"{self.name}: variadic param {param.name!r} must be last"
                )
            if param.required and seen_optional:
                raise CatalogError(
                    f"{self.name}: required param {param.name!r} follows an optional one"
                )
            if not param.required:
                if seen_optional:
                    raise CatalogError(
                        f"{self.name}: only one optional param is supported"
                    )
                seen_optional = True

        if self.cooldown is not None and self.cooldown.seconds <= 0:
            raise CatalogError(f"{self.name}: cooldown must be positive")

    def match(self, msg: IncomingMessage) -> Optional[str]:
        """Return the text after the invocation token, or None if not invoked."""
        if msg.has_prefix:
            text = msg.text_without_prefix()
        elif self.prefix_only:
            return None
        else:
            text = msg.text

        parts = text.strip().split(None, 1)
        if not parts or parts[0].lower() not in self.invocations:
            return None
        return parts[1] if len(parts) > 1 else ""


class CommandRegistry:
    """The command catalog: validates definitions and resolves invocations."""

    def __init__(self) -> None:
        self._commands: List[Command] = []
        self._by_name: Dict[str, Command] = {}

    # --- Registration ---

    def register(self, command: Command) -> Command:
        """
        Register a command.

        Raises:
            CatalogError: If the definition is invalid or any of its names is taken.
        """
        command.validate()
        taken = [n for n in command.invocations if n in self._by_name]
        if taken:
            owners = sorted({self._by_name[n].name for n in taken})
            raise CatalogError(
                f"{command.name}: name(s) {', '.join(taken)} already used by {', '.join(owners)}"
            )
        self._commands.append(command)
        for name in command.invocations:
            self._by_name[name] = command
        return command

    def add_alias(self, alias: str, target: str) -> None:
        """
        Register an alias that points to an existing command.

        Raises:
            KeyError: If the target command does not exist.
            CatalogError: If the alias is already taken.
        """
        alias_key = alias.strip().lower()
        current = self._by_name.get(target.strip().lower())
        if current is None:
            raise KeyError(f"Target command not found: {target}")
        if alias_key in self._by_name:
            raise CatalogError(f"Alias already in use: {alias}")

        updated = dataclasses.replace(current, aliases=(*current.aliases, alias))
        updated.validate()
        self._commands[self._commands.index(current)] = updated
        for name in updated.invocations:
            self._by_name[name] = updated

    # --- Lookup ---

    def resolve(self, msg: IncomingMessage) -> Optional[Tuple[Command, str]]:
        """Return the first command the message invokes and the text after its name."""
        for command in self._commands:
            rest = command.match(msg)
            if rest is not None:
                return command, rest
        return None

    # --- Introspection ---

    def list_commands(self) -> Tuple[str, ...]:
        """
        Return a sorted tuple of all registered names and aliases.
        """
        return tuple(sorted(self._by_name))

    def __len__(self) -> int:
        return len(self._commands)
