from .args import Arg, Param, ParamType, parse_args
from .registry import (
    Command,
    CommandContext,
    CommandHandler,
    CommandRegistry,
    Cooldown,
    CooldownScope,
)
from .dispatcher import Dispatcher
from .builtins import BuiltinCommands, register_builtins
from .gamba import GambaCommands, register_gamba

__all__ = [
    "Arg",
    "Param",
    "ParamType",
    "parse_args",
    "Command",
    "CommandContext",
    "CommandHandler",
    "CommandRegistry",
    "Cooldown",
    "CooldownScope",
    "Dispatcher",
    "BuiltinCommands",
    "register_builtins",
    "GambaCommands",
    "register_gamba",
]
