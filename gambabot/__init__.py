from .config import BotConfig, load_config
from .app import build_bot, run
from .message import IncomingMessage, OutgoingMessage
from .permission import Permission

__all__ = [
    "BotConfig",
    "load_config",
    "build_bot",
    "run",
    "IncomingMessage",
    "OutgoingMessage",
    "Permission",
]
