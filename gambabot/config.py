from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

from dotenv import load_dotenv

__all__ = ["BotConfig", "load_config"]

logger = logging.getLogger(__name__)


def _split_list(val: str | None) -> list[str]:
    """Split a comma/semicolon-separated string into a cleaned list of lowercased tokens."""
    raw = (val or "").replace(";", ",")
    return [s.strip().lstrip("#").lower() for s in raw.split(",") if s.strip()]


def _split_pairs(val: str | None) -> Dict[str, str]:
    """Parse `chan=prefix` pairs. The channel is lowercased, the prefix kept as-is."""
    pairs: Dict[str, str] = {}
    for item in (val or "").replace(";", ",").split(","):
        channel, sep, prefix = item.partition("=")
        if not sep or not channel.strip() or not prefix.strip():
            continue
        pairs[channel.strip().lstrip("#").lower()] = prefix.strip()
    return pairs


def _number(name: str, default: float, positive: bool = False) -> float:
    """Read a non-negative number from the environment (strictly positive if `positive`).

    Raises:
        SystemExit: if the value is malformed or out of range.
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise SystemExit(f"{name} must be a number, got {raw!r}")
    if value < 0 or (positive and value == 0):
        kind = "positive" if positive else "non-negative"
        raise SystemExit(f"{name} must be {kind}, got {raw!r}")
    return value


@dataclass(frozen=True)
class BotConfig:
    """Immutable configuration container for the chatbot."""

    # --- Twitch credentials ---
    client_id: str
    access_token: str  # user access token
    bot_user_id: str  # numeric id of the bot account
    bot_login: str  # login the bot chats as
    initial_channels: Tuple[str, ...]  # channels to join

    # --- Bot behavior ---
    prefix: str = "$"  # default command prefix
    channel_prefixes: Mapping[str, str] = field(default_factory=dict)
    owners: Tuple[str, ...] = ()  # logins granted Permission.OWNER

    # --- Storage / logs ---
    database_path: str = "gambabot.db"
    log_directory: str = "logs"  # chat transcript base path
    log_level: str = "INFO"

    # --- Background tasks ---
    grant_interval: float = 600.0
    grant_amount: int = 10  # per active chatter
    grant_inactive_amount: int = 3  # per lurker present in chat
    duel_sweep_interval: float = 30.0  # 0 disables the sweep

    # --- Misc metadata ---
    env_file: Path = Path("resources/appSettings.env")  # path to the loaded .env file

    def prefix_for(self, channel: str) -> str:
        """Return the command prefix used in `channel`."""
        return self.channel_prefixes.get(channel.lower(), self.prefix)


def load_config(env_file: str | os.PathLike = "resources/appSettings.env") -> BotConfig:
    """
    Load environment variables from an appSettings.env file (or shell environment)
    and return a validated BotConfig instance.

    Args:
        env_file: Path to the .env file containing bot configuration values.

    Returns:
        BotConfig instance populated from environment variables.

    Raises:
        SystemExit: if required Twitch credentials are missing or a number is malformed.
    """
    env_path = Path(env_file)
    if not env_path.exists():
        logger.warning(
            f"env file not found at {env_path.resolve()}. Using shell environment only."
        )
    load_dotenv(env_path)

    # --- Parse Twitch credentials ---
    client_id = os.getenv("TWITCH_CLIENT_ID", "")
    access_token = os.getenv("TWITCH_ACCESS_TOKEN", "")
    bot_user_id = os.getenv("TWITCH_BOT_ID", "")
    bot_login = os.getenv("TWITCH_BOT_LOGIN", "").strip().lower() or "gambabot"

    # --- Parse behavior settings ---
    initial_channels: List[str] = _split_list(os.getenv("INITIAL_CHANNELS"))
    prefix = os.getenv("PREFIX", "").strip() or "$"

    # --- Validation ---
    missing = [
        k
        for k, v in [
            ("TWITCH_CLIENT_ID", client_id),
            ("TWITCH_ACCESS_TOKEN", access_token),
            ("TWITCH_BOT_ID", bot_user_id),
        ]
        if not v
    ]
    if missing:
        raise SystemExit(
            f"Missing required env keys: {', '.join(missing)}\n"
            f"(Check your {env_path.name} or environment configuration.)"
        )

    # --- Construct configuration object ---
    return BotConfig(
        client_id=client_id,
        access_token=access_token,
        bot_user_id=bot_user_id,
        bot_login=bot_login,
        initial_channels=tuple(initial_channels or ["riotgames"]),
        prefix=prefix,
        channel_prefixes=_split_pairs(os.getenv("CHANNEL_PREFIXES")),
        owners=tuple(_split_list(os.getenv("OWNERS"))),
        database_path=os.getenv("DATABASE_PATH", "").strip() or "gambabot.db",
        log_directory=os.getenv("LOG_DIRECTORY", "logs"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        grant_interval=_number("GRANT_INTERVAL_SECONDS", 600.0, positive=True),
        grant_amount=int(_number("GRANT_AMOUNT", 10)),
        grant_inactive_amount=int(_number("GRANT_INACTIVE_AMOUNT", 3)),
        duel_sweep_interval=_number("DUEL_SWEEP_SECONDS", 30.0),
        env_file=env_path,
    )
