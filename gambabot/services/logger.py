from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_QUIET_LOGGERS = ("websockets", "urllib3", "aiosqlite", "asyncio")


def setup_logging(level: str = "INFO") -> None:
    """Route stdlib logging through a Rich console handler.

    Args:
        level: Level name for the root logger (e.g. "DEBUG").
    """
    resolved = getattr(logging, level.upper(), logging.INFO)

    handler = RichHandler(
        console=Console(width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    handler.setFormatter(logging.Formatter(fmt="%(message)s", datefmt="[%Y-%m-%d %H:%M:%S]"))

    logging.basicConfig(level=resolved, format="%(message)s", handlers=[handler], force=True)

    quiet = logging.DEBUG if resolved == logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


class LogWriter:
    """File-based transcript of chat messages, one file per channel per day.

    Structure:
        logs/<channel>/<YYYY-MM-DD>/<YYYY-MM-DD>.txt

    Each appended line:
        "YYYY-MM-DD HH:MM:SS user: message"

    Attributes:
        base: Root log directory (default: "logs").
    """

    def __init__(self, base_dir: str | Path = "logs") -> None:
        """Initialize a transcript writer rooted at the given directory."""
        self.base: Path = Path(base_dir)

    def log_message(
        self, channel: str, user: str, text: str, when: _dt.datetime | None = None
    ) -> Path:
        """Append one chat message line to the appropriate log file.

        Args:
            channel: Twitch channel login name.
            user: Name of the chatter.
            text: Raw message content.
            when: Timestamp to record (defaults to now, local time).

        Returns:
            Path to the log file that was written.
        """
        now = when or _dt.datetime.now()
        date_str = now.date().isoformat()
        time_str = now.strftime("%H:%M:%S")

        path = self.base / channel / date_str
        path.mkdir(parents=True, exist_ok=True)

        file_path = path / f"{date_str}.txt"
        with file_path.open("a", encoding="utf-8") as f:
            f.write(f"{date_str} {time_str} {user}: {text}\n")

        return file_path
