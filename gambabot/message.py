from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from gambabot.permission import Permission

__all__ = ["IncomingMessage", "OutgoingMessage"]


@dataclass(frozen=True)
class IncomingMessage:
    """A chat message as handed to the dispatcher by a platform adapter.

    Attributes:
        text: Raw message text.
        channel: Channel login the message was sent in.
        user: Login name of the sender.
        user_id: Platform-unique ID of the sender.
        prefix: Command prefix configured for `channel`.
        permission: Sender's permission level, resolved by the adapter.
        timestamp: When the message was sent.
    """

    text: str
    channel: str
    user: str
    user_id: str
    prefix: str = "$"
    permission: Permission = Permission.NORMAL
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def text_without_prefix(self) -> str:
        """Return the text with the channel prefix stripped (if it starts with it)."""
        if self.prefix and self.text.startswith(self.prefix):
            return self.text[len(self.prefix) :]
        return self.text

    @property
    def has_prefix(self) -> bool:
        return bool(self.prefix) and self.text.startswith(self.prefix)


@dataclass(frozen=True)
class OutgoingMessage:
    """A reply to be delivered by the platform adapter."""

    channel: str
    text: str
