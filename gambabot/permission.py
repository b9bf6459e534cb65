from __future__ import annotations

from enum import IntEnum

__all__ = ["Permission", "authorized"]


class Permission(IntEnum):
    """Ordinal permission levels. Higher values imply every lower level."""

    UNVERIFIED = 10
    NORMAL = 20
    ABOVE_NORMAL = 30  # subscribers, founders
    VIP = 50
    MOD = 60
    ADMIN = 100  # the broadcaster
    OWNER = 255  # whoever hosts the bot


def authorized(user: int, required: int) -> bool:
    """Return True if a caller at level `user` may run something requiring `required`."""
    return int(user) >= int(required)
