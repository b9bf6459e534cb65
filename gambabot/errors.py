from __future__ import annotations

__all__ = ["BotError", "CatalogError", "StoreError", "DuelInvariantError"]


class BotError(Exception):
    """Base class for errors raised by gambabot."""


class CatalogError(BotError, ValueError):
    """A command definition is invalid or collides with another one.

    Raised while the catalog is being built, never while handling chat.
    """


class StoreError(BotError):
    """The durable store failed or returned data that cannot be interpreted."""


class DuelInvariantError(StoreError):
    """A user would end up with more than one pending duel."""
