"""Data models for the users, ledger, duels and cooldowns tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


def from_epoch(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


@dataclass(frozen=True)
class User:
    """A chatter the bot has seen."""

    user_id: str
    name: str
    last_seen: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> User:
        return cls(
            user_id=row["user_id"],
            name=row["name"],
            last_seen=from_epoch(row["last_seen"]),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """One immutable point delta."""

    id: int
    user_id: str
    game: str
    delta: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> LedgerEntry:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            game=row["game"],
            delta=row["delta"],
            created_at=from_epoch(row["created_at"]),
        )


@dataclass(frozen=True)
class Duel:
    """Duel record.

    pending=True is the Proposed state. Once resolved, accepted tells
    Accepted apart from Declined/Expired, and won is whether the challenger won.
    """

    id: int
    challenger_id: str
    target_id: str
    amount: int
    created_at: datetime
    pending: bool = True
    accepted: bool = False
    won: bool = False
    resolved_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Duel:
        return cls(
            id=row["id"],
            challenger_id=row["challenger_id"],
            target_id=row["target_id"],
            amount=row["amount"],
            created_at=from_epoch(row["created_at"]),
            pending=bool(row["pending"]),
            accepted=bool(row["accepted"]),
            won=bool(row["won"]),
            resolved_at=from_epoch(row["resolved_at"]),
        )


@dataclass(frozen=True)
class CooldownRecord:
    """Last successful run of a command within one scope key."""

    scope: str  # 'channel' | 'user'
    command: str
    key: str
    last_run: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CooldownRecord:
        return cls(
            scope=row["scope"],
            command=row["command"],
            key=row["key"],
            last_run=from_epoch(row["last_run"]),
        )
