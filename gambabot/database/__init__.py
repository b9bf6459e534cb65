from .connection import Database
from .models import CooldownRecord, Duel, LedgerEntry, User

__all__ = [
    "Database",
    "CooldownRecord",
    "Duel",
    "LedgerEntry",
    "User",
]
