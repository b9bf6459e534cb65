from .base import Repository
from .cooldowns import Claim, CooldownStore
from .duels import DuelRepository
from .ledger import Ledger
from .users import UserRepository

__all__ = [
    "Repository",
    "Claim",
    "CooldownStore",
    "DuelRepository",
    "Ledger",
    "UserRepository",
]
