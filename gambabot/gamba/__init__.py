from .coin import CoinFlip, SystemCoin
from .duels import (
    DUEL_PENDING_SECONDS,
    DuelService,
    Proposal,
    ProposalResult,
    Settlement,
    run_expiry_sweep,
)
from .grants import PointGranter

__all__ = [
    "CoinFlip",
    "SystemCoin",
    "DUEL_PENDING_SECONDS",
    "DuelService",
    "Proposal",
    "ProposalResult",
    "Settlement",
    "run_expiry_sweep",
    "PointGranter",
]
