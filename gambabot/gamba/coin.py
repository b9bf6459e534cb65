from __future__ import annotations

import secrets
from typing import Protocol


class CoinFlip(Protocol):
    """Source of the single random bit that settles a wager."""

    def flip(self) -> bool: ...


class SystemCoin:
    """Uniform coin backed by the OS CSPRNG."""

    def __init__(self) -> None:
        self._rng = secrets.SystemRandom()

    def flip(self) -> bool:
        return self._rng.getrandbits(1) == 1
