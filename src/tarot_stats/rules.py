"""
Rule vocabulary for 5-player French Tarot scorekeeping (FFT rules).

Contracts in ascending order: Petite < Garde < Garde sans le Chien < Garde contre le Chien.
Required points depend on the number of Bouts (oudlers) held by the attack.
Every lookup table is keyed exhaustively by its enum; ``_check_tables`` runs at import.
"""
from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Mapping


class Contract(IntEnum):
    """Contract levels in ascending order."""
    PETITE = 1
    GARDE = 2
    GARDE_SANS = 3    # Garde sans le Chien
    GARDE_CONTRE = 4  # Garde contre le Chien

    @property
    def key(self) -> str:
        return CONTRACT_KEYS[self]

    @classmethod
    def from_key(cls, key: str) -> "Contract":
        for contract, k in CONTRACT_KEYS.items():
            if k == key:
                return contract
        raise ValueError(f"Unknown contract: {key!r}")


CONTRACT_KEYS: Dict[Contract, str] = {
    Contract.PETITE: "petite",
    Contract.GARDE: "garde",
    Contract.GARDE_SANS: "garde_sans",
    Contract.GARDE_CONTRE: "garde_contre",
}

CONTRACT_NAMES: Dict[Contract, str] = {
    Contract.PETITE: "Petite",
    Contract.GARDE: "Garde",
    Contract.GARDE_SANS: "Garde sans le Chien",
    Contract.GARDE_CONTRE: "Garde contre le Chien",
}

CONTRACT_MULTIPLIER: Dict[Contract, int] = {
    Contract.PETITE: 1,
    Contract.GARDE: 2,
    Contract.GARDE_SANS: 4,
    Contract.GARDE_CONTRE: 6,
}

# Contracts counted as high-risk attempts.
HIGH_RISK_CONTRACTS = frozenset({Contract.GARDE_SANS, Contract.GARDE_CONTRE})


class Chelem(str, Enum):
    NONE = "none"
    ANNOUNCED_WON = "announced_won"
    ANNOUNCED_LOST = "announced_lost"
    NOT_ANNOUNCED_WON = "not_announced_won"


CHELEM_BONUS: Dict[Chelem, int] = {
    Chelem.NONE: 0,
    Chelem.ANNOUNCED_WON: 400,
    Chelem.ANNOUNCED_LOST: -200,
    Chelem.NOT_ANNOUNCED_WON: 200,
}


class Handful(str, Enum):
    """Poignée: simple (10 trumps), double (13), triple (15)."""
    NONE = "none"
    SIMPLE = "simple"
    DOUBLE = "double"
    TRIPLE = "triple"


HANDFUL_BONUS: Dict[Handful, int] = {
    Handful.NONE: 0,
    Handful.SIMPLE: 20,
    Handful.DOUBLE: 30,
    Handful.TRIPLE: 40,
}


class Side(str, Enum):
    """Camp that realised a bonus (petit au bout, poignée)."""
    NONE = "none"
    ATTACK = "attack"
    DEFENSE = "defense"


class RoundStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Bouts (oudlers) held by the attack -> points needed to make the contract.
REQUIRED_POINTS: Dict[int, int] = {0: 56, 1: 51, 2: 41, 3: 36}

# Just made = +25 before the multiplier.
CONTRACT_BASE = 25
# Petit au bout: 10 × contract multiplier.
PETIT_AU_BOUT_BASE = 10

PLAYERS_PER_ROUND = 5


def _check_table(name: str, table: Mapping, domain) -> None:
    missing = set(domain) - set(table)
    extra = set(table) - set(domain)
    if missing or extra:
        raise RuntimeError(f"{name} does not cover its domain exactly (missing={missing}, extra={extra})")


def _check_tables() -> None:
    _check_table("CONTRACT_KEYS", CONTRACT_KEYS, Contract)
    _check_table("CONTRACT_NAMES", CONTRACT_NAMES, Contract)
    _check_table("CONTRACT_MULTIPLIER", CONTRACT_MULTIPLIER, Contract)
    _check_table("CHELEM_BONUS", CHELEM_BONUS, Chelem)
    _check_table("HANDFUL_BONUS", HANDFUL_BONUS, Handful)
    _check_table("REQUIRED_POINTS", REQUIRED_POINTS, range(4))


_check_tables()


__all__ = [
    "Contract",
    "CONTRACT_KEYS",
    "CONTRACT_NAMES",
    "CONTRACT_MULTIPLIER",
    "HIGH_RISK_CONTRACTS",
    "Chelem",
    "CHELEM_BONUS",
    "Handful",
    "HANDFUL_BONUS",
    "Side",
    "RoundStatus",
    "REQUIRED_POINTS",
    "CONTRACT_BASE",
    "PETIT_AU_BOUT_BASE",
    "PLAYERS_PER_ROUND",
]
