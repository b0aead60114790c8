"""Tests for contract, bonus and threshold tables."""

import pytest

from tarot_stats.rules import (
    CHELEM_BONUS,
    CONTRACT_MULTIPLIER,
    HANDFUL_BONUS,
    HIGH_RISK_CONTRACTS,
    REQUIRED_POINTS,
    Chelem,
    Contract,
    Handful,
)


def test_contract_multipliers():
    assert CONTRACT_MULTIPLIER[Contract.PETITE] == 1
    assert CONTRACT_MULTIPLIER[Contract.GARDE] == 2
    assert CONTRACT_MULTIPLIER[Contract.GARDE_SANS] == 4
    assert CONTRACT_MULTIPLIER[Contract.GARDE_CONTRE] == 6


def test_contract_keys_round_trip():
    for contract in Contract:
        assert Contract.from_key(contract.key) is contract
    assert Contract.GARDE_SANS.key == "garde_sans"


def test_unknown_contract_key():
    with pytest.raises(ValueError):
        Contract.from_key("prise")


def test_required_points_by_oudlers():
    assert REQUIRED_POINTS == {0: 56, 1: 51, 2: 41, 3: 36}


def test_bonus_tables():
    assert CHELEM_BONUS[Chelem.ANNOUNCED_WON] == 400
    assert CHELEM_BONUS[Chelem.ANNOUNCED_LOST] == -200
    assert CHELEM_BONUS[Chelem.NOT_ANNOUNCED_WON] == 200
    assert CHELEM_BONUS[Chelem.NONE] == 0
    assert [HANDFUL_BONUS[h] for h in Handful] == [0, 20, 30, 40]


def test_high_risk_contracts():
    assert HIGH_RISK_CONTRACTS == {Contract.GARDE_SANS, Contract.GARDE_CONTRE}
