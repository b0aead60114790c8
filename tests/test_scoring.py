"""Tests for round scoring and score distribution."""

import pytest

from tarot_stats.errors import InvalidOudlersError, MissingRoundDataError
from tarot_stats.models import Round, ScoreEntry
from tarot_stats.rules import Chelem, Contract, Handful, RoundStatus, Side
from tarot_stats.scoring import (
    attack_wins,
    compute_scores,
    deal_base_score,
    distribute_scores,
    recompute_scores,
    required_points,
    round_total,
)

PLAYERS = ("alice", "bob", "carol", "dave", "eve")


def _round(contract, oudlers, points, partner="bob", round_id=1, **kwargs) -> Round:
    return Round(
        id=round_id,
        session_id=1,
        position=round_id,
        players=PLAYERS,
        taker="alice",
        partner=partner,
        contract=contract,
        oudlers=oudlers,
        points=points,
        status=RoundStatus.COMPLETED,
        **kwargs,
    )


def _scores(r: Round) -> dict:
    return {e.player: e.score for e in compute_scores(r)}


def test_required_points():
    assert required_points(0) == 56
    assert required_points(3) == 36
    for bad in (-1, 4, True, 1.5):
        with pytest.raises(InvalidOudlersError):
            required_points(bad)


def test_attack_wins_threshold():
    assert attack_wins(41, 2)
    assert not attack_wins(40.5, 2)
    assert attack_wins(51.9, 1)


def test_base_scores():
    assert deal_base_score(55, 1, Contract.PETITE) == 29
    assert deal_base_score(40, 0, Contract.PETITE) == -41
    assert deal_base_score(50, 2, Contract.GARDE) == 68
    assert deal_base_score(50, 3, Contract.GARDE_SANS) == 156
    assert deal_base_score(30, 0, Contract.GARDE_CONTRE) == -306


def test_just_made_counts_as_win():
    assert deal_base_score(41, 2, Contract.PETITE) == 25
    assert deal_base_score(41, 2, Contract.GARDE) == 50


def test_fractional_points_are_truncated():
    assert deal_base_score(55.5, 1, Contract.PETITE) == 29
    # 50.9 truncates to 50, one short of the 51 needed.
    assert deal_base_score(50.9, 1, Contract.PETITE) == -26


def test_distribution_with_partner():
    scores = _scores(_round(Contract.PETITE, 1, 55))
    assert scores == {"alice": 58, "bob": 29, "carol": -29, "dave": -29, "eve": -29}


def test_distribution_solo():
    scores = _scores(_round(Contract.GARDE, 2, 50, partner=None))
    assert scores == {"alice": 272, "bob": -68, "carol": -68, "dave": -68, "eve": -68}


def test_distribute_keeps_seat_order():
    rows = distribute_scores(10, PLAYERS, "carol", "alice")
    assert [p for p, _ in rows] == list(PLAYERS)
    assert dict(rows) == {"alice": 10, "bob": -10, "carol": 20, "dave": -10, "eve": -10}


def test_handful_goes_to_winning_camp():
    won = _round(Contract.PETITE, 1, 55, handful=Handful.SIMPLE, handful_side=Side.ATTACK)
    shown_by_defense = _round(Contract.PETITE, 1, 55, handful=Handful.SIMPLE, handful_side=Side.DEFENSE)
    lost = _round(Contract.PETITE, 1, 45, handful=Handful.DOUBLE, handful_side=Side.ATTACK)
    assert round_total(won) == 49
    assert round_total(shown_by_defense) == 49
    assert round_total(lost) == -31 - 30


def test_petit_au_bout():
    assert round_total(_round(Contract.GARDE, 2, 50, petit_au_bout=Side.ATTACK)) == 88
    assert round_total(_round(Contract.GARDE, 2, 50, petit_au_bout=Side.DEFENSE)) == 48
    assert round_total(_round(Contract.PETITE, 1, 45, petit_au_bout=Side.ATTACK)) == -41
    assert round_total(_round(Contract.PETITE, 1, 45, petit_au_bout=Side.DEFENSE)) == -41


def test_chelem_bonuses():
    assert round_total(_round(Contract.GARDE, 3, 91, chelem=Chelem.ANNOUNCED_WON)) == 560
    assert round_total(_round(Contract.GARDE, 3, 80, chelem=Chelem.ANNOUNCED_LOST)) == 138 - 200
    assert round_total(_round(Contract.PETITE, 3, 91, chelem=Chelem.NOT_ANNOUNCED_WON)) == 80 + 200


def test_every_round_sums_to_zero():
    rounds = [
        _round(Contract.PETITE, 0, 40),
        _round(Contract.GARDE_CONTRE, 0, 30, partner=None),
        _round(Contract.GARDE_SANS, 3, 50, handful=Handful.TRIPLE, petit_au_bout=Side.DEFENSE),
        _round(Contract.GARDE, 3, 91, chelem=Chelem.ANNOUNCED_WON),
    ]
    for r in rounds:
        assert sum(e.score for e in compute_scores(r)) == 0


def test_missing_data_is_rejected():
    with pytest.raises(MissingRoundDataError):
        compute_scores(_round(Contract.GARDE, None, 50))
    with pytest.raises(MissingRoundDataError):
        compute_scores(_round(Contract.GARDE, 2, None))


def test_invalid_oudlers_is_rejected():
    with pytest.raises(InvalidOudlersError):
        compute_scores(_round(Contract.GARDE, 4, 50))


def test_recompute_replaces_only_the_round():
    other = ScoreEntry(player="alice", score=-40, session_id=1, round_id=7)
    star = ScoreEntry(player="bob", score=-100, session_id=1)
    stale = [ScoreEntry(player=p, score=1, session_id=1, round_id=1) for p in PLAYERS]

    entries = recompute_scores(_round(Contract.PETITE, 1, 55), [other, star] + stale)

    assert other in entries and star in entries
    fresh = {e.player: e.score for e in entries if e.round_id == 1}
    assert fresh["alice"] == 58
    assert len(entries) == 2 + len(PLAYERS)


def test_recompute_leaves_input_untouched_on_error():
    existing = [ScoreEntry(player=p, score=0, session_id=1, round_id=1) for p in PLAYERS]
    snapshot = list(existing)
    with pytest.raises(MissingRoundDataError):
        recompute_scores(_round(Contract.PETITE, 1, None), existing)
    assert existing == snapshot


def test_reference_scenarios():
    assert list(_scores(_round(Contract.PETITE, 2, 45)).values()) == [58, 29, -29, -29, -29]
    solo_chelem = _round(Contract.GARDE_SANS, 3, 91, partner=None, chelem=Chelem.ANNOUNCED_WON)
    assert list(_scores(solo_chelem).values()) == [2880, -720, -720, -720, -720]
