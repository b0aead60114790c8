"""Tests for the Elo rating update."""

import pytest

from tarot_stats.errors import ConsistencyError, MissingRatingError, MissingScoreError
from tarot_stats.models import RatingChange, Round
from tarot_stats.rating import (
    RatingConfig,
    apply_rating_changes,
    compute_rating_changes,
    default_ratings,
    expected_score,
    ratings_table,
    revert_rating_changes,
    round_half_away_from_zero,
)
from tarot_stats.rules import Contract, RoundStatus
from tarot_stats.scoring import compute_scores

PLAYERS = ("alice", "bob", "carol", "dave", "eve")


def _round(points=55, partner="bob", round_id=1) -> Round:
    return Round(
        id=round_id,
        session_id=1,
        position=round_id,
        players=PLAYERS,
        taker="alice",
        partner=partner,
        contract=Contract.PETITE,
        oudlers=1,
        points=points,
        status=RoundStatus.COMPLETED,
    )


def _changes(r: Round, ratings: dict) -> dict:
    return {c.player: c.rating_change for c in compute_rating_changes(r, compute_scores(r), ratings)}


def test_expected_score_symmetry():
    assert expected_score(1500, 1500) == pytest.approx(0.5)
    assert expected_score(1600, 1400) + expected_score(1400, 1600) == pytest.approx(1.0)


def test_rounding_half_away_from_zero():
    assert round_half_away_from_zero(12.5) == 13
    assert round_half_away_from_zero(-12.5) == -13
    assert round_half_away_from_zero(-7.5) == -8
    assert round_half_away_from_zero(7.4) == 7
    assert round_half_away_from_zero(0.0) == 0


def test_equal_ratings_attack_wins():
    changes = _changes(_round(), default_ratings(PLAYERS))
    assert changes == {"alice": 20, "bob": 13, "carol": -8, "dave": -8, "eve": -8}


def test_equal_ratings_attack_loses():
    changes = _changes(_round(points=40), default_ratings(PLAYERS))
    assert changes == {"alice": -20, "bob": -13, "carol": 8, "dave": 8, "eve": 8}


def test_equal_ratings_solo():
    changes = _changes(_round(partner=None), default_ratings(PLAYERS))
    assert changes == {"alice": 20, "bob": -8, "carol": -8, "dave": -8, "eve": -8}


def test_strong_taker_gains_less():
    ratings = default_ratings(PLAYERS)
    ratings["alice"] = 1800
    change = _changes(_round(), ratings)["alice"]
    assert 0 < change < 20


def test_weak_taker_gains_more():
    ratings = default_ratings(PLAYERS)
    ratings["alice"] = 1200
    assert _changes(_round(), ratings)["alice"] > 20


def test_mixed_ratings_sum_close_to_zero():
    ratings = dict(zip(PLAYERS, (1600, 1450, 1550, 1400, 1500)))
    changes = compute_rating_changes(_round(), compute_scores(_round()), ratings)
    assert abs(sum(c.rating_change for c in changes)) <= 10
    for c in changes:
        assert c.rating_before == ratings[c.player]
        assert c.rating_after == c.rating_before + c.rating_change


def test_custom_k_factors():
    cfg = RatingConfig(k_taker=80, k_partner=50, k_defender=30)
    r = _round()
    changes = compute_rating_changes(r, compute_scores(r), default_ratings(PLAYERS), cfg)
    assert [c.rating_change for c in changes] == [40, 25, -15, -15, -15]


def test_missing_rating_is_rejected():
    ratings = default_ratings(PLAYERS)
    del ratings["eve"]
    r = _round()
    with pytest.raises(MissingRatingError):
        compute_rating_changes(r, compute_scores(r), ratings)


def test_missing_taker_score_is_rejected():
    r = _round()
    entries = [e for e in compute_scores(r) if e.player != "alice"]
    with pytest.raises(MissingScoreError):
        compute_rating_changes(r, entries, default_ratings(PLAYERS))


def test_rating_change_arithmetic_is_checked():
    with pytest.raises(ConsistencyError):
        RatingChange(player="alice", round_id=1, rating_before=1500, rating_change=20, rating_after=1521)


def test_revert_restores_previous_ratings():
    ratings = default_ratings(PLAYERS)
    history = []
    first, second = _round(round_id=1), _round(points=40, round_id=2)
    for r in (first, second):
        changes = compute_rating_changes(r, compute_scores(r), ratings)
        apply_rating_changes(ratings, changes)
        history.extend(changes)
    after_first = {c.player: c.rating_after for c in history if c.round_id == 1}

    removed = revert_rating_changes(ratings, history, 2)

    assert len(removed) == 5
    assert ratings == after_first
    assert all(c.round_id == 1 for c in history)


def test_ratings_table_is_sorted():
    table = ratings_table({"a": 1490, "b": 1530, "c": 1500})
    assert [pid for pid, _ in table] == ["b", "c", "a"]
