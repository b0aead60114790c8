"""
Elo-style rating update after each round.

Each player is compared to the average rating of the opposing camp
(attack = taker + partner, defense = the others) with the standard Elo
expectation, then moved by a K-factor that depends on their role:
the taker moves most, the partner less, defenders least.

Because K differs per role and changes are rounded, the sum of changes
over a round is close to, but not exactly, zero.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Dict, Iterable, List, Mapping, MutableMapping

from .errors import MissingRatingError, MissingScoreError
from .models import PlayerId, RatingChange, Round, ScoreEntry


@dataclass
class RatingConfig:
    """Rating parameters; the defaults are the reference values."""

    initial_rating: int = 1500
    k_taker: int = 40
    k_partner: int = 25
    k_defender: int = 15


def expected_score(rating: float, opponent_rating: float) -> float:
    """Expected score of a player vs an opponent rating under standard Elo."""
    return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / 400.0))


def round_half_away_from_zero(x: float) -> int:
    """12.5 -> 13, -12.5 -> -13 (Python's round() would give 12 and -12)."""
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def taker_won(r: Round, score_entries: Iterable[ScoreEntry]) -> bool:
    """The attack won if the taker's entry for this round is strictly positive."""
    for entry in score_entries:
        if entry.round_id == r.id and entry.player == r.taker:
            return entry.score > 0
    raise MissingScoreError(f"Round {r.id}: no score entry for taker {r.taker!r}")


def _average(ratings: Mapping[PlayerId, int], players: List[PlayerId]) -> float:
    return sum(ratings[p] for p in players) / len(players)


def compute_rating_changes(
    r: Round,
    score_entries: Iterable[ScoreEntry],
    ratings: Mapping[PlayerId, int],
    config: RatingConfig | None = None,
) -> List[RatingChange]:
    """
    Rating change of every seated player for a completed round, in seat order.

    Args:
        r: The round (taker, partner, seating).
        score_entries: Persisted entries; the taker's entry decides who won.
        ratings: Current rating of each seated player. Missing players are an error.
        config: K-factors; defaults to RatingConfig().

    Returns:
        One RatingChange per player with rating_after = rating_before + rating_change.
    """
    cfg = config or RatingConfig()
    missing = [p for p in r.players if p not in ratings]
    if missing:
        raise MissingRatingError(f"Round {r.id}: no current rating for {missing}")

    won = taker_won(r, score_entries)
    attackers = r.attackers
    defenders = r.defenders
    avg_attack = _average(ratings, attackers)
    avg_defense = _average(ratings, defenders)

    changes: List[RatingChange] = []
    for player in r.players:
        before = int(ratings[player])
        if player in attackers:
            k = cfg.k_taker if player == r.taker else cfg.k_partner
            expected = expected_score(before, avg_defense)
            actual = 1.0 if won else 0.0
        else:
            k = cfg.k_defender
            expected = expected_score(before, avg_attack)
            actual = 0.0 if won else 1.0
        change = round_half_away_from_zero(k * (actual - expected))
        changes.append(
            RatingChange(
                player=player,
                round_id=r.id,
                rating_before=before,
                rating_change=change,
                rating_after=before + change,
            )
        )
    return changes


def apply_rating_changes(ratings: MutableMapping[PlayerId, int], changes: Iterable[RatingChange]) -> None:
    for change in changes:
        ratings[change.player] = change.rating_after


def revert_rating_changes(
    ratings: MutableMapping[PlayerId, int],
    history: List[RatingChange],
    round_id: int,
) -> List[RatingChange]:
    """
    Undo a round's rating effect, in place.

    Each affected player's rating goes back to the stored rating_before and
    the round's records are removed from ``history``. Returns the removed records.
    """
    removed = [c for c in history if c.round_id == round_id]
    for change in removed:
        ratings[change.player] = change.rating_before
    history[:] = [c for c in history if c.round_id != round_id]
    return removed


def ratings_table(ratings: Mapping[PlayerId, int]) -> List[tuple[PlayerId, int]]:
    """Players sorted by rating, best first (ties keep insertion order)."""
    return sorted(ratings.items(), key=lambda kv: kv[1], reverse=True)


def default_ratings(players: Iterable[PlayerId], config: RatingConfig | None = None) -> Dict[PlayerId, int]:
    cfg = config or RatingConfig()
    return {p: cfg.initial_rating for p in players}


__all__ = [
    "RatingConfig",
    "expected_score",
    "round_half_away_from_zero",
    "taker_won",
    "compute_rating_changes",
    "apply_rating_changes",
    "revert_rating_changes",
    "ratings_table",
    "default_ratings",
]
