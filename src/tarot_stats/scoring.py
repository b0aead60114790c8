"""
Score calculation for one round: (écart + 25) × coefficient + primes, split among 5 players.

FFT: Petite×1, Garde×2, Garde sans×4, Garde contre×6; just made = +25.
All totals are from the attack's point of view; defenders get the opposite.
"""
from __future__ import annotations

from typing import Iterable, List

from .errors import ConsistencyError, InvalidOudlersError, MissingRoundDataError
from .models import PlayerId, Round, ScoreEntry
from .rules import (
    CHELEM_BONUS,
    CONTRACT_BASE,
    CONTRACT_MULTIPLIER,
    HANDFUL_BONUS,
    PETIT_AU_BOUT_BASE,
    REQUIRED_POINTS,
    Chelem,
    Contract,
    Handful,
    Side,
)


def required_points(oudlers: int) -> int:
    """Points the attack needs with the given number of Bouts."""
    if isinstance(oudlers, bool) or not isinstance(oudlers, int) or oudlers not in REQUIRED_POINTS:
        raise InvalidOudlersError(f"Invalid oudlers count: {oudlers!r} (expected 0..3)")
    return REQUIRED_POINTS[oudlers]


def contract_multiplier(contract: Contract) -> int:
    """Score multiplier for the contract."""
    return CONTRACT_MULTIPLIER[contract]


def attack_wins(points: float, oudlers: int) -> bool:
    """True if the attack reached the minimum (contract made or just made)."""
    return int(points) >= required_points(oudlers)


def deal_base_score(points: float, oudlers: int, contract: Contract) -> int:
    """
    Base score for the round: positive = attack won, negative = attack lost.

    Points are truncated to an integer first. Just made (diff=0) gives 25 × multiplier.
    """
    minimum = required_points(oudlers)
    pts = int(points)
    raw = (abs(pts - minimum) + CONTRACT_BASE) * contract_multiplier(contract)
    return raw if pts >= minimum else -raw


def handful_bonus(handful: Handful, won: bool) -> int:
    """Poignée always goes to the winning camp, whoever showed it."""
    bonus = HANDFUL_BONUS[handful]
    return bonus if won else -bonus


def petit_au_bout_bonus(side: Side, won: bool, contract: Contract) -> int:
    """
    10 × multiplier, counted for the camp that played it only if that camp won.

    From the attack's side that means +bonus only when the attack played it and won;
    the three other combinations cost the attack the bonus.
    """
    if side == Side.NONE:
        return 0
    bonus = PETIT_AU_BOUT_BASE * contract_multiplier(contract)
    if side == Side.ATTACK and won:
        return bonus
    return -bonus


def chelem_bonus(chelem: Chelem) -> int:
    return CHELEM_BONUS[chelem]


def round_total(r: Round) -> int:
    """
    Attack-side total for a round: base + poignée + petit au bout + chelem.

    Raises MissingRoundDataError if oudlers or points were not recorded.
    """
    if r.oudlers is None:
        raise MissingRoundDataError(f"Round {r.id}: oudlers count is required")
    if r.points is None:
        raise MissingRoundDataError(f"Round {r.id}: points are required")

    won = attack_wins(r.points, r.oudlers)
    score = deal_base_score(r.points, r.oudlers, r.contract)
    score += handful_bonus(r.handful, won)
    score += petit_au_bout_bonus(r.petit_au_bout, won, r.contract)
    score += chelem_bonus(r.chelem)
    return score


def distribute_scores(
    total: int,
    players: Iterable[PlayerId],
    taker: PlayerId,
    partner: PlayerId | None,
) -> List[tuple[PlayerId, int]]:
    """
    Per-player scores for 5 players, in seat order.

    - If partner is None (taker alone vs 4): taker gets 4 * total, each defender gets -total.
    - Otherwise (2 vs 3): taker gets 2 * total, partner gets total, each defender gets -total.

    Sum = 0 in both cases.
    """
    result: List[tuple[PlayerId, int]] = []
    for player in players:
        if player == taker:
            result.append((player, total * (4 if partner is None else 2)))
        elif partner is not None and player == partner:
            result.append((player, total))
        else:
            result.append((player, -total))
    return result


def compute_scores(r: Round) -> List[ScoreEntry]:
    """Score entries for every seated player of the round (sum = 0)."""
    total = round_total(r)
    entries = [
        ScoreEntry(player=p, score=s, session_id=r.session_id, round_id=r.id)
        for p, s in distribute_scores(total, r.players, r.taker, r.partner)
    ]
    check_zero_sum(entries, r.id)
    return entries


def check_zero_sum(entries: Iterable[ScoreEntry], round_id: int | None = None) -> None:
    total = sum(e.score for e in entries)
    if total != 0:
        raise ConsistencyError(f"Round {round_id}: scores sum to {total}, expected 0")


def recompute_scores(r: Round, entries: Iterable[ScoreEntry]) -> List[ScoreEntry]:
    """
    Replace the round's entries in ``entries`` with freshly computed ones.

    Entries of other rounds and session-level entries are kept as they are.
    The new scores are computed before anything is dropped, so a precondition
    error leaves the caller's list untouched.
    """
    fresh = compute_scores(r)
    kept = [e for e in entries if e.round_id != r.id]
    return kept + fresh


__all__ = [
    "required_points",
    "contract_multiplier",
    "attack_wins",
    "deal_base_score",
    "handful_bonus",
    "petit_au_bout_bonus",
    "chelem_bonus",
    "round_total",
    "distribute_scores",
    "compute_scores",
    "check_zero_sum",
    "recompute_scores",
]
