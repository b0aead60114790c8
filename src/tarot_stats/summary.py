"""
End-of-session summary: ranking, score spread, highlights and awards.

Built only from what is already stored for the session (round entries of
completed rounds, session-level star penalties, star events); no score is
recomputed here.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import PlayerId, Round, Session
from .rules import HIGH_RISK_CONTRACTS, Contract

# Awards are only handed out once a session has this many completed rounds.
AWARDS_MIN_ROUNDS = 3


@dataclass(frozen=True)
class RankingEntry:
    player_id: PlayerId
    player_name: str
    player_color: Optional[str]
    position: int
    score: int


@dataclass(frozen=True)
class PlayerHighlight:
    player_id: PlayerId
    player_name: str
    score: int


@dataclass(frozen=True)
class RoundHighlight:
    round_id: int
    player_name: str
    contract: str
    score: int


@dataclass(frozen=True)
class ContractCount:
    contract: str
    count: int


@dataclass(frozen=True)
class Highlights:
    mvp: PlayerHighlight
    last_place: PlayerHighlight
    best_round: Optional[RoundHighlight]
    worst_round: Optional[RoundHighlight]
    most_played_contract: Optional[ContractCount]
    total_rounds: int
    total_stars: int
    duration: int  # seconds


@dataclass(frozen=True)
class Award:
    title: str
    description: str
    player_id: PlayerId
    player_name: str
    player_color: Optional[str]


@dataclass(frozen=True)
class SessionSummary:
    ranking: List[RankingEntry]
    score_spread: int
    highlights: Highlights
    awards: List[Award] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def cumulative_scores(session: Session) -> Dict[PlayerId, int]:
    """Per-player sum of completed-round entries and session-level entries."""
    totals = {pid: 0 for pid in session.player_ids()}
    completed = {r.id for r in session.completed_rounds()}
    for entry in session.score_entries:
        if entry.round_id is None or entry.round_id in completed:
            totals[entry.player] = totals.get(entry.player, 0) + entry.score
    return totals


def compute_ranking(session: Session) -> List[RankingEntry]:
    """Players by score, best first; tied players share the same position."""
    totals = cumulative_scores(session)
    ordered = sorted(session.players, key=lambda p: totals.get(p.id, 0), reverse=True)

    ranking: List[RankingEntry] = []
    position = 1
    for i, player in enumerate(ordered):
        score = totals.get(player.id, 0)
        if i > 0 and score < ranking[i - 1].score:
            position = i + 1
        ranking.append(
            RankingEntry(
                player_id=player.id,
                player_name=player.name,
                player_color=player.color,
                position=position,
                score=score,
            )
        )
    return ranking


def _taker_scores(session: Session) -> List[tuple[Round, int]]:
    """(round, taker's own score) for completed rounds, in play order."""
    result = []
    for r in session.completed_rounds():
        for entry in session.entries_for_round(r.id):
            if entry.player == r.taker:
                result.append((r, entry.score))
                break
    return result


def _round_highlight(session: Session, pick: Callable) -> Optional[RoundHighlight]:
    rows = _taker_scores(session)
    if not rows:
        return None
    target = pick(score for _, score in rows)
    # First round (in play order) reaching the extreme.
    r, score = next((r, s) for r, s in rows if s == target)
    names = session.player_names()
    return RoundHighlight(round_id=r.id, player_name=names.get(r.taker, r.taker), contract=r.contract.key, score=score)


def find_best_round(session: Session) -> Optional[RoundHighlight]:
    return _round_highlight(session, max)


def find_worst_round(session: Session) -> Optional[RoundHighlight]:
    return _round_highlight(session, min)


def find_most_played_contract(session: Session) -> Optional[ContractCount]:
    """Most frequent contract; on a tie, the one played first in the session wins."""
    counts: Dict[Contract, int] = {}
    for r in session.completed_rounds():
        counts[r.contract] = counts.get(r.contract, 0) + 1
    if not counts:
        return None
    # dicts keep first-seen order, and max() keeps the first maximum.
    contract = max(counts, key=lambda c: counts[c])
    return ContractCount(contract=contract.key, count=counts[contract])


def session_duration(session: Session) -> int:
    """Seconds between session start and the latest round completion (0 if none)."""
    completed = [r.completed_at for r in session.completed_rounds() if r.completed_at is not None]
    if not completed:
        return 0
    return int(abs((max(completed) - session.created_at).total_seconds()))


def _player_highlight(entry: Optional[RankingEntry]) -> PlayerHighlight:
    if entry is None:
        return PlayerHighlight(player_id="", player_name="", score=0)
    return PlayerHighlight(player_id=entry.player_id, player_name=entry.player_name, score=entry.score)


def compute_highlights(session: Session, ranking: List[RankingEntry]) -> Highlights:
    return Highlights(
        mvp=_player_highlight(ranking[0] if ranking else None),
        last_place=_player_highlight(ranking[-1] if ranking else None),
        best_round=find_best_round(session),
        worst_round=find_worst_round(session),
        most_played_contract=find_most_played_contract(session),
        total_rounds=len(session.completed_rounds()),
        total_stars=len(session.star_events),
        duration=session_duration(session),
    )


def _award(session: Session, player_id: PlayerId, title: str, description: str) -> Award:
    player = next(p for p in session.players if p.id == player_id)
    return Award(
        title=title,
        description=description,
        player_id=player.id,
        player_name=player.name,
        player_color=player.color,
    )


def _first_max(session: Session, values: Dict[PlayerId, int]) -> Optional[PlayerId]:
    """Player with the highest value; ties go to the first in seating order."""
    best: Optional[PlayerId] = None
    for pid in session.player_ids():
        if pid in values and (best is None or values[pid] > values[best]):
            best = pid
    return best


def award_butcher(session: Session) -> Optional[Award]:
    """Le Boucher: highest total score earned as taker."""
    totals: Dict[PlayerId, int] = {}
    for r, score in _taker_scores(session):
        totals[r.taker] = totals.get(r.taker, 0) + score
    winner = _first_max(session, totals)
    if winner is None:
        return None
    return _award(session, winner, "Le Boucher", "Inflicted the most points on the defense")


def award_eternal_defender(session: Session) -> Optional[Award]:
    """L'Éternel Défenseur: took the fewest times (zero counts)."""
    takes = {pid: 0 for pid in session.player_ids()}
    for r in session.completed_rounds():
        takes[r.taker] = takes.get(r.taker, 0) + 1
    winner: Optional[PlayerId] = None
    for pid in session.player_ids():
        if winner is None or takes[pid] < takes[winner]:
            winner = pid
    if winner is None:
        return None
    return _award(session, winner, "L'Éternel Défenseur", "Took the fewest times")


def award_gambler(session: Session) -> Optional[Award]:
    """Le Flambeur: most Garde Sans / Garde Contre taken."""
    attempts: Dict[PlayerId, int] = {}
    for r in session.completed_rounds():
        if r.contract in HIGH_RISK_CONTRACTS:
            attempts[r.taker] = attempts.get(r.taker, 0) + 1
    winner = _first_max(session, attempts)
    if winner is None:
        return None
    return _award(session, winner, "Le Flambeur", "Attempted the most Garde Sans / Garde Contre")


AWARD_RULES: List[Callable[[Session], Optional[Award]]] = [
    award_butcher,
    award_eternal_defender,
    award_gambler,
]


def compute_awards(session: Session) -> List[Award]:
    if len(session.completed_rounds()) < AWARDS_MIN_ROUNDS:
        return []
    awards = []
    for rule in AWARD_RULES:
        award = rule(session)
        if award is not None:
            awards.append(award)
    return awards


def build_summary(session: Session) -> SessionSummary:
    """Ranking, spread, highlights and (from 3 completed rounds on) awards."""
    ranking = compute_ranking(session)
    return SessionSummary(
        ranking=ranking,
        score_spread=ranking[0].score - ranking[-1].score if ranking else 0,
        highlights=compute_highlights(session, ranking),
        awards=compute_awards(session),
    )


__all__ = [
    "AWARDS_MIN_ROUNDS",
    "RankingEntry",
    "PlayerHighlight",
    "RoundHighlight",
    "ContractCount",
    "Highlights",
    "Award",
    "SessionSummary",
    "cumulative_scores",
    "compute_ranking",
    "find_best_round",
    "find_worst_round",
    "find_most_played_contract",
    "session_duration",
    "compute_highlights",
    "award_butcher",
    "award_eternal_defender",
    "award_gambler",
    "AWARD_RULES",
    "compute_awards",
    "build_summary",
]
