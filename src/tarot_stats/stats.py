"""
Cross-session statistics read from ledger snapshots.

Leaderboard, Elo ranking and history, contract distribution and success
rates, per-player records and profile, and global totals. Like the session
summary, everything here is derived from stored entries and rating history;
nothing is rescored.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import UnknownPlayerError
from .models import Player, PlayerId, RatingChange, Round, RoundId, Session, SessionId
from .rules import REQUIRED_POINTS, Contract

# Record kinds, in the order player_records reports them.
BEST_SCORE = "best_score"
WORST_SCORE = "worst_score"
WIN_STREAK = "win_streak"
BIGGEST_DIFF = "biggest_diff"
BEST_SESSION = "best_session"


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: PlayerId
    player_name: str
    total_score: int
    games_played: int
    games_as_taker: int
    wins: int
    win_rate: float  # percent, as taker


@dataclass(frozen=True)
class EloRankingEntry:
    player_id: PlayerId
    player_name: str
    rating: int
    games_played: int


@dataclass(frozen=True)
class EloPoint:
    round_id: RoundId
    date: Optional[datetime]
    rating_after: int
    rating_change: int


@dataclass(frozen=True)
class ContractShare:
    contract: str
    count: int
    percentage: float


@dataclass(frozen=True)
class ContractSuccess:
    contract: str
    count: int
    wins: int
    win_rate: float


@dataclass(frozen=True)
class PlayerContracts:
    player_id: PlayerId
    player_name: str
    contracts: List[ContractSuccess]


@dataclass(frozen=True)
class PlayerRecord:
    kind: str
    value: float
    date: Optional[datetime]
    session_id: Optional[SessionId] = None
    contract: Optional[str] = None


@dataclass(frozen=True)
class PlayerStats:
    player_id: PlayerId
    player_name: str
    rating: Optional[int]
    games_played: int
    sessions_played: int
    total_score: int
    average_score: float
    best_game_score: int
    worst_game_score: int
    games_as_taker: int
    games_as_partner: int
    games_as_defender: int
    wins_as_taker: int
    win_rate_as_taker: float
    total_stars: int
    star_penalties: int
    average_game_duration: Optional[int]  # seconds
    total_play_time: int  # seconds
    contracts: List[ContractSuccess] = field(default_factory=list)
    elo_history: List[EloPoint] = field(default_factory=list)
    records: List[PlayerRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Totals:
    total_sessions: int
    total_games: int
    total_stars: int
    total_play_time: int  # seconds
    average_game_duration: Optional[int]  # seconds


def _percent(part: int, whole: int, digits: int = 1) -> float:
    return round(part / whole * 100, digits) if whole else 0.0


def _player_names(sessions: Iterable[Session]) -> Dict[PlayerId, str]:
    names: Dict[PlayerId, str] = {}
    for session in sessions:
        for player in session.players:
            names.setdefault(player.id, player.name)
    return names


def _completed(sessions: Iterable[Session]) -> List[Tuple[Session, Round]]:
    """(session, round) for every completed round, oldest round first."""
    pairs = [(s, r) for s in sessions for r in s.completed_rounds()]
    return sorted(pairs, key=lambda sr: sr[1].id)


def _score_of(session: Session, r: Round, player: PlayerId) -> Optional[int]:
    for entry in session.entries_for_round(r.id):
        if entry.player == player:
            return entry.score
    return None


def _round_seconds(r: Round) -> Optional[int]:
    """Time from opening to completion, when both are known and comparable."""
    start, end = r.created_at, r.completed_at
    if start is None or end is None or (start.tzinfo is None) != (end.tzinfo is None):
        return None
    return int((end - start).total_seconds())


def _durations(sessions: Iterable[Session], player: Optional[PlayerId] = None) -> List[int]:
    result = []
    for session, r in _completed(sessions):
        if player is not None and _score_of(session, r, player) is None:
            continue
        seconds = _round_seconds(r)
        if seconds is not None:
            result.append(seconds)
    return result


def _average(values: Sequence[int]) -> Optional[int]:
    return int(round(sum(values) / len(values))) if values else None


# -- leaderboard and contracts -------------------------------------------------


def leaderboard(sessions: Iterable[Session]) -> List[LeaderboardEntry]:
    """
    Every player with at least one entry, by total score (stars included), best first.

    Win rate is the share of the player's takes where their own score was positive.
    """
    sessions = list(sessions)
    names = _player_names(sessions)
    totals: Dict[PlayerId, int] = {}
    games: Dict[PlayerId, set] = {}
    takes: Dict[PlayerId, int] = {}
    wins: Dict[PlayerId, int] = {}

    for session in sessions:
        completed = {r.id for r in session.completed_rounds()}
        for entry in session.score_entries:
            if entry.round_id is not None and entry.round_id not in completed:
                continue
            totals[entry.player] = totals.get(entry.player, 0) + entry.score
            if entry.round_id is not None:
                games.setdefault(entry.player, set()).add(entry.round_id)
    for session, r in _completed(sessions):
        takes[r.taker] = takes.get(r.taker, 0) + 1
        if (_score_of(session, r, r.taker) or 0) > 0:
            wins[r.taker] = wins.get(r.taker, 0) + 1

    board = [
        LeaderboardEntry(
            player_id=pid,
            player_name=names.get(pid, pid),
            total_score=total,
            games_played=len(games.get(pid, ())),
            games_as_taker=takes.get(pid, 0),
            wins=wins.get(pid, 0),
            win_rate=_percent(wins.get(pid, 0), takes.get(pid, 0)),
        )
        for pid, total in totals.items()
    ]
    return sorted(board, key=lambda e: e.total_score, reverse=True)


def contract_distribution(sessions: Iterable[Session]) -> List[ContractShare]:
    """How often each contract was played, most played first (empty without completed rounds)."""
    counts: Dict[Contract, int] = {}
    for _, r in _completed(sessions):
        counts[r.contract] = counts.get(r.contract, 0) + 1
    total = sum(counts.values())
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [ContractShare(contract=c.key, count=n, percentage=_percent(n, total, 2)) for c, n in ordered]


def _contract_success(pairs: Iterable[Tuple[Session, Round]], player: PlayerId) -> List[ContractSuccess]:
    counts: Dict[Contract, int] = {}
    wins: Dict[Contract, int] = {}
    for session, r in pairs:
        if r.taker != player:
            continue
        counts[r.contract] = counts.get(r.contract, 0) + 1
        if (_score_of(session, r, player) or 0) > 0:
            wins[r.contract] = wins.get(r.contract, 0) + 1
    return [
        ContractSuccess(contract=c.key, count=n, wins=wins.get(c, 0), win_rate=_percent(wins.get(c, 0), n))
        for c, n in sorted(counts.items())
    ]


def contract_success_by_player(sessions: Iterable[Session]) -> List[PlayerContracts]:
    """Per taker: each contract taken, with how many were won."""
    sessions = list(sessions)
    names = _player_names(sessions)
    pairs = _completed(sessions)
    takers: List[PlayerId] = []
    for _, r in pairs:
        if r.taker not in takers:
            takers.append(r.taker)
    return [
        PlayerContracts(player_id=pid, player_name=names.get(pid, pid), contracts=_contract_success(pairs, pid))
        for pid in takers
    ]


# -- ratings -------------------------------------------------------------------


def elo_history(
    player: PlayerId,
    rating_history: Iterable[RatingChange],
    sessions: Iterable[Session] = (),
) -> List[EloPoint]:
    """The player's rating after each rated round, oldest first, dated by round completion."""
    completed_at = {r.id: r.completed_at for s in sessions for r in s.rounds}
    return [
        EloPoint(
            round_id=c.round_id,
            date=completed_at.get(c.round_id),
            rating_after=c.rating_after,
            rating_change=c.rating_change,
        )
        for c in rating_history
        if c.player == player
    ]


def all_elo_history(
    rating_history: Iterable[RatingChange],
    sessions: Iterable[Session] = (),
) -> Dict[PlayerId, List[EloPoint]]:
    rating_history = list(rating_history)
    sessions = list(sessions)
    players: List[PlayerId] = []
    for c in rating_history:
        if c.player not in players:
            players.append(c.player)
    return {pid: elo_history(pid, rating_history, sessions) for pid in players}


def elo_ranking(
    players: Mapping[PlayerId, Player],
    ratings: Mapping[PlayerId, int],
    rating_history: Iterable[RatingChange],
) -> List[EloRankingEntry]:
    """Players with at least one rated round, highest rating first."""
    rated: Dict[PlayerId, set] = {}
    for c in rating_history:
        rated.setdefault(c.player, set()).add(c.round_id)
    entries = [
        EloRankingEntry(
            player_id=pid,
            player_name=players[pid].name if pid in players else pid,
            rating=ratings[pid],
            games_played=len(round_ids),
        )
        for pid, round_ids in rated.items()
        if pid in ratings
    ]
    return sorted(entries, key=lambda e: e.rating, reverse=True)


# -- per player ----------------------------------------------------------------


def player_records(player: PlayerId, sessions: Iterable[Session]) -> List[PlayerRecord]:
    """
    Personal records over completed rounds.

    best_score / worst_score: own score in any role.
    win_streak: longest run of won takes.
    biggest_diff: largest gap between the attack's points and the target, as taker.
    best_session: best sum of round scores in one session (stars excluded).
    Ties go to the earliest round or session. Kinds without data are left out.
    """
    sessions = list(sessions)
    played = [(s, r, _score_of(s, r, player)) for s, r in _completed(sessions)]
    played = [(s, r, score) for s, r, score in played if score is not None]
    records: List[PlayerRecord] = []
    if not played:
        return records

    def _round_record(kind: str, value: float, s: Session, r: Round) -> PlayerRecord:
        return PlayerRecord(kind=kind, value=value, date=r.completed_at, session_id=s.id, contract=r.contract.key)

    best = played[0]
    worst = played[0]
    for item in played[1:]:
        if item[2] > best[2]:
            best = item
        if item[2] < worst[2]:
            worst = item
    records.append(_round_record(BEST_SCORE, best[2], best[0], best[1]))
    records.append(_round_record(WORST_SCORE, worst[2], worst[0], worst[1]))

    takes = [(s, r, score) for s, r, score in played if r.taker == player]
    streak = longest = 0
    streak_end: Optional[datetime] = None
    for _, r, score in takes:
        streak = streak + 1 if score > 0 else 0
        if streak > longest:
            longest = streak
            streak_end = r.completed_at
    if longest > 0:
        records.append(PlayerRecord(kind=WIN_STREAK, value=longest, date=streak_end))

    widest: Optional[Tuple[float, Session, Round]] = None
    for s, r, _ in takes:
        if r.points is None or r.oudlers not in REQUIRED_POINTS:
            continue
        diff = abs(float(r.points) - REQUIRED_POINTS[r.oudlers])
        if diff > 0 and (widest is None or diff > widest[0]):
            widest = (diff, s, r)
    if widest is not None:
        records.append(_round_record(BIGGEST_DIFF, widest[0], widest[1], widest[2]))

    per_session: Dict[SessionId, int] = {}
    by_id = {s.id: s for s, _, _ in played}
    for s, _, score in played:
        per_session[s.id] = per_session.get(s.id, 0) + score
    best_session = max(per_session, key=lambda sid: per_session[sid])
    records.append(
        PlayerRecord(
            kind=BEST_SESSION,
            value=per_session[best_session],
            date=by_id[best_session].created_at,
            session_id=best_session,
        )
    )
    return records


def player_stats(
    player: PlayerId,
    sessions: Iterable[Session],
    ratings: Optional[Mapping[PlayerId, int]] = None,
    rating_history: Iterable[RatingChange] = (),
) -> PlayerStats:
    """Profile of one player across every supplied session."""
    sessions = list(sessions)
    names = _player_names(sessions)
    if player not in names:
        raise UnknownPlayerError(f"Player {player!r} has no session")

    pairs = _completed(sessions)
    scores = [score for score in (_score_of(s, r, player) for s, r in pairs) if score is not None]
    mine = [(s, r) for s, r in pairs if _score_of(s, r, player) is not None]
    takes = [(s, r) for s, r in mine if r.taker == player]
    wins = sum(1 for s, r in takes if (_score_of(s, r, player) or 0) > 0)
    as_partner = sum(1 for _, r in mine if r.partner == player)
    durations = _durations(sessions, player)

    return PlayerStats(
        player_id=player,
        player_name=names[player],
        rating=(ratings or {}).get(player),
        games_played=len(scores),
        sessions_played=len({s.id for s, _ in mine}),
        total_score=sum(scores),
        average_score=round(sum(scores) / len(scores), 1) if scores else 0.0,
        best_game_score=max(scores, default=0),
        worst_game_score=min(scores, default=0),
        games_as_taker=len(takes),
        games_as_partner=as_partner,
        games_as_defender=len(scores) - len(takes) - as_partner,
        wins_as_taker=wins,
        win_rate_as_taker=_percent(wins, len(takes)),
        total_stars=sum(s.star_count(player) for s in sessions),
        star_penalties=sum(
            1 for s in sessions for e in s.session_entries() if e.player == player and e.score < 0
        ),
        average_game_duration=_average(durations),
        total_play_time=sum(durations),
        contracts=_contract_success(pairs, player),
        elo_history=elo_history(player, rating_history, sessions),
        records=player_records(player, sessions),
    )


# -- totals --------------------------------------------------------------------


def totals(sessions: Iterable[Session]) -> Totals:
    sessions = list(sessions)
    durations = _durations(sessions)
    return Totals(
        total_sessions=len(sessions),
        total_games=sum(len(s.completed_rounds()) for s in sessions),
        total_stars=sum(len(s.star_events) for s in sessions),
        total_play_time=sum(durations),
        average_game_duration=_average(durations),
    )


__all__ = [
    "BEST_SCORE",
    "WORST_SCORE",
    "WIN_STREAK",
    "BIGGEST_DIFF",
    "BEST_SESSION",
    "LeaderboardEntry",
    "EloRankingEntry",
    "EloPoint",
    "ContractShare",
    "ContractSuccess",
    "PlayerContracts",
    "PlayerRecord",
    "PlayerStats",
    "Totals",
    "leaderboard",
    "contract_distribution",
    "contract_success_by_player",
    "elo_history",
    "all_elo_history",
    "elo_ranking",
    "player_records",
    "player_stats",
    "totals",
]
