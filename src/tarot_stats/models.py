"""
Domain snapshots handed to the engine by its caller.

Rounds, score entries, star events and rating changes are immutable
records; a Session is the mutable container the caller fills with them.
The engine only reads these values and returns new ones.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .errors import ConsistencyError, InvalidRoundError
from .rules import PLAYERS_PER_ROUND, Chelem, Contract, Handful, RoundStatus, Side

PlayerId = str
RoundId = int
SessionId = int


@dataclass(frozen=True)
class Player:
    id: PlayerId
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class Round:
    """
    One dealt hand.

    ``players`` is the ordered seating (5 players, fixed for the session).
    ``partner`` is None when the taker called themselves (solo, 1 vs 4).
    ``oudlers`` and ``points`` stay None while the round is in progress.
    ``dealer`` is the seat that dealt the hand, when known.
    """

    id: RoundId
    session_id: SessionId
    position: int
    players: Tuple[PlayerId, ...]
    taker: PlayerId
    contract: Contract
    partner: Optional[PlayerId] = None
    oudlers: Optional[int] = None
    points: Optional[float] = None
    chelem: Chelem = Chelem.NONE
    handful: Handful = Handful.NONE
    handful_side: Side = Side.NONE
    petit_au_bout: Side = Side.NONE
    status: RoundStatus = RoundStatus.IN_PROGRESS
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    dealer: Optional[PlayerId] = None

    def __post_init__(self) -> None:
        if len(self.players) != PLAYERS_PER_ROUND:
            raise InvalidRoundError(
                f"Round {self.id}: expected {PLAYERS_PER_ROUND} players, got {len(self.players)}"
            )
        if len(set(self.players)) != len(self.players):
            raise InvalidRoundError(f"Round {self.id}: a player is seated twice")
        if self.taker not in self.players:
            raise InvalidRoundError(f"Round {self.id}: taker {self.taker!r} is not seated")
        if self.partner is not None:
            if self.partner not in self.players:
                raise InvalidRoundError(f"Round {self.id}: partner {self.partner!r} is not seated")
            if self.partner == self.taker:
                raise InvalidRoundError(f"Round {self.id}: partner must differ from taker (use no partner for a solo)")
        if self.dealer is not None and self.dealer not in self.players:
            raise InvalidRoundError(f"Round {self.id}: dealer {self.dealer!r} is not seated")

    @property
    def is_self_call(self) -> bool:
        return self.partner is None

    @property
    def is_completed(self) -> bool:
        return self.status == RoundStatus.COMPLETED

    @property
    def attackers(self) -> List[PlayerId]:
        if self.partner is None:
            return [self.taker]
        return [self.taker, self.partner]

    @property
    def defenders(self) -> List[PlayerId]:
        attack = self.attackers
        return [p for p in self.players if p not in attack]


@dataclass(frozen=True)
class ScoreEntry:
    """Signed score of one player; ``round_id`` is None for session-level adjustments."""

    player: PlayerId
    score: int
    session_id: SessionId
    round_id: Optional[RoundId] = None


@dataclass(frozen=True)
class StarEvent:
    player: PlayerId
    session_id: SessionId
    created_at: datetime


@dataclass(frozen=True)
class RatingChange:
    player: PlayerId
    round_id: RoundId
    rating_before: int
    rating_change: int
    rating_after: int

    def __post_init__(self) -> None:
        if self.rating_before + self.rating_change != self.rating_after:
            raise ConsistencyError(
                f"Rating of {self.player!r}: {self.rating_before} + {self.rating_change} != {self.rating_after}"
            )


@dataclass
class Session:
    """A sitting of 5 players: its rounds, score entries and star events."""

    id: SessionId
    players: List[Player]
    created_at: datetime
    rounds: List[Round] = field(default_factory=list)
    score_entries: List[ScoreEntry] = field(default_factory=list)
    star_events: List[StarEvent] = field(default_factory=list)
    current_dealer: Optional[PlayerId] = None

    def __post_init__(self) -> None:
        if self.current_dealer is not None and self.current_dealer not in self.player_ids():
            raise InvalidRoundError(f"Session {self.id}: dealer {self.current_dealer!r} is not seated")

    def player_ids(self) -> List[PlayerId]:
        return [p.id for p in self.players]

    def player_names(self) -> Dict[PlayerId, str]:
        return {p.id: p.name for p in self.players}

    def get_round(self, round_id: RoundId) -> Round | None:
        for r in self.rounds:
            if r.id == round_id:
                return r
        return None

    def completed_rounds(self) -> List[Round]:
        """Completed rounds in play order."""
        return sorted((r for r in self.rounds if r.is_completed), key=lambda r: r.position)

    def entries_for_round(self, round_id: RoundId) -> List[ScoreEntry]:
        return [e for e in self.score_entries if e.round_id == round_id]

    def session_entries(self) -> List[ScoreEntry]:
        """Entries not tied to any round (star penalties)."""
        return [e for e in self.score_entries if e.round_id is None]

    def star_count(self, player: PlayerId) -> int:
        return sum(1 for s in self.star_events if s.player == player)

    def next_position(self) -> int:
        return self.latest_position() + 1

    def latest_position(self) -> int:
        return max((r.position for r in self.rounds), default=0)

    def advance_dealer(self) -> Optional[PlayerId]:
        """Pass the deal to the next seat. Does nothing while no dealer is set."""
        ids = self.player_ids()
        if self.current_dealer not in ids:
            return self.current_dealer
        self.current_dealer = ids[(ids.index(self.current_dealer) + 1) % len(ids)]
        return self.current_dealer


__all__ = [
    "PlayerId",
    "RoundId",
    "SessionId",
    "Player",
    "Round",
    "ScoreEntry",
    "StarEvent",
    "RatingChange",
    "Session",
]
