"""
In-memory ledger driving the engine end to end.

The ledger plays the role of the storage layer: it owns players, sessions,
current ratings, rating history and unlocks, and wires the pure components
together when a round is completed, edited or deleted, or a star is given.

Every operation computes its results on copies first and commits them
together under one lock, so a rejected round leaves nothing half-written and
two concurrent completions never interleave their rating updates.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from .achievements import Achievement, AchievementEngine, PlayerHistory, UnlockLog, build_player_history
from .errors import InvalidRoundError, UnknownPlayerError, UnknownRoundError, UnknownSessionError
from .models import Player, PlayerId, RatingChange, Round, RoundId, ScoreEntry, Session, SessionId, StarEvent
from .rating import RatingConfig, apply_rating_changes, compute_rating_changes, revert_rating_changes
from .rules import PLAYERS_PER_ROUND, Contract, RoundStatus
from .scoring import recompute_scores
from .stars import StarConfig, record_star
from .summary import SessionSummary, build_summary

logger = logging.getLogger(__name__)

# Fields the ledger sets itself; callers cannot override them.
RESERVED_ROUND_FIELDS = frozenset({"id", "session_id", "position", "players", "status", "completed_at"})


@dataclass
class LedgerConfig:
    rating: RatingConfig = field(default_factory=RatingConfig)
    stars: StarConfig = field(default_factory=StarConfig)


@dataclass(frozen=True)
class RoundOutcome:
    """What completing (or re-completing) a round produced."""

    round: Round
    scores: List[ScoreEntry]
    rating_changes: List[RatingChange]
    new_achievements: Dict[PlayerId, List[Achievement]] = field(default_factory=dict)
    edited: bool = False


@dataclass(frozen=True)
class StarOutcome:
    star: StarEvent
    penalty: List[ScoreEntry]
    new_achievements: Dict[PlayerId, List[Achievement]] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check_reserved(round_id: RoundId, attrs: Dict[str, Any]) -> None:
    reserved = sorted(RESERVED_ROUND_FIELDS.intersection(attrs))
    if reserved:
        raise InvalidRoundError(f"Round {round_id}: {', '.join(reserved)} cannot be set directly")


def _check_latest(session: Session, r: Round, action: str) -> None:
    latest = session.latest_position()
    if r.position < latest:
        raise InvalidRoundError(
            f"Only the latest round of session {session.id} can be {action} "
            f"(round {r.id} is at position {r.position}, latest is {latest})"
        )


class Ledger:
    """Players, sessions, ratings and unlocks, kept consistent round after round."""

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self.config = config or LedgerConfig()
        self.players: Dict[PlayerId, Player] = {}
        self.sessions: Dict[SessionId, Session] = {}
        self.ratings: Dict[PlayerId, int] = {}
        self.rating_history: List[RatingChange] = []
        self.unlocks = UnlockLog()
        self._lock = threading.RLock()

    # -- lookups -----------------------------------------------------------

    def get_player(self, player_id: PlayerId) -> Player:
        try:
            return self.players[player_id]
        except KeyError:
            raise UnknownPlayerError(f"Unknown player: {player_id!r}") from None

    def get_session(self, session_id: SessionId) -> Session:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise UnknownSessionError(f"Unknown session: {session_id!r}") from None

    def get_round(self, session_id: SessionId, round_id: RoundId) -> Round:
        r = self.get_session(session_id).get_round(round_id)
        if r is None:
            raise UnknownRoundError(f"Unknown round {round_id!r} in session {session_id!r}")
        return r

    def rating_of(self, player_id: PlayerId) -> int:
        self.get_player(player_id)
        return self.ratings[player_id]

    def archive(self) -> List[Session]:
        return list(self.sessions.values())

    def player_history(self, player_id: PlayerId) -> PlayerHistory:
        self.get_player(player_id)
        return build_player_history(player_id, self.archive())

    def _next_round_id(self) -> RoundId:
        return max((r.id for s in self.sessions.values() for r in s.rounds), default=0) + 1

    # -- players and sessions ---------------------------------------------

    def add_player(
        self,
        player_id: PlayerId,
        name: str,
        color: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> Player:
        with self._lock:
            player = Player(id=player_id, name=name, color=color)
            self.players[player_id] = player
            if rating is not None:
                self.ratings[player_id] = rating
            else:
                self.ratings.setdefault(player_id, self.config.rating.initial_rating)
            return player

    def start_session(
        self,
        player_ids: Iterable[PlayerId],
        created_at: datetime | None = None,
        session_id: SessionId | None = None,
    ) -> Session:
        with self._lock:
            players = [self.get_player(pid) for pid in player_ids]
            if len(players) != PLAYERS_PER_ROUND or len({p.id for p in players}) != len(players):
                raise InvalidRoundError(f"A session needs {PLAYERS_PER_ROUND} distinct players")
            if session_id is None:
                session_id = max(self.sessions, default=0) + 1
            session = Session(
                id=session_id,
                players=players,
                created_at=created_at or _now(),
                current_dealer=players[0].id,
            )
            self.sessions[session_id] = session
            logger.info("Session %d started with %s", session_id, [p.id for p in players])
            return session

    # -- rounds ------------------------------------------------------------

    def add_round(
        self,
        session_id: SessionId,
        taker: PlayerId,
        contract: Contract,
        partner: PlayerId | None = None,
        created_at: datetime | None = None,
        **attrs: Any,
    ) -> Round:
        """Open a new round (in progress) for the session's seating, dealt by the current dealer."""
        with self._lock:
            session = self.get_session(session_id)
            round_id = self._next_round_id()
            _check_reserved(round_id, attrs)
            attrs.setdefault("dealer", session.current_dealer)
            r = Round(
                id=round_id,
                session_id=session_id,
                position=session.next_position(),
                players=tuple(session.player_ids()),
                taker=taker,
                partner=partner,
                contract=contract,
                created_at=created_at or _now(),
                **attrs,
            )
            session.rounds.append(r)
            return r

    def update_round(self, session_id: SessionId, round_id: RoundId, **changes: Any) -> Round:
        """Change attributes of a round in progress (edit completed rounds with complete_round)."""
        with self._lock:
            session = self.get_session(session_id)
            r = self.get_round(session_id, round_id)
            if r.is_completed:
                raise InvalidRoundError(f"Round {round_id} is completed; pass the changes to complete_round")
            _check_reserved(round_id, changes)
            updated = replace(r, **changes)
            session.rounds[session.rounds.index(r)] = updated
            return updated

    def complete_round(
        self,
        session_id: SessionId,
        round_id: RoundId,
        now: datetime | None = None,
        **attrs: Any,
    ) -> RoundOutcome:
        """
        Score and rate a round, then check achievements on first completion.

        Completing an already completed round is an edit: its previous scores
        and rating changes are discarded first, ``completed_at`` is kept and
        achievements are not re-checked.

        Only the latest round of the session can be edited. The dealer
        passes to the next seat on first completion only.
        """
        with self._lock:
            session = self.get_session(session_id)
            current = self.get_round(session_id, round_id)
            edited = current.is_completed
            _check_reserved(round_id, attrs)
            if edited:
                _check_latest(session, current, "edited")
            now = now or _now()

            completed = replace(
                current,
                status=RoundStatus.COMPLETED,
                completed_at=current.completed_at if edited else now,
                **attrs,
            )
            entries = recompute_scores(completed, session.score_entries)
            round_entries = [e for e in entries if e.round_id == round_id]

            ratings = dict(self.ratings)
            history = list(self.rating_history)
            if edited:
                revert_rating_changes(ratings, history, round_id)
            rating_changes = compute_rating_changes(completed, round_entries, ratings, self.config.rating)
            apply_rating_changes(ratings, rating_changes)
            history.extend(rating_changes)

            session.rounds[session.rounds.index(current)] = completed
            session.score_entries[:] = entries
            self.ratings.update(ratings)
            self.rating_history[:] = history
            if not edited:
                session.advance_dealer()
            logger.info(
                "Round %d of session %d %s: %s",
                round_id,
                session_id,
                "rescored" if edited else "completed",
                {e.player: e.score for e in round_entries},
            )
            logger.debug("Rating changes for round %d: %s", round_id, {c.player: c.rating_change for c in rating_changes})

            new_achievements: Dict[PlayerId, List[Achievement]] = {}
            if not edited:
                engine = AchievementEngine(self.unlocks)
                new_achievements = engine.check_and_award(session, self.archive(), now=now)

            return RoundOutcome(
                round=completed,
                scores=round_entries,
                rating_changes=rating_changes,
                new_achievements=new_achievements,
                edited=edited,
            )

    def delete_round(self, session_id: SessionId, round_id: RoundId) -> List[RatingChange]:
        """
        Remove the latest round of a session, restoring ratings to what they
        were before it. Returns the reverted changes.
        """
        with self._lock:
            session = self.get_session(session_id)
            r = self.get_round(session_id, round_id)
            _check_latest(session, r, "deleted")
            reverted = revert_rating_changes(self.ratings, self.rating_history, round_id)
            session.score_entries[:] = [e for e in session.score_entries if e.round_id != round_id]
            session.rounds.remove(r)
            logger.info("Round %d of session %d deleted, %d rating changes reverted", round_id, session_id, len(reverted))
            return reverted

    # -- stars ---------------------------------------------------------------

    def add_star(self, session_id: SessionId, player_id: PlayerId, at: datetime | None = None) -> StarOutcome:
        with self._lock:
            session = self.get_session(session_id)
            at = at or _now()
            penalty = record_star(session, player_id, at, self.config.stars)
            engine = AchievementEngine(self.unlocks)
            new_achievements = engine.check_and_award(session, self.archive(), now=at)
            return StarOutcome(star=session.star_events[-1], penalty=penalty, new_achievements=new_achievements)

    # -- reporting ---------------------------------------------------------

    def summary(self, session_id: SessionId) -> SessionSummary:
        with self._lock:
            return build_summary(self.get_session(session_id))


__all__ = ["RESERVED_ROUND_FIELDS", "LedgerConfig", "RoundOutcome", "StarOutcome", "Ledger"]
