"""
Achievements (badges) unlocked from a player's full history.

Each achievement is a one-way latch: once a player has unlocked a kind it is
never evaluated again for them. Conditions are pure predicates over a
``PlayerHistory``, an aggregate built from the session snapshots the caller
supplies (the engine never fetches anything itself).

Flow for a session:
  1. build a PlayerHistory per seated player from the archive of sessions;
  2. drop kinds already present in the UnlockLog;
  3. evaluate the remaining predicates; record and return the ones that hold.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from .models import PlayerId, Round, Session, SessionId
from .rules import Chelem, Contract, Side

logger = logging.getLogger(__name__)

# Thresholds
CENTURION_ROUNDS = 100
REGULAR_SESSIONS = 10
SOCIAL_CO_PLAYERS = 10
STAR_COLLECTOR_STARS = 10
CHAMPION_STREAK_WINS = 5
WALL_DEFENSE_WINS = 10
PETIT_MALIN_WINS = 5
LAST_PLACE_SESSIONS = 5
MARATHON_SECONDS = 3 * 3600
NIGHT_OWL_END_HOUR = 5  # rounds completed from 00:00 to 04:59


class Category(str, Enum):
    PROGRESSION = "progression"
    PERFORMANCE = "performance"
    FUN = "fun"
    SOCIAL = "social"


class Achievement(str, Enum):
    CENTURION = "centurion"
    CHAMPION_STREAK = "champion_streak"
    COMEBACK = "comeback"
    FIRST_CHELEM = "first_chelem"
    FIRST_GAME = "first_game"
    KAMIKAZE = "kamikaze"
    LAST_PLACE = "last_place"
    MARATHON = "marathon"
    NIGHT_OWL = "night_owl"
    NO_NET = "no_net"
    PETIT_MALIN = "petit_malin"
    REGULAR = "regular"
    SOCIAL = "social"
    STAR_COLLECTOR = "star_collector"
    WALL = "wall"

    @property
    def category(self) -> Category:
        return _INFO[self][0]

    @property
    def label(self) -> str:
        return _INFO[self][1]

    @property
    def description(self) -> str:
        return _INFO[self][2]

    @property
    def emoji(self) -> str:
        return _INFO[self][3]

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.value,
            "category": self.category.value,
            "label": self.label,
            "description": self.description,
            "emoji": self.emoji,
        }


_INFO: Dict[Achievement, Tuple[Category, str, str, str]] = {
    Achievement.CENTURION: (Category.PROGRESSION, "Centurion", "Play 100 rounds", "💯"),
    Achievement.CHAMPION_STREAK: (Category.PERFORMANCE, "Inarrêtable", "Win 5 rounds in a row as taker", "🔥"),
    Achievement.COMEBACK: (Category.FUN, "Comeback", "Go from last to first within one session", "📈"),
    Achievement.FIRST_CHELEM: (Category.PERFORMANCE, "Premier Chelem", "Win an announced chelem", "👑"),
    Achievement.FIRST_GAME: (Category.PROGRESSION, "Première donne", "Play your first round", "🎮"),
    Achievement.KAMIKAZE: (Category.PERFORMANCE, "Kamikaze", "Take a Garde Contre", "⚔️"),
    Achievement.LAST_PLACE: (Category.FUN, "Lanterne rouge", "Finish last in 5 sessions", "💀"),
    Achievement.MARATHON: (Category.SOCIAL, "Marathon", "Play a session longer than 3 hours", "⏰"),
    Achievement.NIGHT_OWL: (Category.SOCIAL, "Noctambule", "Play a round after midnight", "🌙"),
    Achievement.NO_NET: (Category.PERFORMANCE, "Sans filet", "Win a Garde Sans", "🎯"),
    Achievement.PETIT_MALIN: (Category.PERFORMANCE, "Petit malin", "Win 5 petits au bout", "🃏"),
    Achievement.REGULAR: (Category.PROGRESSION, "Habitué", "Play 10 sessions", "🔟"),
    Achievement.SOCIAL: (Category.SOCIAL, "Sociable", "Play with 10 different players", "👥"),
    Achievement.STAR_COLLECTOR: (Category.FUN, "Collectionneur d'étoiles", "Receive 10 stars", "⭐"),
    Achievement.WALL: (Category.PERFORMANCE, "Muraille", "Win 10 rounds in a row in defense", "🛡️"),
}

if set(_INFO) != set(Achievement):
    raise RuntimeError("Achievement info table does not cover every achievement")


@dataclass(frozen=True)
class AchievementUnlock:
    player: PlayerId
    achievement: Achievement
    unlocked_at: datetime


@dataclass(frozen=True)
class RoundResult:
    """A completed round seen from one participant, with the taker's score."""

    taker: PlayerId
    partner: Optional[PlayerId]
    taker_score: int


@dataclass(frozen=True)
class PlayerHistory:
    """Aggregate of everything one player did, across all supplied sessions."""

    player: PlayerId
    completed_round_count: int = 0
    session_ids: Tuple[SessionId, ...] = ()
    co_player_count: int = 0
    chelem_announced_won_count: int = 0
    garde_contre_count: int = 0
    won_garde_sans_count: int = 0
    won_petit_au_bout_attack_count: int = 0
    taker_scores: Tuple[int, ...] = ()
    round_results: Tuple[RoundResult, ...] = ()
    marathon_session_ids: Tuple[SessionId, ...] = ()
    night_owl_count: int = 0
    star_event_count: int = 0
    last_place_count: int = 0
    comeback_session_ids: Tuple[SessionId, ...] = ()

    @property
    def session_count(self) -> int:
        return len(self.session_ids)


def _taker_score(session: Session, r: Round) -> int:
    for entry in session.entries_for_round(r.id):
        if entry.player == r.taker:
            return entry.score
    return 0


def _max_streak(items: Iterable, condition: Callable[[object], bool]) -> int:
    best = 0
    current = 0
    for item in items:
        if condition(item):
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def _is_strictly(cumulative: Dict[PlayerId, int], player: PlayerId, pick: Callable) -> bool:
    if player not in cumulative:
        return False
    target = pick(cumulative.values())
    if cumulative[player] != target:
        return False
    return sum(1 for s in cumulative.values() if s == target) == 1


def came_back_in_session(session: Session, player: PlayerId) -> bool:
    """Strictly last after some non-final round, strictly first after the final one."""
    rounds = session.completed_rounds()
    cumulative: Dict[PlayerId, int] = {}
    was_last = False
    for i, r in enumerate(rounds):
        for entry in session.entries_for_round(r.id):
            cumulative[entry.player] = cumulative.get(entry.player, 0) + entry.score
        if i < len(rounds) - 1 and _is_strictly(cumulative, player, min):
            was_last = True
    return was_last and _is_strictly(cumulative, player, max)


def finished_last_in_session(session: Session, player: PlayerId) -> bool:
    """Lowest summed round score of the session (ties: first in seating order)."""
    totals: Dict[PlayerId, int] = {}
    for r in session.completed_rounds():
        for entry in session.entries_for_round(r.id):
            totals[entry.player] = totals.get(entry.player, 0) + entry.score
    if not totals:
        return False
    order = {pid: i for i, pid in enumerate(session.player_ids())}
    ranked = sorted(totals.items(), key=lambda kv: (kv[1], order.get(kv[0], len(order))))
    return ranked[0][0] == player


def _chronological(archive: Iterable[Session]) -> List[Session]:
    return sorted(archive, key=lambda s: (s.created_at, s.id))


def build_player_history(player: PlayerId, archive: Iterable[Session]) -> PlayerHistory:
    """
    Aggregate one player's history from session snapshots.

    Only completed rounds count. Rounds are read in chronological order
    (session start, then position) so streaks follow the order of play.
    """
    sessions = _chronological(archive)
    completed_rounds = 0
    session_ids: List[SessionId] = []
    co_players: Set[PlayerId] = set()
    chelems = 0
    garde_contre = 0
    won_garde_sans = 0
    won_petit = 0
    taker_scores: List[int] = []
    results: List[RoundResult] = []
    marathons: List[SessionId] = []
    night_owl = 0
    stars = 0
    last_places = 0
    comebacks: List[SessionId] = []

    for session in sessions:
        stars += session.star_count(player)
        played = [r for r in session.completed_rounds() if player in r.players]
        if not played:
            continue

        session_ids.append(session.id)
        co_players.update(pid for pid in session.player_ids() if pid != player)
        for r in played:
            completed_rounds += 1
            score = _taker_score(session, r)
            results.append(RoundResult(taker=r.taker, partner=r.partner, taker_score=score))
            if r.completed_at is not None and r.completed_at.hour < NIGHT_OWL_END_HOUR:
                night_owl += 1
            if r.taker != player:
                continue
            taker_scores.append(score)
            if r.chelem == Chelem.ANNOUNCED_WON:
                chelems += 1
            if r.contract == Contract.GARDE_CONTRE:
                garde_contre += 1
            if r.contract == Contract.GARDE_SANS and score > 0:
                won_garde_sans += 1
            if r.petit_au_bout == Side.ATTACK and score > 0:
                won_petit += 1

        durations = [
            (r.completed_at - session.created_at).total_seconds()
            for r in session.completed_rounds()
            if r.completed_at is not None
        ]
        if durations and max(durations) > MARATHON_SECONDS:
            marathons.append(session.id)
        if finished_last_in_session(session, player):
            last_places += 1
        if came_back_in_session(session, player):
            comebacks.append(session.id)

    return PlayerHistory(
        player=player,
        completed_round_count=completed_rounds,
        session_ids=tuple(session_ids),
        co_player_count=len(co_players),
        chelem_announced_won_count=chelems,
        garde_contre_count=garde_contre,
        won_garde_sans_count=won_garde_sans,
        won_petit_au_bout_attack_count=won_petit,
        taker_scores=tuple(taker_scores),
        round_results=tuple(results),
        marathon_session_ids=tuple(marathons),
        night_owl_count=night_owl,
        star_event_count=stars,
        last_place_count=last_places,
        comeback_session_ids=tuple(comebacks),
    )


def _wall(h: PlayerHistory) -> bool:
    def defense_win(res: RoundResult) -> bool:
        return res.taker != h.player and res.partner != h.player and res.taker_score < 0

    return _max_streak(h.round_results, defense_win) >= WALL_DEFENSE_WINS


_PREDICATES: Dict[Achievement, Callable[[PlayerHistory], bool]] = {
    Achievement.CENTURION: lambda h: h.completed_round_count >= CENTURION_ROUNDS,
    Achievement.CHAMPION_STREAK: lambda h: _max_streak(h.taker_scores, lambda s: s > 0) >= CHAMPION_STREAK_WINS,
    Achievement.COMEBACK: lambda h: len(h.comeback_session_ids) >= 1,
    Achievement.FIRST_CHELEM: lambda h: h.chelem_announced_won_count >= 1,
    Achievement.FIRST_GAME: lambda h: h.completed_round_count >= 1,
    Achievement.KAMIKAZE: lambda h: h.garde_contre_count >= 1,
    Achievement.LAST_PLACE: lambda h: h.last_place_count >= LAST_PLACE_SESSIONS,
    Achievement.MARATHON: lambda h: len(h.marathon_session_ids) >= 1,
    Achievement.NIGHT_OWL: lambda h: h.night_owl_count >= 1,
    Achievement.NO_NET: lambda h: h.won_garde_sans_count >= 1,
    Achievement.PETIT_MALIN: lambda h: h.won_petit_au_bout_attack_count >= PETIT_MALIN_WINS,
    Achievement.REGULAR: lambda h: h.session_count >= REGULAR_SESSIONS,
    Achievement.SOCIAL: lambda h: h.co_player_count >= SOCIAL_CO_PLAYERS,
    Achievement.STAR_COLLECTOR: lambda h: h.star_event_count >= STAR_COLLECTOR_STARS,
    Achievement.WALL: _wall,
}

if set(_PREDICATES) != set(Achievement):
    raise RuntimeError("Achievement predicate table does not cover every achievement")


def evaluate(achievement: Achievement, history: PlayerHistory) -> bool:
    """True if the player's history satisfies the achievement's condition."""
    return _PREDICATES[achievement](history)


def candidate_achievements(history: PlayerHistory, unlocked: Iterable[Achievement] = ()) -> List[Achievement]:
    """Locked achievements whose condition now holds, in declaration order."""
    already = set(unlocked)
    return [a for a in Achievement if a not in already and evaluate(a, history)]


class UnlockLog:
    """
    Append-only record of unlocks, unique per (player, achievement).

    A second unlock of the same kind for the same player is ignored.
    """

    def __init__(self, unlocks: Iterable[AchievementUnlock] = ()) -> None:
        self._unlocks: Dict[Tuple[PlayerId, Achievement], AchievementUnlock] = {}
        for unlock in unlocks:
            self.add(unlock)

    def add(self, unlock: AchievementUnlock) -> bool:
        key = (unlock.player, unlock.achievement)
        if key in self._unlocks:
            logger.warning("Ignoring duplicate unlock of %s for player %s", unlock.achievement.value, unlock.player)
            return False
        self._unlocks[key] = unlock
        return True

    def unlocked(self, player: PlayerId) -> Set[Achievement]:
        return {a for (p, a) in self._unlocks if p == player}

    def for_player(self, player: PlayerId) -> List[AchievementUnlock]:
        return [u for (p, _), u in self._unlocks.items() if p == player]

    def __contains__(self, key: Tuple[PlayerId, Achievement]) -> bool:
        return key in self._unlocks

    def __iter__(self) -> Iterator[AchievementUnlock]:
        return iter(list(self._unlocks.values()))

    def __len__(self) -> int:
        return len(self._unlocks)


class AchievementEngine:
    """Checks players against every locked achievement and records new unlocks."""

    def __init__(self, unlock_log: UnlockLog | None = None) -> None:
        self.unlock_log = unlock_log if unlock_log is not None else UnlockLog()

    def check_player(
        self,
        player: PlayerId,
        archive: Sequence[Session],
        now: datetime | None = None,
    ) -> List[Achievement]:
        """Newly unlocked achievements for one player (empty if nothing new)."""
        now = now or datetime.now(timezone.utc)
        history = build_player_history(player, archive)
        awarded: List[Achievement] = []
        for achievement in candidate_achievements(history, self.unlock_log.unlocked(player)):
            if self.unlock_log.add(AchievementUnlock(player=player, achievement=achievement, unlocked_at=now)):
                awarded.append(achievement)
                logger.info("Player %s unlocked %s", player, achievement.value)
        return awarded

    def check_and_award(
        self,
        session: Session,
        archive: Iterable[Session] = (),
        now: datetime | None = None,
    ) -> Dict[PlayerId, List[Achievement]]:
        """
        Check every player of ``session`` and record what they newly unlocked.

        Args:
            session: The session that just changed (always part of the history).
            archive: Every other session the caller knows about.
            now: Unlock timestamp (defaults to current UTC time).

        Returns:
            player id -> newly unlocked achievements; players with nothing new are omitted.
        """
        sessions = [s for s in archive if s.id != session.id]
        sessions.append(session)
        result: Dict[PlayerId, List[Achievement]] = {}
        for player in session.player_ids():
            awarded = self.check_player(player, sessions, now=now)
            if awarded:
                result[player] = awarded
        return result


__all__ = [
    "Category",
    "Achievement",
    "AchievementUnlock",
    "RoundResult",
    "PlayerHistory",
    "build_player_history",
    "came_back_in_session",
    "finished_last_in_session",
    "evaluate",
    "candidate_achievements",
    "UnlockLog",
    "AchievementEngine",
    "CENTURION_ROUNDS",
    "MARATHON_SECONDS",
    "NIGHT_OWL_END_HOUR",
]
