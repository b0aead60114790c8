"""
Stars: table-manner warnings handed to a player during a session.

Every third star in the same session costs the player a penalty,
shared out to the other players so the session stays zero-sum.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import List

from .errors import InvalidConfigError, UnknownPlayerError
from .models import PlayerId, ScoreEntry, Session, StarEvent
from .rules import PLAYERS_PER_ROUND

logger = logging.getLogger(__name__)


@dataclass
class StarConfig:
    penalty_points: int = 100
    stars_per_penalty: int = 3

    def __post_init__(self) -> None:
        others = PLAYERS_PER_ROUND - 1
        if self.penalty_points % others != 0:
            raise InvalidConfigError(
                f"penalty_points must be a multiple of {others} to share it out evenly, got {self.penalty_points}"
            )
        if self.stars_per_penalty < 1:
            raise InvalidConfigError(f"stars_per_penalty must be at least 1, got {self.stars_per_penalty}")


def star_penalty_entries(
    session: Session,
    player: PlayerId,
    config: StarConfig | None = None,
) -> List[ScoreEntry]:
    """
    Session-level penalty entries due for ``player``'s current star count.

    Empty unless the count is a positive multiple of ``stars_per_penalty``.
    Otherwise: -penalty for the player, penalty / (n - 1) for each other player.
    """
    cfg = config or StarConfig()
    stars = session.star_count(player)
    if stars == 0 or stars % cfg.stars_per_penalty != 0:
        return []

    others = [pid for pid in session.player_ids() if pid != player]
    bonus = cfg.penalty_points // len(others)
    return [
        ScoreEntry(
            player=pid,
            score=-cfg.penalty_points if pid == player else bonus,
            session_id=session.id,
        )
        for pid in session.player_ids()
    ]


def record_star(
    session: Session,
    player: PlayerId,
    at: datetime,
    config: StarConfig | None = None,
) -> List[ScoreEntry]:
    """
    Add a star to the session snapshot and append any penalty it triggers.

    Returns the penalty entries (empty list if none).
    """
    if player not in session.player_ids():
        raise UnknownPlayerError(f"Player {player!r} does not belong to session {session.id}")
    session.star_events.append(StarEvent(player=player, session_id=session.id, created_at=at))
    penalty = star_penalty_entries(session, player, config)
    if penalty:
        session.score_entries.extend(penalty)
        logger.info(
            "Star penalty for %s in session %d (%d stars)", player, session.id, session.star_count(player)
        )
    return penalty


__all__ = ["StarConfig", "star_penalty_entries", "record_star"]
