"""
Ledger serialization for import/export.

Exports and imports a Ledger (config, players and ratings, sessions with
their rounds, entries and stars, rating history, unlocks) to and from
JSON-compatible dicts. Enums are written by their wire key, datetimes in ISO 8601.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .achievements import Achievement, AchievementUnlock
from .ledger import Ledger, LedgerConfig
from .models import Player, RatingChange, Round, ScoreEntry, Session, StarEvent
from .rating import RatingConfig
from .rules import Chelem, Contract, Handful, RoundStatus, Side
from .stars import StarConfig

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _config_to_dict(cfg: LedgerConfig) -> Dict[str, Any]:
    return asdict(cfg)


def _config_from_dict(d: Dict[str, Any]) -> LedgerConfig:
    rating = d.get("rating", {})
    stars = d.get("stars", {})
    r0 = RatingConfig()
    s0 = StarConfig()
    return LedgerConfig(
        rating=RatingConfig(
            initial_rating=int(rating.get("initial_rating", r0.initial_rating)),
            k_taker=int(rating.get("k_taker", r0.k_taker)),
            k_partner=int(rating.get("k_partner", r0.k_partner)),
            k_defender=int(rating.get("k_defender", r0.k_defender)),
        ),
        stars=StarConfig(
            penalty_points=int(stars.get("penalty_points", s0.penalty_points)),
            stars_per_penalty=int(stars.get("stars_per_penalty", s0.stars_per_penalty)),
        ),
    )


def _round_to_dict(r: Round) -> Dict[str, Any]:
    return {
        "id": r.id,
        "position": r.position,
        "players": list(r.players),
        "taker": r.taker,
        "partner": r.partner,
        "dealer": r.dealer,
        "contract": r.contract.key,
        "oudlers": r.oudlers,
        "points": r.points,
        "chelem": r.chelem.value,
        "handful": r.handful.value,
        "handful_side": r.handful_side.value,
        "petit_au_bout": r.petit_au_bout.value,
        "status": r.status.value,
        "created_at": _dt_to_str(r.created_at),
        "completed_at": _dt_to_str(r.completed_at),
    }


def _round_from_dict(d: Dict[str, Any], session_id: int) -> Round:
    return Round(
        id=int(d["id"]),
        session_id=session_id,
        position=int(d["position"]),
        players=tuple(d["players"]),
        taker=d["taker"],
        partner=d.get("partner"),
        dealer=d.get("dealer"),
        contract=Contract.from_key(d["contract"]),
        oudlers=d.get("oudlers"),
        points=d.get("points"),
        chelem=Chelem(d.get("chelem", Chelem.NONE.value)),
        handful=Handful(d.get("handful", Handful.NONE.value)),
        handful_side=Side(d.get("handful_side", Side.NONE.value)),
        petit_au_bout=Side(d.get("petit_au_bout", Side.NONE.value)),
        status=RoundStatus(d.get("status", RoundStatus.IN_PROGRESS.value)),
        created_at=_dt_from_str(d.get("created_at")),
        completed_at=_dt_from_str(d.get("completed_at")),
    )


def _session_to_dict(s: Session) -> Dict[str, Any]:
    return {
        "id": s.id,
        "players": s.player_ids(),
        "created_at": _dt_to_str(s.created_at),
        "current_dealer": s.current_dealer,
        "rounds": [_round_to_dict(r) for r in s.rounds],
        "score_entries": [
            {"player": e.player, "score": e.score, "round_id": e.round_id} for e in s.score_entries
        ],
        "star_events": [
            {"player": st.player, "created_at": _dt_to_str(st.created_at)} for st in s.star_events
        ],
    }


def _session_from_dict(d: Dict[str, Any], players: Dict[str, Player]) -> Session:
    sid = int(d["id"])
    return Session(
        id=sid,
        players=[players[pid] for pid in d["players"]],
        created_at=_dt_from_str(d["created_at"]),
        rounds=[_round_from_dict(r, sid) for r in d.get("rounds", [])],
        score_entries=[
            ScoreEntry(player=e["player"], score=int(e["score"]), session_id=sid, round_id=e.get("round_id"))
            for e in d.get("score_entries", [])
        ],
        star_events=[
            StarEvent(player=st["player"], session_id=sid, created_at=_dt_from_str(st["created_at"]))
            for st in d.get("star_events", [])
        ],
        current_dealer=d.get("current_dealer"),
    )


def ledger_to_dict(
    ledger: Ledger,
    *,
    metadata: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    """
    Serialize a Ledger to a JSON-compatible dict.

    Args:
        ledger: The ledger to serialize.
        metadata: Optional extra metadata (e.g. group name).

    Returns:
        Dict with schema_version, exported_at, config, players, sessions,
        rating_history, unlocks and optional metadata.
    """
    result: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "config": _config_to_dict(ledger.config),
        "players": [
            {"id": p.id, "name": p.name, "color": p.color, "rating": ledger.ratings.get(p.id)}
            for p in ledger.players.values()
        ],
        "sessions": [_session_to_dict(s) for s in ledger.sessions.values()],
        "rating_history": [
            {
                "player": c.player,
                "round_id": c.round_id,
                "rating_before": c.rating_before,
                "rating_change": c.rating_change,
                "rating_after": c.rating_after,
            }
            for c in ledger.rating_history
        ],
        "unlocks": [
            {"player": u.player, "achievement": u.achievement.value, "unlocked_at": _dt_to_str(u.unlocked_at)}
            for u in ledger.unlocks
        ],
    }
    if metadata:
        result["metadata"] = metadata
    return result


def ledger_from_dict(d: Dict[str, Any]) -> Ledger:
    """
    Deserialize a Ledger from a dict (e.g. from JSON).

    Args:
        d: Dict produced by ledger_to_dict (or compatible).

    Returns:
        Restored Ledger.
    """
    version = d.get("schema_version", SCHEMA_VERSION)
    if version > SCHEMA_VERSION:
        raise ValueError(f"Unsupported ledger schema version {version} (max {SCHEMA_VERSION})")

    ledger = Ledger(config=_config_from_dict(d.get("config", {})))
    for pd in d.get("players", []):
        rating = pd.get("rating")
        ledger.add_player(pd["id"], pd["name"], color=pd.get("color"), rating=int(rating) if rating is not None else None)
    for sd in d.get("sessions", []):
        session = _session_from_dict(sd, ledger.players)
        ledger.sessions[session.id] = session
    ledger.rating_history.extend(
        RatingChange(
            player=c["player"],
            round_id=int(c["round_id"]),
            rating_before=int(c["rating_before"]),
            rating_change=int(c["rating_change"]),
            rating_after=int(c["rating_after"]),
        )
        for c in d.get("rating_history", [])
    )
    for ud in d.get("unlocks", []):
        ledger.unlocks.add(
            AchievementUnlock(
                player=ud["player"],
                achievement=Achievement(ud["achievement"]),
                unlocked_at=_dt_from_str(ud["unlocked_at"]),
            )
        )
    return ledger


def ledger_to_json(
    ledger: Ledger,
    *,
    metadata: Dict[str, Any] | None = None,
) -> str:
    """Serialize a Ledger to a JSON string."""
    return json.dumps(ledger_to_dict(ledger, metadata=metadata), indent=2, ensure_ascii=False)


def ledger_from_json(s: str) -> Ledger:
    """Deserialize a Ledger from a JSON string."""
    return ledger_from_dict(json.loads(s))


def save_ledger(ledger: Ledger, path: Path | str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        f.write(ledger_to_json(ledger))
    logger.info("Saved ledger to %s (%d sessions)", p, len(ledger.sessions))


def load_ledger(path: Path | str) -> Ledger:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        ledger = ledger_from_json(f.read())
    logger.debug("Loaded ledger from %s (%d sessions)", p, len(ledger.sessions))
    return ledger


__all__ = [
    "ledger_to_dict",
    "ledger_from_dict",
    "ledger_to_json",
    "ledger_from_json",
    "save_ledger",
    "load_ledger",
    "SCHEMA_VERSION",
]
