"""Tests for ledger serialization."""

from datetime import datetime, timedelta, timezone
import json

import pytest

from tarot_stats.achievements import Achievement
from tarot_stats.errors import InvalidConfigError
from tarot_stats.ledger import Ledger, LedgerConfig
from tarot_stats.persistence import (
    SCHEMA_VERSION,
    ledger_from_dict,
    ledger_from_json,
    ledger_to_dict,
    ledger_to_json,
    load_ledger,
    save_ledger,
)
from tarot_stats.rating import RatingConfig
from tarot_stats.rules import Chelem, Contract, Handful, Side
from tarot_stats.stars import StarConfig

PLAYERS = ("alice", "bob", "carol", "dave", "eve")
T0 = datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc)


def _make_ledger() -> Ledger:
    ledger = Ledger(LedgerConfig(rating=RatingConfig(k_taker=32), stars=StarConfig(penalty_points=80)))
    for i, pid in enumerate(PLAYERS):
        ledger.add_player(pid, pid.title(), color="#00000%d" % i)
    session = ledger.start_session(PLAYERS, created_at=T0)
    r1 = ledger.add_round(session.id, "alice", Contract.GARDE, partner="bob", created_at=T0)
    ledger.complete_round(
        session.id,
        r1.id,
        now=T0 + timedelta(minutes=12),
        oudlers=2,
        points=52.5,
        handful=Handful.SIMPLE,
        handful_side=Side.DEFENSE,
        petit_au_bout=Side.ATTACK,
    )
    r2 = ledger.add_round(session.id, "carol", Contract.GARDE_CONTRE, chelem=Chelem.ANNOUNCED_LOST)
    ledger.complete_round(session.id, r2.id, now=T0 + timedelta(minutes=25), oudlers=3, points=70)
    ledger.add_round(session.id, "dave", Contract.PETITE, partner="eve")
    ledger.add_star(session.id, "eve", at=T0 + timedelta(minutes=30))
    return ledger


def test_round_trip_dict():
    ledger = _make_ledger()
    d = ledger_to_dict(ledger)
    restored = ledger_from_dict(d)

    assert restored.players == ledger.players
    assert restored.ratings == ledger.ratings
    assert restored.rating_history == ledger.rating_history
    assert restored.config == ledger.config
    for sid, session in ledger.sessions.items():
        r = restored.sessions[sid]
        assert r.players == session.players
        assert r.created_at == session.created_at
        assert r.rounds == session.rounds
        assert r.score_entries == session.score_entries
        assert r.star_events == session.star_events
        assert r.current_dealer == session.current_dealer
    assert list(restored.unlocks) == list(ledger.unlocks)


def test_export_shape():
    d = ledger_to_dict(_make_ledger(), metadata={"group": "jeudi"})
    assert d["schema_version"] == SCHEMA_VERSION
    assert "exported_at" in d
    assert d["metadata"] == {"group": "jeudi"}
    assert d["config"]["rating"]["k_taker"] == 32
    rounds = d["sessions"][0]["rounds"]
    assert rounds[0]["contract"] == "garde"
    assert rounds[1]["chelem"] == "announced_lost"
    assert rounds[2]["status"] == "in_progress"
    assert rounds[0]["completed_at"] == (T0 + timedelta(minutes=12)).isoformat()
    assert [x["dealer"] for x in rounds] == ["alice", "bob", "carol"]
    assert d["sessions"][0]["current_dealer"] == "carol"


def test_round_trip_json():
    ledger = _make_ledger()
    s = ledger_to_json(ledger)
    json.loads(s)
    restored = ledger_from_json(s)
    assert restored.summary(1) == ledger.summary(1)
    assert ("alice", Achievement.FIRST_GAME) in restored.unlocks


def test_restored_ledger_keeps_working():
    restored = ledger_from_json(ledger_to_json(_make_ledger()))
    session = restored.get_session(1)
    open_round = next(r for r in session.rounds if not r.is_completed)
    outcome = restored.complete_round(1, open_round.id, now=T0 + timedelta(minutes=40), oudlers=1, points=60)
    assert not outcome.edited
    assert outcome.new_achievements == {}
    assert restored.add_round(1, "bob", Contract.PETITE).id == open_round.id + 1


def test_missing_optional_fields_use_defaults():
    restored = ledger_from_dict({"players": [{"id": "a", "name": "A"}]})
    assert restored.config == LedgerConfig()
    assert restored.rating_of("a") == 1500
    assert restored.sessions == {}


def test_newer_schema_is_rejected():
    with pytest.raises(ValueError):
        ledger_from_dict({"schema_version": SCHEMA_VERSION + 1})


def test_save_and_load(tmp_path):
    ledger = _make_ledger()
    path = tmp_path / "nested" / "ledger.json"
    save_ledger(ledger, path)
    assert path.exists()
    loaded = load_ledger(path)
    assert loaded.ratings == ledger.ratings
    assert loaded.summary(1).to_dict() == ledger.summary(1).to_dict()


def test_invalid_star_config_is_rejected_on_load():
    with pytest.raises(InvalidConfigError):
        ledger_from_dict({"config": {"stars": {"penalty_points": 99}}})
