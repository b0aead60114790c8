"""Tests for the command-line interface."""

import json
from datetime import datetime, timedelta

import pytest

from tarot_stats.cli import build_parser, main
from tarot_stats.ledger import Ledger
from tarot_stats.persistence import save_ledger
from tarot_stats.rules import Contract

PLAYERS = ("alice", "bob", "carol", "dave", "eve")
T0 = datetime(2025, 3, 1, 20, 0)


def _saved_ledger(tmp_path):
    ledger = Ledger()
    for pid in PLAYERS:
        ledger.add_player(pid, pid.title())
    session = ledger.start_session(PLAYERS, created_at=T0)
    for i, taker in enumerate(("alice", "bob", "alice")):
        r = ledger.add_round(session.id, taker, Contract.GARDE, partner="carol", created_at=T0 + timedelta(minutes=10 * i))
        ledger.complete_round(session.id, r.id, now=T0 + timedelta(minutes=10 * (i + 1)), oudlers=2, points=50)
    path = tmp_path / "ledger.json"
    save_ledger(ledger, path)
    return path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_score_command(capsys):
    main(["score", "--contract", "garde", "--oudlers", "2", "--points", "50"])
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "P1 (taker): +136",
        "P2 (partner): +68",
        "P3 (defender): -68",
        "P4 (defender): -68",
        "P5 (defender): -68",
    ]


def test_score_command_solo(capsys):
    main(["score", "--contract", "petite", "--oudlers", "1", "--points", "45", "--partner-seat", "1"])
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "P1 (taker): -124"
    assert out[1] == "P2 (defender): +31"


def test_score_command_with_bonuses(capsys):
    main([
        "score", "--contract", "garde", "--oudlers", "2", "--points", "50",
        "--partner-seat", "3", "--handful", "simple", "--petit-au-bout", "attack",
    ])
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "P1 (taker): +216"
    assert out[2] == "P3 (partner): +108"


def test_score_command_bad_seat():
    with pytest.raises(SystemExit):
        main(["score", "--contract", "garde", "--oudlers", "2", "--points", "50", "--partner-seat", "6"])


def test_summary_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["summary", str(path), "1"])
    out = capsys.readouterr().out
    assert "Session 1: 3 rounds" in out
    assert "1. Alice" in out
    assert "Le Boucher: Alice" in out


def test_summary_command_json(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["summary", str(path), "1", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["ranking"][0]["player_id"] == "alice"
    assert data["highlights"]["total_rounds"] == 3


def test_ratings_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["--verbose", "ratings", str(path)])
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    ratings = [int(line.split()[-1]) for line in lines]
    assert ratings == sorted(ratings, reverse=True)
    assert lines[0].strip().startswith("1.")


def test_badges_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["badges", str(path), "--player", "bob"])
    out = capsys.readouterr().out
    assert out.startswith("Bob: 1 badge(s)")
    assert "Première donne" in out


def test_score_command_bad_oudlers(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["score", "--contract", "garde", "--oudlers", "7", "--points", "50"])
    assert exc.value.code == 2
    assert "Invalid oudlers count: 7" in capsys.readouterr().err


def test_badges_command_unknown_player(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(["badges", str(path), "--player", "zed"])
    assert exc.value.code == 2
    err = capsys.readouterr().err
    assert "Unknown player" in err and "zed" in err


def test_leaderboard_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["leaderboard", str(path)])
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("  1. Alice")
    assert "+204" in lines[0]
    assert lines[0].endswith("3 rounds, 2/2 takes won (100.0%)")
    assert lines[1].startswith("  2. Carol")


def test_elo_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["elo", str(path)])
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert all(line.endswith("(3 rounds)") for line in lines)

    main(["elo", str(path), "--player", "alice"])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("Alice: ")
    assert [line.split(":")[0] for line in lines[1:]] == ["  round 1", "  round 2", "  round 3"]
    assert lines[-1].split()[2] == lines[0].split()[1]


def test_elo_command_unknown_player(tmp_path):
    path = _saved_ledger(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(["elo", str(path), "--player", "zed"])
    assert exc.value.code == 2


def test_contracts_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["contracts", str(path)])
    assert capsys.readouterr().out.split() == ["garde", "3", "(100.00%)"]

    main(["contracts", str(path), "--by-player"])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Alice:"
    assert lines[1].split() == ["garde", "2/2", "(100.0%)"]
    assert lines[2] == "Bob:"


def test_player_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["player", str(path), "carol", "--json"])
    data = json.loads(capsys.readouterr().out)
    assert data["games_played"] == 3
    assert data["games_as_partner"] == 3
    assert data["total_score"] == 204
    assert data["total_play_time"] == 1800

    main(["player", str(path), "alice"])
    out = capsys.readouterr().out
    assert out.startswith("Alice (rating ")
    assert "win_streak: 2" in out


def test_player_command_unknown_player(tmp_path):
    path = _saved_ledger(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(["player", str(path), "zed"])
    assert exc.value.code == 2


def test_totals_command(tmp_path, capsys):
    path = _saved_ledger(tmp_path)
    main(["totals", str(path)])
    assert capsys.readouterr().out.splitlines() == [
        "Sessions: 1",
        "Rounds: 3",
        "Stars: 0",
        "Play time: 30 min",
        "Average round: 10 min",
    ]
