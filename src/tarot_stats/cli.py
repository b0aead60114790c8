"""
Command-line interface for scoring rounds and reading a saved ledger.

Usage examples:

    python -m tarot_stats.cli score --contract garde --oudlers 2 --points 45
    python -m tarot_stats.cli summary ledger.json 3 --json
    python -m tarot_stats.cli ratings ledger.json
    python -m tarot_stats.cli leaderboard ledger.json
    python -m tarot_stats.cli player ledger.json alice --json
"""
from __future__ import annotations

import argparse
import json
import logging
from typing import Optional

from .errors import PreconditionError
from .models import Round
from .persistence import load_ledger
from .rating import ratings_table
from .rules import CONTRACT_KEYS, Chelem, Contract, Handful, RoundStatus, Side
from .scoring import compute_scores
from .stats import (
    contract_distribution,
    contract_success_by_player,
    elo_history,
    elo_ranking,
    leaderboard,
    player_stats,
    totals,
)

SEATS = ("P1", "P2", "P3", "P4", "P5")


def _add_score_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "score",
        help="Score a single round (seats P1..P5, P1 takes).",
    )
    parser.add_argument(
        "--contract",
        choices=[CONTRACT_KEYS[c] for c in Contract],
        required=True,
        help="Contract announced by the taker.",
    )
    parser.add_argument(
        "--oudlers",
        type=int,
        required=True,
        help="Number of oudlers held by the attack (0-3).",
    )
    parser.add_argument(
        "--points",
        type=float,
        required=True,
        help="Card points won by the attack.",
    )
    parser.add_argument(
        "--partner-seat",
        type=int,
        default=2,
        help="Seat (1-5) of the called partner; 1 means the taker called themself.",
    )
    parser.add_argument("--chelem", choices=[c.value for c in Chelem], default=Chelem.NONE.value)
    parser.add_argument("--handful", choices=[h.value for h in Handful], default=Handful.NONE.value)
    parser.add_argument("--handful-side", choices=[s.value for s in Side], default=Side.NONE.value)
    parser.add_argument("--petit-au-bout", choices=[s.value for s in Side], default=Side.NONE.value)
    parser.set_defaults(func=_cmd_score)


def _cmd_score(args: argparse.Namespace) -> None:
    if not 1 <= args.partner_seat <= len(SEATS):
        raise SystemExit(f"--partner-seat must be between 1 and {len(SEATS)}")
    partner = SEATS[args.partner_seat - 1]
    r = Round(
        id=1,
        session_id=0,
        position=1,
        players=SEATS,
        taker=SEATS[0],
        partner=None if partner == SEATS[0] else partner,
        contract=Contract.from_key(args.contract),
        oudlers=args.oudlers,
        points=args.points,
        chelem=Chelem(args.chelem),
        handful=Handful(args.handful),
        handful_side=Side(args.handful_side),
        petit_au_bout=Side(args.petit_au_bout),
        status=RoundStatus.COMPLETED,
    )
    for entry in compute_scores(r):
        role = "taker" if entry.player == r.taker else ("partner" if entry.player == r.partner else "defender")
        print(f"{entry.player} ({role}): {entry.score:+d}")


def _add_summary_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("summary", help="Print the summary of a session.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.add_argument("session_id", type=int, help="Session id.")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    parser.set_defaults(func=_cmd_summary)


def _cmd_summary(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    summary = ledger.summary(args.session_id)
    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"Session {args.session_id}: {summary.highlights.total_rounds} rounds, spread {summary.score_spread}")
    for entry in summary.ranking:
        print(f"  {entry.position}. {entry.player_name:<16} {entry.score:+d}")
    hl = summary.highlights
    if hl.best_round is not None:
        print(f"Best round: {hl.best_round.player_name} ({hl.best_round.contract}) {hl.best_round.score:+d}")
    if hl.worst_round is not None:
        print(f"Worst round: {hl.worst_round.player_name} ({hl.worst_round.contract}) {hl.worst_round.score:+d}")
    if hl.most_played_contract is not None:
        print(f"Most played: {hl.most_played_contract.contract} x{hl.most_played_contract.count}")
    print(f"Stars: {hl.total_stars}, duration: {hl.duration // 60} min")
    for award in summary.awards:
        print(f"{award.title}: {award.player_name}")


def _add_ratings_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("ratings", help="Print current ratings, best first.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.set_defaults(func=_cmd_ratings)


def _cmd_ratings(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    for rank, (pid, rating) in enumerate(ratings_table(ledger.ratings), start=1):
        name = ledger.players[pid].name if pid in ledger.players else pid
        print(f"{rank:>3}. {name:<16} {rating}")


def _add_badges_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("badges", help="Print unlocked achievements.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.add_argument("--player", type=str, default=None, help="Only show this player id.")
    parser.set_defaults(func=_cmd_badges)


def _cmd_badges(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    player_ids = [args.player] if args.player else list(ledger.players)
    for pid in player_ids:
        player = ledger.get_player(pid)
        unlocks = ledger.unlocks.for_player(pid)
        print(f"{player.name}: {len(unlocks)} badge(s)")
        for unlock in unlocks:
            a = unlock.achievement
            print(f"  {a.emoji} {a.label} [{a.category.value}] {unlock.unlocked_at:%Y-%m-%d}")


def _add_leaderboard_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("leaderboard", help="Print total scores across all sessions, best first.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.set_defaults(func=_cmd_leaderboard)


def _cmd_leaderboard(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    for rank, entry in enumerate(leaderboard(ledger.archive()), start=1):
        print(
            f"{rank:>3}. {entry.player_name:<16} {entry.total_score:+d}  "
            f"{entry.games_played} rounds, {entry.wins}/{entry.games_as_taker} takes won ({entry.win_rate}%)"
        )


def _add_elo_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("elo", help="Print the Elo ranking, or one player's rating history.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.add_argument("--player", type=str, default=None, help="Print this player's history instead.")
    parser.set_defaults(func=_cmd_elo)


def _cmd_elo(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    if args.player:
        player = ledger.get_player(args.player)
        print(f"{player.name}: {ledger.rating_of(player.id)}")
        for point in elo_history(player.id, ledger.rating_history, ledger.archive()):
            print(f"  round {point.round_id}: {point.rating_after} ({point.rating_change:+d})")
        return
    for rank, entry in enumerate(elo_ranking(ledger.players, ledger.ratings, ledger.rating_history), start=1):
        print(f"{rank:>3}. {entry.player_name:<16} {entry.rating}  ({entry.games_played} rounds)")


def _add_contracts_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("contracts", help="Print how often each contract was played.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.add_argument("--by-player", action="store_true", help="Print each taker's success rate per contract.")
    parser.set_defaults(func=_cmd_contracts)


def _cmd_contracts(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    if args.by_player:
        for player in contract_success_by_player(ledger.archive()):
            print(f"{player.player_name}:")
            for c in player.contracts:
                print(f"  {c.contract:<14} {c.wins}/{c.count} ({c.win_rate}%)")
        return
    for share in contract_distribution(ledger.archive()):
        print(f"{share.contract:<14} {share.count:>4}  ({share.percentage:.2f}%)")


def _add_player_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("player", help="Print one player's statistics and records.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.add_argument("player_id", type=str, help="Player id.")
    parser.add_argument("--json", action="store_true", help="Print the statistics as JSON.")
    parser.set_defaults(func=_cmd_player)


def _cmd_player(args: argparse.Namespace) -> None:
    ledger = load_ledger(args.ledger)
    ledger.get_player(args.player_id)
    stats = player_stats(args.player_id, ledger.archive(), ledger.ratings, ledger.rating_history)
    if args.json:
        print(json.dumps(stats.to_dict(), indent=2, ensure_ascii=False, default=str))
        return

    print(f"{stats.player_name} (rating {stats.rating})")
    print(f"Rounds: {stats.games_played} in {stats.sessions_played} session(s), total {stats.total_score:+d}")
    print(
        f"Taker {stats.games_as_taker}, partner {stats.games_as_partner}, defender {stats.games_as_defender}; "
        f"{stats.win_rate_as_taker}% of takes won"
    )
    print(f"Best {stats.best_game_score:+d}, worst {stats.worst_game_score:+d}, average {stats.average_score}")
    print(f"Stars: {stats.total_stars}, penalties: {stats.star_penalties}")
    for record in stats.records:
        print(f"  {record.kind}: {record.value}")


def _add_totals_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("totals", help="Print global counts and play time.")
    parser.add_argument("ledger", type=str, help="Path to a ledger JSON file.")
    parser.set_defaults(func=_cmd_totals)


def _cmd_totals(args: argparse.Namespace) -> None:
    t = totals(load_ledger(args.ledger).archive())
    print(f"Sessions: {t.total_sessions}")
    print(f"Rounds: {t.total_games}")
    print(f"Stars: {t.total_stars}")
    print(f"Play time: {t.total_play_time // 60} min")
    if t.average_game_duration is not None:
        print(f"Average round: {t.average_game_duration // 60} min")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tarot-stats", description="Tarot scores, ratings and badges CLI.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity to stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_score_parser(subparsers)
    _add_summary_parser(subparsers)
    _add_ratings_parser(subparsers)
    _add_badges_parser(subparsers)
    _add_leaderboard_parser(subparsers)
    _add_elo_parser(subparsers)
    _add_contracts_parser(subparsers)
    _add_player_parser(subparsers)
    _add_totals_parser(subparsers)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if hasattr(args, "func"):
        try:
            args.func(args)
        except PreconditionError as exc:
            parser.error(str(exc))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
