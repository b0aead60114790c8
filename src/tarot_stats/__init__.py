"""Tarot scoring, Elo ratings and achievements for 5-player sessions."""

__version__ = "0.1.0"

from .rules import Contract, Chelem, Handful, Side, RoundStatus
from .models import Player, Round, ScoreEntry, StarEvent, RatingChange, Session
from .errors import TarotStatsError, PreconditionError, ConsistencyError
from .scoring import compute_scores, recompute_scores, distribute_scores, round_total
from .rating import RatingConfig, compute_rating_changes, revert_rating_changes, expected_score
from .achievements import Achievement, AchievementEngine, AchievementUnlock, UnlockLog
from .summary import SessionSummary, build_summary
from .stats import PlayerStats, leaderboard, elo_ranking, contract_distribution, player_stats, totals
from .stars import StarConfig, record_star
from .ledger import Ledger, LedgerConfig
from .persistence import save_ledger, load_ledger
