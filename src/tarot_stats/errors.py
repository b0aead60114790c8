"""
Exceptions raised by the scoring, rating and achievement components.

Precondition errors reject an operation before anything is written.
Consistency errors mean an invariant broke inside the engine itself.
"""
from __future__ import annotations


class TarotStatsError(Exception):
    """Base class for every error raised by tarot_stats."""


class PreconditionError(TarotStatsError, ValueError):
    """Input rejected; the operation wrote nothing."""


class MissingRoundDataError(PreconditionError):
    """A round is completed without its oudlers count or its points."""


class InvalidOudlersError(PreconditionError):
    """Oudlers count outside 0..3."""


class InvalidRoundError(PreconditionError):
    """Seating does not describe a valid 5-player round."""


class MissingRatingError(PreconditionError):
    """A participant has no current rating."""


class MissingScoreError(PreconditionError):
    """The taker's score entry is missing for a round being rated."""


class InvalidConfigError(PreconditionError):
    """A configuration value would break an engine invariant."""


class UnknownPlayerError(PreconditionError, KeyError):
    pass


class UnknownSessionError(PreconditionError, KeyError):
    pass


class UnknownRoundError(PreconditionError, KeyError):
    pass


class ConsistencyError(TarotStatsError, AssertionError):
    """An engine invariant (zero-sum, rating arithmetic) does not hold."""


__all__ = [
    "TarotStatsError",
    "PreconditionError",
    "MissingRoundDataError",
    "InvalidOudlersError",
    "InvalidRoundError",
    "MissingRatingError",
    "MissingScoreError",
    "InvalidConfigError",
    "UnknownPlayerError",
    "UnknownSessionError",
    "UnknownRoundError",
    "ConsistencyError",
]
