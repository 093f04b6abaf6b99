"""
Error kinds raised by the bracket engine and the loss-tracking facade.

All of them signal caller misuse; none are retried internally.
"""


class TournamentError(Exception):
    """Base class for every engine error."""


class InvalidInput(TournamentError, ValueError):
    """Malformed team or player set (too few, duplicates, several champions)."""


class NotFound(TournamentError, LookupError):
    """Unknown match or team identifier."""


class InvalidState(TournamentError):
    """Operation not allowed in the current state (no winner, already resolved)."""


class AmbiguousWinner(TournamentError, ValueError):
    """Recorded winner is neither of the match's two teams."""


class StaleStateError(InvalidState):
    """Stored tournament changed since it was loaded."""
