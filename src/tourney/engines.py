"""
Interchangeable tournament engines selectable per event.

Both keep their own in-memory state; persistence stays with the caller.
"""
import logging
import random
from typing import Dict, List, Optional

from . import loss_tracking
from .double_elimination import build_bracket
from .errors import InvalidInput, NotFound
from .models import Match, MatchMutation, Team
from .progression import advance, apply_mutations, bracket_status, derive_team_states

logger = logging.getLogger(__name__)

MODE_BRACKET = 'bracket'
MODE_LOSS_TRACKING = 'loss_tracking'
MODES = (MODE_BRACKET, MODE_LOSS_TRACKING)


class TournamentEngine:
    """Capability shared by every engine: build, advance and status."""

    mode = None

    def build(self, *args, **kwargs):
        raise NotImplementedError

    def advance(self, *args, **kwargs):
        raise NotImplementedError

    def status(self) -> Dict:
        raise NotImplementedError


class BracketEngine(TournamentEngine):
    """Full winners/losers bracket with a grand final reset."""

    mode = MODE_BRACKET

    def __init__(self, champion_gets_bye: bool = False, teams: Optional[List[Team]] = None,
                 matches: Optional[List[Match]] = None):
        self.champion_gets_bye = champion_gets_bye
        self.teams: List[Team] = list(teams) if teams else []
        self.matches: List[Match] = list(matches) if matches else []

    def build(self, teams: List[Team]) -> List[Match]:
        self.teams = list(teams)
        self.matches = build_bracket(self.teams, self.champion_gets_bye)
        return self.matches

    def record_winner(self, match_id, winner_id) -> List[MatchMutation]:
        """Set the winner of a match and advance it; returns the applied mutations."""
        match = self.get_match(match_id)
        staged = [m.copy() for m in self.matches]
        for candidate in staged:
            if candidate.match_id == match.match_id:
                candidate.winner = winner_id
        mutations = advance(staged, match_id, self.teams)
        self.matches = apply_mutations(staged, mutations)
        self.teams = derive_team_states(self.teams, self.matches)
        logger.info("Recorded %s won %s (%d mutations)", winner_id, match_id, len(mutations))
        return mutations

    def advance(self, match_id, winner_id) -> List[MatchMutation]:
        return self.record_winner(match_id, winner_id)

    def next_match(self) -> Optional[Match]:
        pending = self.status()['pending_matches']
        return pending[0] if pending else None

    def get_match(self, match_id) -> Match:
        for match in self.matches:
            if match.match_id == match_id:
                return match
        raise NotFound(f"Unknown match: {match_id}")

    def status(self) -> Dict:
        return bracket_status(self.teams, self.matches)


class LossTrackingEngine(TournamentEngine):
    """Loss counting only, for small or casual events."""

    mode = MODE_LOSS_TRACKING

    def __init__(self, champion_gets_bye: bool = False, rng: Optional[random.Random] = None):
        self.champion_gets_bye = champion_gets_bye
        self.context = loss_tracking.LossTrackingContext(rng)

    @property
    def teams(self) -> List[Team]:
        return self.context.teams

    def build(self, players, champion_team=None) -> List[Team]:
        return loss_tracking.initialize(self.context, players, champion_team, self.champion_gets_bye)

    def next_match(self) -> Optional[loss_tracking.Matchup]:
        return loss_tracking.next_match(self.context)

    def record_winner(self, winner_id, loser_id, match_id=None) -> None:
        loss_tracking.record_result(self.context, winner_id, loser_id, match_id)

    def advance(self, winner_id, loser_id, match_id=None) -> None:
        self.record_winner(winner_id, loser_id, match_id)

    def status(self) -> Dict:
        return loss_tracking.tournament_status(self.context)


def create_engine(mode: str = MODE_BRACKET, champion_gets_bye: bool = False,
                  random_seed: Optional[int] = None) -> TournamentEngine:
    """Engine for the given mode ('bracket' or 'loss_tracking')."""
    if mode == MODE_BRACKET:
        return BracketEngine(champion_gets_bye=champion_gets_bye)
    if mode == MODE_LOSS_TRACKING:
        rng = random.Random(random_seed) if random_seed is not None else None
        return LossTrackingEngine(champion_gets_bye=champion_gets_bye, rng=rng)
    raise InvalidInput(f"Unknown tournament mode: {mode!r} (expected one of {', '.join(MODES)})")
