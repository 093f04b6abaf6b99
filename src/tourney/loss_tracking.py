"""
Simple loss-tracking double elimination.

No bracket structure: every team carries a loss count (0, 1 or 2).
- 2 losses = eliminated
- Play continues until one team remains
- A team with 0 losses in the championship must lose twice

All state lives in a LossTrackingContext passed to every call.
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from .errors import InvalidInput, InvalidState, NotFound
from .models import STATUS_CHAMPION, STATUS_ELIMINATED, Team

logger = logging.getLogger(__name__)


class LossTrackingContext:
    """Teams and counters for one loss-tracking tournament."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self.teams: List[Team] = []
        self.match_counter = 0
        self.team_counter = 0

    def next_team_id(self) -> str:
        self.team_counter += 1
        return f"team_{self.team_counter}"

    def next_match_id(self) -> str:
        self.match_counter += 1
        return f"M{self.match_counter}"

    def find_team(self, team_id) -> Team:
        for team in self.teams:
            if team.team_id == team_id:
                return team
        raise NotFound(f"Unknown team: {team_id}")


class Matchup:
    """A pairing handed out by next_match()."""

    def __init__(self, match_id, team1: Team, team2: Team, is_championship=False):
        self.match_id = match_id
        self.team1 = team1
        self.team2 = team2
        self.is_championship = is_championship

    def __repr__(self):
        return (f"Matchup(id={self.match_id}, teams=({self.team1.team_id}, {self.team2.team_id}), "
                f"championship={self.is_championship})")


def initialize(context: LossTrackingContext, players: Sequence, champion_team: Optional[Sequence] = None,
               champion_gets_bye: bool = False) -> List[Team]:
    """
    Pair players into teams.

    The champion team, if given, is created first and its players are
    removed from the pool. The rest are shuffled and paired in order; an
    odd player out sits the tournament out.
    """
    if len(set(players)) != len(players):
        raise InvalidInput("Player list contains duplicates")

    context.teams = []
    context.match_counter = 0
    context.team_counter = 0

    if champion_team is not None:
        champion = Team(context.next_team_id(), champion_team, is_reigning_champion=True,
                        had_bye=champion_gets_bye)
        context.teams.append(champion)
        remaining = [p for p in players if p not in champion.players]
    else:
        remaining = list(players)

    context.rng.shuffle(remaining)

    for i in range(0, len(remaining) - 1, 2):
        context.teams.append(Team(context.next_team_id(), (remaining[i], remaining[i + 1])))

    if len(remaining) % 2 == 1:
        logger.warning("Odd number of players: %s has no partner and sits out", remaining[-1])

    if len(context.teams) < 2:
        raise InvalidInput(f"Need at least 2 teams, got {len(context.teams)}")

    logger.info("Loss-tracking tournament initialized with %d teams", len(context.teams))
    return list(context.teams)


def get_active_teams(context: LossTrackingContext) -> List[Team]:
    """Active teams (losses < 2 and not eliminated)."""
    return [team for team in context.teams if team.is_active]


def _holds_unused_bye(team: Team) -> bool:
    return team.is_reigning_champion and team.had_bye and team.matches_played == 0


def next_match(context: LossTrackingContext) -> Optional[Matchup]:
    """
    Next pairing to play, or None once one team is left.

    Undefeated teams are paired with each other first, then one-loss
    teams; within a group the two teams with the fewest matches played
    meet. A champion holding its bye waits until everyone else has played.
    """
    active = get_active_teams(context)
    if len(active) <= 1:
        return None

    candidates = active
    waiting = [team for team in active if _holds_unused_bye(team)]
    if waiting:
        others = [team for team in active if team not in waiting]
        if any(team.matches_played == 0 for team in others) and len(others) >= 2:
            candidates = others

    order = {team.team_id: index for index, team in enumerate(context.teams)}

    def fewest_played(teams):
        return sorted(teams, key=lambda t: (t.matches_played, order[t.team_id]))[:2]

    pair = None
    for losses in (0, 1):
        group = [team for team in candidates if team.losses == losses]
        if len(group) >= 2:
            pair = fewest_played(group)
            break
    if pair is None:
        pair = fewest_played(candidates)

    return Matchup(context.next_match_id(), pair[0], pair[1], is_championship=len(active) == 2)


def championship_match(context: LossTrackingContext) -> Optional[Matchup]:
    """Championship pairing, only when exactly two teams remain."""
    active = get_active_teams(context)
    if len(active) != 2:
        return None
    return Matchup(context.next_match_id(), active[0], active[1], is_championship=True)


def record_result(context: LossTrackingContext, winner_id, loser_id, match_id=None) -> None:
    """Record a match outcome and update team states."""
    if winner_id == loser_id:
        raise InvalidInput(f"Team {winner_id} cannot play itself")
    winner = context.find_team(winner_id)
    loser = context.find_team(loser_id)
    for team in (winner, loser):
        if not team.is_active:
            raise InvalidState(f"Team {team.team_id} is already eliminated")

    if match_id is None:
        match_id = context.next_match_id()

    loser.losses += 1
    if loser.losses == 2:
        loser.status = STATUS_ELIMINATED
        logger.info("Team %s eliminated", loser.team_id)

    winner.match_history.append({'match_id': match_id, 'result': 'W', 'opponent': loser.name})
    loser.match_history.append({'match_id': match_id, 'result': 'L', 'opponent': winner.name})

    active = get_active_teams(context)
    if len(active) == 1:
        active[0].status = STATUS_CHAMPION
        logger.info("Team %s is champion", active[0].team_id)


def tournament_status(context: LossTrackingContext) -> Dict:
    """
    Returns dict with:
    - 'active_teams', 'eliminated_teams'
    - 'is_complete': one or fewer active teams
    - 'championship_ready': exactly two active teams
    - 'champion': team id or None
    """
    active = get_active_teams(context)
    eliminated = [team for team in context.teams if team.status == STATUS_ELIMINATED]
    champion = next((team.team_id for team in context.teams if team.status == STATUS_CHAMPION), None)
    return {
        'active_teams': active,
        'eliminated_teams': eliminated,
        'is_complete': len(active) <= 1,
        'championship_ready': len(active) == 2,
        'champion': champion,
    }
