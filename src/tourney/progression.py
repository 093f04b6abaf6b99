"""
Match progression for double elimination brackets.

advance() takes the current match set plus the id of a match whose winner
has just been set, and returns the mutations that carry the result through
the bracket. The input matches are never modified.
"""
import logging
from collections import Counter
from typing import Dict, List, Optional

from .elimination import BracketGeometry
from .errors import AmbiguousWinner, InvalidState, NotFound
from .models import (
    MATCH_FIELDS,
    STATUS_ACTIVE,
    STATUS_CHAMPION,
    STATUS_ELIMINATED,
    Match,
    MatchMutation,
    RoundRef,
    Team,
)

logger = logging.getLogger(__name__)


def advance(matches: List[Match], completed_match_id, teams: List[Team]) -> List[MatchMutation]:
    """
    Carry a decided match through the bracket.

    Raises:
        NotFound: completed_match_id is not in matches
        InvalidState: no winner set, the match was already advanced, or the
            opponent slot is still waiting for a team
        AmbiguousWinner: winner is neither team1 nor team2
    """
    return _Progression(matches, teams).run(completed_match_id)


class _Progression:
    def __init__(self, matches: List[Match], teams: List[Team]):
        self.matches: Dict[tuple, Match] = {}
        self.by_id: Dict[object, Match] = {}
        for original in matches:
            match = original.copy()
            self.matches[match.key] = match
            self.by_id[match.match_id] = match

        winners_rounds = max((m.round.number for m in self.matches.values() if m.round.is_winners), default=0)
        if winners_rounds == 0:
            raise InvalidState("Match set has no winners bracket")
        self.geometry = BracketGeometry.from_winners_rounds(winners_rounds)

        first_round = RoundRef.winners(1)
        seats = {m.slot: len(m.seated) for m in self.matches.values() if m.round == first_round}
        self.vacancies = self.geometry.vacancy_map(seats)

        champion = next((team for team in teams if team.is_reigning_champion), None)
        self.champion_id = champion.team_id if champion else None

        self.changes: Dict[object, dict] = {}
        self.created = set()

    def run(self, completed_match_id) -> List[MatchMutation]:
        match = self.by_id.get(completed_match_id)
        if match is None:
            raise NotFound(f"Unknown match: {completed_match_id}")
        if match.winner is None:
            raise InvalidState(f"Match {match.match_id} has no winner set")
        if match.winner not in match.seated:
            raise AmbiguousWinner(
                f"Winner {match.winner} is not playing in match {match.match_id} "
                f"({match.team1} vs {match.team2})")
        if self._already_advanced(match):
            raise InvalidState(f"Match {match.match_id} has already been advanced")

        winner = match.winner
        loser = match.team2 if winner == match.team1 else match.team1
        logger.debug("Advancing %s: winner=%s loser=%s", match.match_id, winner, loser)

        if loser is None:
            empty_side = 'team2' if match.team1 == winner else 'team1'
            if not self.side_is_vacant(match, empty_side):
                raise InvalidState(f"Match {match.match_id} is still waiting for an opponent")
            self._set(match, 'is_bye', True)
            self._forward_winner(match)
        else:
            self._set(match, 'loser', loser)
            if match.round.is_winners:
                self._forward_winner(match)
                self._drop_loser(match)
            elif match.round.is_losers:
                self._forward_winner(match)
            else:
                self._resolve_grand_final(match)

        self._sweep_byes()
        return self._mutations()

    def _already_advanced(self, match: Match) -> bool:
        if match.loser is not None:
            return True
        target = self.geometry.winner_target(match.round, match.slot)
        if target is None:
            return False
        round_ref, slot, _ = target
        next_match = self.matches.get((round_ref, slot))
        return next_match is not None and match.winner in next_match.seated

    def side_is_vacant(self, match: Match, side: str) -> bool:
        if match.round == RoundRef.winners(1):
            return True
        return self.vacancies.side_is_vacant(match.round, match.slot, side)

    def _set(self, match: Match, field: str, value):
        if getattr(match, field) == value:
            return
        setattr(match, field, value)
        self.changes.setdefault(match.match_id, {})[field] = value

    def _get_or_create(self, round_ref: RoundRef, slot: int) -> Match:
        match = self.matches.get((round_ref, slot))
        if match is None:
            match = Match(round_ref, slot)
            self.matches[match.key] = match
            self.by_id[match.match_id] = match
            self.created.add(match.match_id)
            self.changes.setdefault(match.match_id, {})
            logger.debug("Created match %s", match.match_id)
        return match

    def _seat(self, target, team_id):
        round_ref, slot, side = target
        match = self._get_or_create(round_ref, slot)
        if match.is_decided:
            raise InvalidState(f"Cannot seat {team_id} in decided match {match.match_id}")
        if team_id in match.seated:
            return
        if getattr(match, side) is not None:
            other = 'team2' if side == 'team1' else 'team1'
            if getattr(match, other) is not None:
                raise InvalidState(f"Match {match.match_id} has no open slot for {team_id}")
            side = other
        self._set(match, side, team_id)

    def _forward_winner(self, match: Match):
        target = self.geometry.winner_target(match.round, match.slot)
        if target is not None:
            self._seat(target, match.winner)

    def _drop_loser(self, match: Match):
        target = self.geometry.loser_target(match.round, match.slot)
        if target is not None:
            self._seat(target, match.loser)

    def _resolve_grand_final(self, match: Match):
        # The losers bracket finalist took the first game: both teams now have one loss
        if match.slot == 0 and match.winner == match.team2:
            reset = self._get_or_create(RoundRef.grand_final(), 1)
            self._set(reset, 'team1', match.team1)
            self._set(reset, 'team2', match.team2)
            logger.info("Grand final reset: %s vs %s", match.team1, match.team2)

    def _sweep_byes(self):
        """Resolve matches whose open slot can never be filled, except the champion's."""
        changed = True
        while changed:
            changed = False
            pending = sorted(self.matches.values(), key=lambda m: (m.round.sort_key(), m.slot))
            for match in pending:
                if match.is_decided or match.round.is_grand_final or len(match.seated) != 1:
                    continue
                team = match.seated[0]
                empty_side = 'team2' if match.team1 is not None else 'team1'
                if not self.side_is_vacant(match, empty_side):
                    continue
                if team == self.champion_id:
                    logger.debug("Not auto-advancing reigning champion %s in %s", team, match.match_id)
                    continue
                self._set(match, 'is_bye', True)
                self._set(match, 'winner', team)
                logger.debug("Bye in %s advances %s", match.match_id, team)
                self._forward_winner(match)
                changed = True

    def _mutations(self) -> List[MatchMutation]:
        mutations = []
        for match_id, changes in self.changes.items():
            if match_id in self.created:
                record = self.by_id[match_id].to_dict()
                record.pop('id')
                mutations.append(MatchMutation(match_id, record, created=True))
            elif changes:
                mutations.append(MatchMutation(match_id, changes))
        return mutations


def apply_mutations(matches: List[Match], mutations: List[MatchMutation]) -> List[Match]:
    """Return a new match list with the mutations applied."""
    result = [match.copy() for match in matches]
    by_id = {match.match_id: match for match in result}
    for mutation in mutations:
        if mutation.created:
            record = dict(mutation.changes)
            record['id'] = mutation.match_id
            match = Match.from_dict(record)
            result.append(match)
            by_id[match.match_id] = match
            continue
        match = by_id.get(mutation.match_id)
        if match is None:
            raise NotFound(f"Unknown match: {mutation.match_id}")
        for field, value in mutation.changes.items():
            if field == 'round':
                match.round = RoundRef.from_wire(value)
            elif field == 'slot' or field in MATCH_FIELDS:
                setattr(match, field, value)
    return sorted(result, key=lambda m: (m.round.sort_key(), m.slot))


def find_champion(matches: List[Match]) -> Optional[object]:
    """Team id of the tournament winner, or None while the grand final is open."""
    finals = {m.slot: m for m in matches if m.round.is_grand_final}
    first = finals.get(0)
    if first is None or not first.is_decided:
        return None
    if first.is_bye or first.winner == first.team1:
        return first.winner
    reset = finals.get(1)
    if reset is not None and reset.is_decided:
        return reset.winner
    return None


def playable_matches(matches: List[Match], teams: List[Team]) -> List[Match]:
    """
    Undecided matches that can take a result now.

    Includes the reigning champion's matches against a permanently empty
    slot, which only an explicit result can settle.
    """
    if not any(m.round.is_winners for m in matches):
        return []
    progression = _Progression(matches, teams)
    playable = []
    for match in progression.matches.values():
        if match.is_decided:
            continue
        if match.team1 is not None and match.team2 is not None:
            playable.append(match)
        elif len(match.seated) == 1 and not match.round.is_grand_final:
            empty_side = 'team2' if match.team1 is not None else 'team1'
            if progression.side_is_vacant(match, empty_side):
                playable.append(match)
    return sorted(playable, key=lambda m: (m.round.sort_key(), m.slot))


def derive_team_states(teams: List[Team], matches: List[Match]) -> List[Team]:
    """Copies of the teams with losses and status computed from decided matches."""
    losses = Counter(m.loser for m in matches if m.loser is not None)
    champion = find_champion(matches)
    result = []
    for team in teams:
        updated = team.copy()
        updated.losses = losses.get(team.team_id, 0)
        if updated.losses >= 2:
            updated.status = STATUS_ELIMINATED
        elif team.team_id == champion:
            updated.status = STATUS_CHAMPION
        else:
            updated.status = STATUS_ACTIVE
        result.append(updated)
    return result


def bracket_status(teams: List[Team], matches: List[Match]) -> Dict:
    """
    Summarize tournament progress.

    Returns dict with:
    - 'teams': teams with derived losses/status
    - 'active_teams', 'eliminated_teams': partitions of 'teams'
    - 'champion': team id or None
    - 'is_complete': True once a champion is decided
    - 'pending_matches': matches waiting for a result
    """
    derived = derive_team_states(teams, matches)
    champion = find_champion(matches)
    pending = playable_matches(matches, teams)
    return {
        'teams': derived,
        'active_teams': [t for t in derived if t.status != STATUS_ELIMINATED],
        'eliminated_teams': [t for t in derived if t.status == STATUS_ELIMINATED],
        'champion': champion,
        'is_complete': champion is not None,
        'pending_matches': sorted(pending, key=lambda m: (m.round.sort_key(), m.slot)),
    }
