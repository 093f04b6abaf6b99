"""
Bracket arithmetic shared by the builder and the progression engine.

Feeds are addressed as (kind, round_ref, slot) tuples where kind is
'winner' or 'loser' of the referenced match.
"""
import math
from typing import Dict, List, Optional, Tuple

from .models import RoundRef

WINNER = 'winner'
LOSER = 'loser'


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    bracket_size = calculate_bracket_size(num_teams)
    return bracket_size - num_teams


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N teams in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    winners_rounds = int(math.log2(bracket_size))
    return 2 * (winners_rounds - 1)


def generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    """
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = generate_bracket_order(half_size)

    # Lower half as complement
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])

    return result


def feed_side(slot: int) -> str:
    """Even slots feed the top (team1) side, odd slots the bottom (team2) side."""
    return 'team1' if slot % 2 == 0 else 'team2'


def get_winners_round_name(teams_in_round: int) -> str:
    """Get the name for a winners bracket round."""
    if teams_in_round == 2:
        return "Winners Final"
    elif teams_in_round == 4:
        return "Winners Semifinal"
    elif teams_in_round == 8:
        return "Winners Quarterfinal"
    else:
        return f"Winners Round of {teams_in_round}"


def get_losers_round_name(round_num: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    rounds_from_end = total_losers_rounds - round_num
    if rounds_from_end == 0:
        return "Losers Final"
    elif rounds_from_end == 1:
        return "Losers Semifinal"
    else:
        return f"Losers Round {round_num}"


class BracketGeometry:
    """
    Static shape of a double elimination bracket of a given size.

    Losers round 1 pairs the winners round 1 losers. Every even losers
    round takes the survivors of the previous losers round in team1 and
    the losers of one winners round in team2. Odd losers rounds after the
    first halve the field by pairing survivors.
    """

    def __init__(self, bracket_size: int):
        self.bracket_size = bracket_size
        self.winners_rounds = int(math.log2(bracket_size)) if bracket_size >= 2 else 0
        self.losers_rounds = calculate_losers_bracket_rounds(bracket_size)

    @classmethod
    def from_winners_rounds(cls, winners_rounds: int) -> 'BracketGeometry':
        return cls(2 ** winners_rounds)

    def matches_in_round(self, round_ref: RoundRef) -> int:
        if round_ref.is_winners:
            return self.bracket_size // (2 ** round_ref.number)
        if round_ref.is_losers:
            # L1 and L2 both hold N/4 matches, L3 and L4 N/8, and so on
            return self.bracket_size // (2 ** ((round_ref.number + 1) // 2 + 1))
        return 1

    def drop_round(self, winners_round: int) -> RoundRef:
        """Losers round receiving the losers of the given winners round."""
        if winners_round == 1:
            return RoundRef.losers(1) if self.losers_rounds else RoundRef.grand_final()
        return RoundRef.losers(2 * winners_round - 2)

    def winner_target(self, round_ref: RoundRef, slot: int) -> Optional[Tuple[RoundRef, int, str]]:
        """Where the winner of (round_ref, slot) is seated next."""
        if round_ref.is_winners:
            if round_ref.number < self.winners_rounds:
                return (RoundRef.winners(round_ref.number + 1), slot // 2, feed_side(slot))
            return (RoundRef.grand_final(), 0, 'team1')
        if round_ref.is_losers:
            number = round_ref.number
            if number >= self.losers_rounds:
                return (RoundRef.grand_final(), 0, 'team2')
            if number % 2 == 1:
                return (RoundRef.losers(number + 1), slot, 'team1')
            return (RoundRef.losers(number + 1), slot // 2, feed_side(slot))
        return None

    def loser_target(self, round_ref: RoundRef, slot: int) -> Optional[Tuple[RoundRef, int, str]]:
        """Where the loser of a winners bracket match drops to."""
        if not round_ref.is_winners:
            return None
        target = self.drop_round(round_ref.number)
        if target.is_grand_final:
            return (target, 0, 'team2')
        if round_ref.number == 1:
            return (target, slot // 2, feed_side(slot))
        # Crossed over so a dropped team does not meet the opponents it just left behind
        count = self.matches_in_round(round_ref)
        return (target, count - 1 - slot, 'team2')

    def feeders(self, round_ref: RoundRef, slot: int) -> List[Tuple[str, RoundRef, int]]:
        """Feeds for (team1, team2) of a match; empty for winners round 1."""
        if round_ref.is_winners:
            if round_ref.number == 1:
                return []
            previous = RoundRef.winners(round_ref.number - 1)
            return [(WINNER, previous, 2 * slot), (WINNER, previous, 2 * slot + 1)]
        if round_ref.is_losers:
            number = round_ref.number
            if number == 1:
                first = RoundRef.winners(1)
                return [(LOSER, first, 2 * slot), (LOSER, first, 2 * slot + 1)]
            previous = RoundRef.losers(number - 1)
            if number % 2 == 0:
                dropping = RoundRef.winners(number // 2 + 1)
                count = self.matches_in_round(dropping)
                return [(WINNER, previous, slot), (LOSER, dropping, count - 1 - slot)]
            return [(WINNER, previous, 2 * slot), (WINNER, previous, 2 * slot + 1)]
        if slot != 0:
            return []
        final = RoundRef.winners(self.winners_rounds)
        if self.losers_rounds:
            return [(WINNER, final, 0), (WINNER, RoundRef.losers(self.losers_rounds), 0)]
        return [(WINNER, final, 0), (LOSER, final, 0)]

    def vacancy_map(self, first_round_seats: Dict[int, int]) -> 'VacancyMap':
        return VacancyMap(self, first_round_seats)


class VacancyMap:
    """
    Answers whether a feed can never deliver a team.

    Only winners round 1 byes create vacancies: a bye has no loser, and a
    match whose two feeds are both vacant never has a winner.
    """

    def __init__(self, geometry: BracketGeometry, first_round_seats: Dict[int, int]):
        self.geometry = geometry
        self.first_round_seats = first_round_seats
        self._cache = {}

    def feed_is_vacant(self, feed: Tuple[str, RoundRef, int]) -> bool:
        if feed not in self._cache:
            self._cache[feed] = self._compute(feed)
        return self._cache[feed]

    def _compute(self, feed) -> bool:
        kind, round_ref, slot = feed
        if round_ref.is_winners and round_ref.number == 1:
            seats = self.first_round_seats.get(slot, 0)
            return seats == 0 if kind == WINNER else seats < 2
        feeders = self.geometry.feeders(round_ref, slot)
        if not feeders:
            return True
        vacant = [self.feed_is_vacant(f) for f in feeders]
        if kind == WINNER:
            return all(vacant)
        return any(vacant)

    def side_is_vacant(self, round_ref: RoundRef, slot: int, side: str) -> bool:
        feeders = self.geometry.feeders(round_ref, slot)
        if not feeders:
            return False
        index = 0 if side == 'team1' else 1
        return self.feed_is_vacant(feeders[index])
