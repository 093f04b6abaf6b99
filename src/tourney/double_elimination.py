"""
Double elimination bracket generation.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
- Bracket Reset: If losers bracket winner wins Grand Final, a second game decides the champion
"""
import logging
from typing import Dict, List, Optional

from .elimination import (
    BracketGeometry,
    calculate_byes,
    calculate_bracket_size,
    generate_bracket_order,
    get_losers_round_name,
    get_winners_round_name,
)
from .errors import InvalidInput
from .models import Match, RoundRef, Team

logger = logging.getLogger(__name__)


def validate_teams(teams: List[Team]) -> Optional[Team]:
    """Check the team set and return the reigning champion, if any."""
    if len(teams) < 2:
        raise InvalidInput(f"A bracket needs at least 2 teams, got {len(teams)}")

    seen = set()
    for team in teams:
        if team.team_id in seen:
            raise InvalidInput(f"Duplicate team id: {team.team_id}")
        seen.add(team.team_id)

    champions = [team for team in teams if team.is_reigning_champion]
    if len(champions) > 1:
        names = ', '.join(str(team.team_id) for team in champions)
        raise InvalidInput(f"Only one reigning champion allowed, got: {names}")
    return champions[0] if champions else None


def build_bracket(teams: List[Team], champion_gets_bye: bool = False) -> List[Match]:
    """
    Build the initial match set for a double elimination bracket.

    Args:
        teams: Teams in seed order
        champion_gets_bye: Exempt the reigning champion from round 1

    Returns list of matches with:
    - every winners bracket round scaffolded, round 1 seeded
    - round 1 byes already decided and fed into round 2
    - the first losers round and the grand final as empty matches
    """
    champion = validate_teams(teams)

    bracket_size = calculate_bracket_size(len(teams))
    byes = calculate_byes(len(teams))
    geometry = BracketGeometry(bracket_size)

    champion_bye = False
    if champion_gets_bye and champion is not None:
        if byes > 0:
            champion_bye = True
        else:
            logger.warning(
                "No bye available for champion %s in a full bracket of %d; champion plays round 1",
                champion.team_id, bracket_size)

    if champion_bye:
        seeded = [champion] + [team for team in teams if team.team_id != champion.team_id]
    else:
        seeded = list(teams)
    seed_to_team = {seed: team for seed, team in enumerate(seeded, start=1)}

    bracket_order = generate_bracket_order(bracket_size)
    pairs = [(bracket_order[i], bracket_order[i + 1]) for i in range(0, len(bracket_order), 2)]
    if champion_bye:
        # Champion's bye becomes the last round 1 match
        pairs.reverse()

    matches: Dict[tuple, Match] = {}

    first_round = RoundRef.winners(1)
    for slot, (seed1, seed2) in enumerate(pairs):
        team1 = seed_to_team.get(seed1)
        team2 = seed_to_team.get(seed2)
        if team2 is None:
            match = Match(first_round, slot, team1=team1.team_id,
                          winner=team1.team_id, is_bye=True)
        else:
            match = Match(first_round, slot, team1=team1.team_id, team2=team2.team_id)
        matches[match.key] = match

    for number in range(2, geometry.winners_rounds + 1):
        round_ref = RoundRef.winners(number)
        for slot in range(geometry.matches_in_round(round_ref)):
            match = Match(round_ref, slot)
            matches[match.key] = match

    grand_final = Match(RoundRef.grand_final(), 0)
    matches[grand_final.key] = grand_final

    # Feed round 1 byes forward
    for slot in range(len(pairs)):
        match = matches[(first_round, slot)]
        if not match.is_bye:
            continue
        target_round, target_slot, side = geometry.winner_target(first_round, slot)
        setattr(matches[(target_round, target_slot)], side, match.winner)

    # Losers round 1 fed only by byes stays empty and is never played
    losers_first = RoundRef.losers(1)
    for slot in range(len(pairs) // 2):
        match = Match(losers_first, slot)
        matches[match.key] = match

    logger.info("Built bracket of size %d for %d teams (%d byes, champion bye: %s)",
                bracket_size, len(teams), byes, champion_bye)

    return sort_matches(matches.values())


def sort_matches(matches) -> List[Match]:
    return sorted(matches, key=lambda m: (m.round.sort_key(), m.slot))


def organize_bracket(matches: List[Match]) -> Dict:
    """
    Group matches for display.

    Returns dict with:
    - 'winners_bracket': round name -> matches, first round first
    - 'losers_bracket': round name -> matches, first round first
    - 'finals': grand final games in order
    - 'bracket_size', 'total_winners_rounds', 'total_losers_rounds'
    """
    winners = sorted((m for m in matches if m.round.is_winners), key=lambda m: (m.round.number, m.slot))
    losers = sorted((m for m in matches if m.round.is_losers), key=lambda m: (m.round.number, m.slot))
    finals = sorted((m for m in matches if m.round.is_grand_final), key=lambda m: m.slot)

    total_winners_rounds = max((m.round.number for m in winners), default=0)
    bracket_size = 2 ** total_winners_rounds if total_winners_rounds else 0
    geometry = BracketGeometry(bracket_size) if bracket_size else None
    total_losers_rounds = geometry.losers_rounds if geometry else 0

    winners_bracket = {}
    for match in winners:
        teams_in_round = bracket_size // (2 ** (match.round.number - 1))
        winners_bracket.setdefault(get_winners_round_name(teams_in_round), []).append(match)

    losers_bracket = {}
    for match in losers:
        name = get_losers_round_name(match.round.number, total_losers_rounds)
        losers_bracket.setdefault(name, []).append(match)

    return {
        'winners_bracket': winners_bracket,
        'losers_bracket': losers_bracket,
        'finals': finals,
        'bracket_size': bracket_size,
        'total_winners_rounds': total_winners_rounds,
        'total_losers_rounds': total_losers_rounds,
    }
