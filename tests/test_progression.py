"""
Tests for match progression: advancing results, byes, the grand final
reset and derived team state.
"""
import pytest

from tourney.double_elimination import build_bracket
from tourney.engines import BracketEngine
from tourney.errors import AmbiguousWinner, InvalidState, NotFound
from tourney.models import Match, MatchMutation, RoundRef
from tourney.progression import (
    advance,
    apply_mutations,
    bracket_status,
    derive_team_states,
    find_champion,
    playable_matches,
)


def with_winner(matches, match_id, winner):
    """Copy of matches with one winner set, as a caller would before advance()."""
    staged = [m.copy() for m in matches]
    for match in staged:
        if match.match_id == match_id:
            match.winner = winner
    return staged


def by_id(matches):
    return {m.match_id: m for m in matches}


def changes_by_id(mutations):
    return {mutation.match_id: mutation.changes for mutation in mutations}


def play_out(engine, pick_team1=True, max_matches=200):
    """Play every match to the end; team1 or team2 always wins."""
    for _ in range(max_matches):
        if engine.status()['champion'] is not None:
            return engine.status()
        match = engine.next_match()
        assert match is not None, "bracket stalled without a champion"
        if len(match.seated) == 1:
            winner = match.seated[0]
        else:
            winner = match.team1 if pick_team1 else match.team2
        engine.record_winner(match.match_id, winner)
    pytest.fail("bracket did not finish")


class TestAdvanceFirstRound:
    """Recording a round 1 result."""

    def test_winner_forwarded_loser_dropped(self, four_teams):
        matches = build_bracket(four_teams)
        mutations = advance(with_winner(matches, 'W1-M1', 't1'), 'W1-M1', four_teams)
        changes = changes_by_id(mutations)
        assert changes == {
            'W1-M1': {'loser': 't4'},
            'W2-M1': {'team1': 't1'},
            'L1-M1': {'team1': 't4'},
        }
        assert all(not m.created for m in mutations)

    def test_odd_slot_fills_second_side(self, four_teams):
        matches = build_bracket(four_teams)
        changes = changes_by_id(advance(with_winner(matches, 'W1-M2', 't3'), 'W1-M2', four_teams))
        assert changes['W2-M1'] == {'team2': 't3'}
        assert changes['L1-M1'] == {'team2': 't2'}

    def test_input_not_modified(self, four_teams):
        matches = with_winner(build_bracket(four_teams), 'W1-M1', 't1')
        before = [m.to_dict() for m in matches]
        advance(matches, 'W1-M1', four_teams)
        assert [m.to_dict() for m in matches] == before

    def test_creates_next_losers_match(self, make_teams):
        """Three teams: the lone round 1 loser takes a bye into a new L2 match."""
        teams = make_teams(3)
        matches = build_bracket(teams)
        mutations = advance(with_winner(matches, 'W1-M2', 't2'), 'W1-M2', teams)
        created = [m for m in mutations if m.created]
        assert [m.match_id for m in created] == ['L2-M1']
        assert created[0].changes['team1'] == 't3'
        assert created[0].changes['round'] == -2
        changes = changes_by_id(mutations)
        assert changes['L1-M1'] == {'team2': 't3', 'is_bye': True, 'winner': 't3'}


class TestAdvanceErrors:
    """Error cases for advance()."""

    def test_unknown_match(self, four_teams):
        with pytest.raises(NotFound):
            advance(build_bracket(four_teams), 'W9-M9', four_teams)

    def test_no_winner(self, four_teams):
        with pytest.raises(InvalidState):
            advance(build_bracket(four_teams), 'W1-M1', four_teams)

    def test_winner_not_in_match(self, four_teams):
        matches = with_winner(build_bracket(four_teams), 'W1-M1', 't3')
        with pytest.raises(AmbiguousWinner):
            advance(matches, 'W1-M1', four_teams)

    def test_already_advanced(self, four_teams):
        matches = with_winner(build_bracket(four_teams), 'W1-M1', 't1')
        matches = apply_mutations(matches, advance(matches, 'W1-M1', four_teams))
        with pytest.raises(InvalidState):
            advance(matches, 'W1-M1', four_teams)

    def test_bye_already_forwarded(self, make_teams):
        teams = make_teams(3)
        with pytest.raises(InvalidState):
            advance(build_bracket(teams), 'W1-M1', teams)

    def test_opponent_still_pending(self, four_teams):
        matches = with_winner(build_bracket(four_teams), 'W1-M1', 't1')
        matches = apply_mutations(matches, advance(matches, 'W1-M1', four_teams))
        matches = with_winner(matches, 'W2-M1', 't1')
        with pytest.raises(InvalidState):
            advance(matches, 'W2-M1', four_teams)


class TestApplyMutations:
    def test_unknown_match(self, four_teams):
        with pytest.raises(NotFound):
            apply_mutations(build_bracket(four_teams), [MatchMutation('L7-M1', {'team1': 't1'})])

    def test_does_not_modify_input(self, four_teams):
        matches = build_bracket(four_teams)
        result = apply_mutations(matches, [MatchMutation('W2-M1', {'team1': 't1'})])
        assert by_id(result)['W2-M1'].team1 == 't1'
        assert by_id(matches)['W2-M1'].team1 is None

    def test_created_match_added(self, four_teams):
        record = Match(RoundRef.losers(2), 0, team1='t4').to_dict()
        record.pop('id')
        result = apply_mutations(build_bracket(four_teams), [MatchMutation('L2-M1', record, created=True)])
        added = by_id(result)['L2-M1']
        assert added.round == RoundRef.losers(2)
        assert added.team1 == 't4'


class TestGrandFinal:
    """Grand final and reset handling on a two-team bracket."""

    def setup_engine(self, make_teams):
        engine = BracketEngine()
        engine.build(make_teams(2))
        engine.record_winner('W1-M1', 't1')
        return engine

    def test_losers_side_seated(self, make_teams):
        engine = self.setup_engine(make_teams)
        final = engine.get_match('GF')
        assert (final.team1, final.team2) == ('t1', 't2')

    def test_winners_side_takes_it(self, make_teams):
        engine = self.setup_engine(make_teams)
        engine.record_winner('GF', 't1')
        status = engine.status()
        assert status['champion'] == 't1'
        assert status['is_complete']
        assert 'GF-2' not in by_id(engine.matches)
        assert [t.team_id for t in status['eliminated_teams']] == ['t2']

    def test_reset_after_first_loss(self, make_teams):
        """The winners side finalist has to be beaten twice."""
        engine = self.setup_engine(make_teams)
        mutations = engine.record_winner('GF', 't2')
        assert any(m.match_id == 'GF-2' and m.created for m in mutations)
        status = engine.status()
        assert status['champion'] is None
        assert [m.match_id for m in status['pending_matches']] == ['GF-2']
        assert all(t.losses == 1 for t in status['teams'])

        engine.record_winner('GF-2', 't2')
        status = engine.status()
        assert status['champion'] == 't2'
        losses = {t.team_id: t.losses for t in status['teams']}
        assert losses == {'t1': 2, 't2': 1}

    def test_find_champion_open(self, four_teams):
        assert find_champion(build_bracket(four_teams)) is None


class TestChampionWalkover:
    """The reigning champion is never moved forward by an automatic bye."""

    def setup_engine(self, make_teams):
        teams = make_teams(5, champion_index=1)
        engine = BracketEngine(champion_gets_bye=True)
        engine.build(teams)
        engine.record_winner('W1-M3', 't4')
        engine.record_winner('W2-M1', 't3')
        engine.record_winner('W2-M2', 't4')
        return engine

    def test_champion_waits_alone(self, make_teams):
        engine = self.setup_engine(make_teams)
        stuck = engine.get_match('L2-M1')
        assert stuck.seated == ['t1']
        assert stuck.winner is None
        assert 'L2-M1' in [m.match_id for m in engine.status()['pending_matches']]

    def test_explicit_result_is_a_bye(self, make_teams):
        engine = self.setup_engine(make_teams)
        engine.record_winner('L2-M1', 't1')
        match = engine.get_match('L2-M1')
        assert match.is_bye
        assert match.loser is None
        assert engine.get_match('L3-M1').team1 == 't1'


class TestPlayableMatches:
    def test_initial(self, four_teams):
        matches = build_bracket(four_teams)
        assert [m.match_id for m in playable_matches(matches, four_teams)] == ['W1-M1', 'W1-M2']

    def test_byes_not_playable(self, make_teams):
        teams = make_teams(5)
        matches = build_bracket(teams)
        assert [m.match_id for m in playable_matches(matches, teams)] == ['W1-M2']


class TestDerivedState:
    def test_losses_from_matches(self, four_teams):
        engine = BracketEngine()
        engine.build(four_teams)
        engine.record_winner('W1-M1', 't1')
        engine.record_winner('W1-M2', 't2')
        engine.record_winner('L1-M1', 't3')
        derived = {t.team_id: t for t in derive_team_states(four_teams, engine.matches)}
        assert derived['t4'].losses == 2
        assert derived['t4'].status == 'eliminated'
        assert derived['t3'].losses == 1
        assert derived['t3'].status == 'active'
        assert derived['t1'].losses == 0
        # Input teams untouched
        assert all(t.losses == 0 for t in four_teams)

    def test_status_summary(self, four_teams):
        status = bracket_status(four_teams, build_bracket(four_teams))
        assert status['champion'] is None
        assert not status['is_complete']
        assert len(status['active_teams']) == 4
        assert status['eliminated_teams'] == []


@pytest.mark.slow
class TestFullSimulation:
    """Play whole brackets and check every team ends with the right record."""

    @pytest.mark.parametrize('pick_team1', [True, False])
    @pytest.mark.parametrize('num_teams', range(2, 18))
    def test_plays_to_champion(self, make_teams, num_teams, pick_team1):
        engine = BracketEngine()
        engine.build(make_teams(num_teams))
        status = play_out(engine, pick_team1)

        champion = status['champion']
        losses = {t.team_id: t.losses for t in status['teams']}
        assert losses[champion] <= 1
        assert all(count == 2 for team_id, count in losses.items() if team_id != champion)
        assert status['pending_matches'] == []
        assert len(status['eliminated_teams']) == num_teams - 1

    @pytest.mark.parametrize('pick_team1', [True, False])
    @pytest.mark.parametrize('num_teams', [3, 5, 6, 7, 9, 11])
    def test_champion_bye(self, make_teams, num_teams, pick_team1):
        engine = BracketEngine(champion_gets_bye=True)
        engine.build(make_teams(num_teams, champion_index=num_teams))
        status = play_out(engine, pick_team1)

        champion = status['champion']
        losses = {t.team_id: t.losses for t in status['teams']}
        assert all(count == 2 for team_id, count in losses.items() if team_id != champion)
