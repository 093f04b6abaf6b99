# Entry point for running a double elimination tournament from the terminal

import argparse
import logging
import os
import sys

from tourney.config import load_players, load_settings, load_teams, save_settings
from tourney.double_elimination import organize_bracket
from tourney.engines import MODE_BRACKET, create_engine
from tourney.errors import TournamentError
from tourney.store import TournamentStore, engine_from_state, state_from_engine

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_STATE_FILE = os.path.join(BASE_DIR, 'data', 'tournament.yaml')
DEFAULT_SETTINGS_FILE = os.path.join(BASE_DIR, 'data', 'settings.yaml')


def _team_label(teams_by_id, team_id):
    if team_id is None:
        return 'TBD'
    team = teams_by_id.get(team_id)
    return team.name if team else str(team_id)


def print_bracket(engine):
    teams_by_id = {team.team_id: team for team in engine.teams}
    bracket = organize_bracket(engine.matches)

    def print_match(match):
        team1 = _team_label(teams_by_id, match.team1)
        team2 = 'BYE' if match.is_bye and match.team2 is None else _team_label(teams_by_id, match.team2)
        line = f"  [{match.match_id}] {team1} vs {team2}"
        if match.winner is not None:
            line += f"  -> {_team_label(teams_by_id, match.winner)}"
        print(line)

    for section in ('winners_bracket', 'losers_bracket'):
        for round_name, matches in bracket[section].items():
            print(f"\n# {round_name}")
            for match in matches:
                print_match(match)
    if bracket['finals']:
        print("\n# Grand Final")
        for match in bracket['finals']:
            print_match(match)


def print_status(engine):
    status = engine.status()
    teams_by_id = {team.team_id: team for team in engine.teams}
    print("\n--- Standings ---")
    for team in status.get('teams', engine.teams):
        print(f"  {team.team_id}: {team.name} - losses {team.losses} ({team.status})")
    if status['champion'] is not None:
        print(f"\nChampion: {_team_label(teams_by_id, status['champion'])}")
        return
    upcoming = engine.next_match()
    if upcoming is None:
        print("\nNo match ready to play.")
    elif engine.mode == MODE_BRACKET:
        print(f"\nNext match: [{upcoming.match_id}] {_team_label(teams_by_id, upcoming.team1)} "
              f"vs {_team_label(teams_by_id, upcoming.team2)}")
    else:
        print(f"\nNext match: {upcoming.team1.team_id} ({upcoming.team1.name}) vs "
              f"{upcoming.team2.team_id} ({upcoming.team2.name})")


def cmd_init(args):
    settings = load_settings(args.settings)
    if not os.path.exists(args.settings):
        save_settings(args.settings, settings)
        print(f"Wrote default settings to {args.settings}")
    engine = create_engine(settings['mode'], settings['champion_gets_bye'], settings['random_seed'])
    if engine.mode == MODE_BRACKET:
        engine.build(load_teams(args.entries))
    else:
        players, champion = load_players(args.entries)
        engine.build(players, champion)

    store = TournamentStore(args.state)
    current = store.load()['version']
    if current and not args.force:
        print(f"Error: {args.state} already holds a tournament. Use --force to replace it.", file=sys.stderr)
        return 1
    store.save(state_from_engine(engine, settings), current)
    print(f"Created {engine.mode} tournament with {len(engine.teams)} teams in {args.state}")
    return 0


def cmd_record(args):
    store = TournamentStore(args.state)
    state = store.load()
    if not state['version']:
        print(f"Error: no tournament found in {args.state}. Run init first.", file=sys.stderr)
        return 1
    engine = engine_from_state(state)
    if engine.mode == MODE_BRACKET:
        mutations = engine.record_winner(args.first, args.second)
        print(f"Recorded {args.second} as winner of {args.first} ({len(mutations)} updates)")
    else:
        engine.record_winner(args.first, args.second)
        print(f"Recorded {args.first} beating {args.second}")
    store.save(state_from_engine(engine, state.get('settings')), state['version'])
    print_status(engine)
    return 0


def cmd_show(args):
    store = TournamentStore(args.state)
    state = store.load()
    if not state['version']:
        print(f"Error: no tournament found in {args.state}. Run init first.", file=sys.stderr)
        return 1
    engine = engine_from_state(state)
    if engine.mode == MODE_BRACKET:
        print_bracket(engine)
    print_status(engine)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description='Run a double elimination tournament.')
    parser.add_argument('--state', default=DEFAULT_STATE_FILE, help='Tournament state file (YAML)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    init_parser = subparsers.add_parser('init', help='Create a tournament from an entries file')
    init_parser.add_argument('entries', help='Teams file (bracket mode) or players file (loss_tracking mode)')
    init_parser.add_argument('--settings', default=DEFAULT_SETTINGS_FILE, help='Settings file (YAML)')
    init_parser.add_argument('--force', action='store_true', help='Replace an existing tournament')
    init_parser.set_defaults(func=cmd_init)

    record_parser = subparsers.add_parser(
        'record', help='Record a result: MATCH_ID WINNER in bracket mode, WINNER LOSER in loss_tracking mode')
    record_parser.add_argument('first')
    record_parser.add_argument('second')
    record_parser.set_defaults(func=cmd_record)

    show_parser = subparsers.add_parser('show', help='Print the bracket and standings')
    show_parser.set_defaults(func=cmd_show)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    state_dir = os.path.dirname(os.path.abspath(args.state))
    os.makedirs(state_dir, exist_ok=True)
    try:
        return args.func(args)
    except TournamentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
