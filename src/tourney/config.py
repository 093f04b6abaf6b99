"""
YAML settings and entry files for a tournament.
"""
import logging
import os

import yaml

from .errors import InvalidInput
from .models import Team

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    'mode': 'bracket',
    'champion_gets_bye': False,
    'random_seed': None,
}

VALID_MODES = ('bracket', 'loss_tracking')


def load_settings(file_path=None):
    """Load tournament settings, filling in defaults for anything missing."""
    settings = dict(DEFAULT_SETTINGS)
    if not file_path or not os.path.exists(file_path):
        return settings
    with open(file_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return settings
    if not isinstance(data, dict):
        raise InvalidInput(f"{file_path}: expected a mapping of settings")
    # Settings may sit under a tournament_settings section
    section = data.get('tournament_settings', data)
    for key in DEFAULT_SETTINGS:
        if key in section:
            settings[key] = section[key]
    settings['champion_gets_bye'] = bool(settings['champion_gets_bye'])
    if settings['mode'] not in VALID_MODES:
        raise InvalidInput(f"Unknown tournament mode: {settings['mode']!r}")
    return settings


def save_settings(file_path, settings):
    """Save settings to YAML file."""
    with open(file_path, 'w', encoding='utf-8') as f:
        yaml.dump({'tournament_settings': dict(settings)}, f, default_flow_style=False)


def load_teams(file_path):
    """
    Load bracket entries.

    Expected format:
        teams:
          - id: t1
            players: [Alice, Bob]
            champion: true
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    entries = data.get('teams', []) if isinstance(data, dict) else data
    teams = []
    for index, entry in enumerate(entries or [], start=1):
        if not isinstance(entry, dict):
            raise InvalidInput(f"{file_path}: team #{index} must be a mapping with players")
        if 'players' not in entry:
            raise InvalidInput(f"{file_path}: team #{index} has no players")
        team_id = str(entry.get('id', f"team_{index}"))
        teams.append(Team(team_id, entry['players'],
                          is_reigning_champion=entry.get('champion', False),
                          name=entry.get('name')))
    logger.debug("Loaded %d teams from %s", len(teams), file_path)
    return teams


def load_players(file_path):
    """
    Load a player pool for loss-tracking mode.

    Returns (players, champion_pair) where champion_pair may be None.
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, list):
        return data, None
    players = data.get('players', [])
    champion = data.get('champion')
    if champion is not None and len(champion) != 2:
        raise InvalidInput(f"{file_path}: champion must list exactly two players")
    return players, tuple(champion) if champion else None
