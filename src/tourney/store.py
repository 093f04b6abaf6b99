"""
File-backed tournament state.

The engine never writes storage; this is the calling layer's side. Every
save names the version it was loaded at, so two organizers recording
results from the same snapshot cannot both win.
"""
import logging
import os
import random

import yaml
from filelock import FileLock

from .engines import MODE_BRACKET, MODE_LOSS_TRACKING, BracketEngine, LossTrackingEngine
from .errors import InvalidInput, StaleStateError
from .models import Match, Team
from .progression import derive_team_states

logger = logging.getLogger(__name__)


class TournamentStore:
    def __init__(self, file_path, lock_timeout=10):
        self.file_path = file_path
        self.lock = FileLock(file_path + '.lock', timeout=lock_timeout)

    def _read(self):
        if not os.path.exists(self.file_path):
            return {'version': 0}
        with open(self.file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data:
            return {'version': 0}
        data.setdefault('version', 0)
        return data

    def load(self):
        """Load the stored state; version 0 means nothing saved yet."""
        with self.lock:
            return self._read()

    def save(self, state, expected_version):
        """Write state if the file is still at expected_version; returns the new version."""
        with self.lock:
            current = self._read()['version']
            if current != expected_version:
                raise StaleStateError(
                    f"{self.file_path} is at version {current}, expected {expected_version}")
            data = dict(state)
            data['version'] = current + 1
            with open(self.file_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        logger.debug("Saved %s at version %d", self.file_path, data['version'])
        return data['version']


def state_from_engine(engine, settings=None):
    """Plain-data snapshot of an engine for storage."""
    teams = engine.teams
    if isinstance(engine, BracketEngine):
        # Losses and status follow from the decided matches
        teams = derive_team_states(engine.teams, engine.matches)
    state = {
        'mode': engine.mode,
        'settings': dict(settings) if settings else {'champion_gets_bye': engine.champion_gets_bye},
        'teams': [team.to_dict() for team in teams],
    }
    if isinstance(engine, BracketEngine):
        state['matches'] = [match.to_dict() for match in engine.matches]
    else:
        state['counters'] = {
            'match': engine.context.match_counter,
            'team': engine.context.team_counter,
        }
    return state


def engine_from_state(state):
    """Rebuild an engine from a stored snapshot."""
    mode = state.get('mode')
    settings = state.get('settings') or {}
    champion_gets_bye = bool(settings.get('champion_gets_bye', False))
    teams = [Team.from_dict(entry) for entry in state.get('teams', [])]

    if mode == MODE_BRACKET:
        matches = [Match.from_dict(entry) for entry in state.get('matches', [])]
        return BracketEngine(champion_gets_bye=champion_gets_bye, teams=teams, matches=matches)
    if mode == MODE_LOSS_TRACKING:
        seed = settings.get('random_seed')
        rng = random.Random(seed) if seed is not None else None
        engine = LossTrackingEngine(champion_gets_bye=champion_gets_bye, rng=rng)
        engine.context.teams = teams
        counters = state.get('counters') or {}
        engine.context.match_counter = counters.get('match', 0)
        engine.context.team_counter = counters.get('team', len(teams))
        return engine
    raise InvalidInput(f"Stored state has unknown mode: {mode!r}")
