"""
Shared pytest fixtures for the tournament engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the full-bracket simulations
"""
import os
import sys

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tourney.models import Team


def build_teams(count, champion_index=None):
    """Teams t1..tN in seed order, players named after the team."""
    teams = []
    for i in range(1, count + 1):
        teams.append(Team(f"t{i}", (f"p{i}a", f"p{i}b"),
                          is_reigning_champion=(champion_index == i)))
    return teams


@pytest.fixture
def make_teams():
    """Factory fixture: make_teams(5) or make_teams(6, champion_index=3)."""
    return build_teams


@pytest.fixture
def four_teams():
    return build_teams(4)


@pytest.fixture
def players():
    """Eight players for loss-tracking tournaments."""
    return ['Alice', 'Bob', 'Carol', 'Dave', 'Erin', 'Frank', 'Grace', 'Heidi']


@pytest.fixture
def teams_file(tmp_path):
    """Bracket entries file with four teams, the first one reigning champion."""
    path = tmp_path / 'teams.yaml'
    path.write_text(
        "teams:\n"
        "  - id: t1\n"
        "    players: [Alice, Bob]\n"
        "    champion: true\n"
        "  - id: t2\n"
        "    players: [Carol, Dave]\n"
        "  - id: t3\n"
        "    players: [Erin, Frank]\n"
        "    name: The Franks\n"
        "  - id: t4\n"
        "    players: [Grace, Heidi]\n"
    )
    return str(path)
