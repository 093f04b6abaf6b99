import enum
from collections import namedtuple

from .errors import InvalidInput

STATUS_ACTIVE = 'active'
STATUS_ELIMINATED = 'eliminated'
STATUS_CHAMPION = 'champion'

MATCH_FIELDS = ('team1', 'team2', 'winner', 'loser', 'is_bye')


class BracketSide(enum.Enum):
    """Which ladder a round belongs to."""
    WINNERS = 'winners'
    LOSERS = 'losers'
    GRAND_FINAL = 'grand_final'


class RoundRef(namedtuple('RoundRef', ['side', 'number'])):
    """
    Explicit round address.

    Storage uses a signed integer instead: positive numbers are winners
    rounds, negative numbers losers rounds and 0 the grand final. Convert
    with from_wire/to_wire at the storage boundary only.
    """
    __slots__ = ()

    @classmethod
    def winners(cls, number: int) -> 'RoundRef':
        return cls(BracketSide.WINNERS, number)

    @classmethod
    def losers(cls, number: int) -> 'RoundRef':
        return cls(BracketSide.LOSERS, number)

    @classmethod
    def grand_final(cls) -> 'RoundRef':
        return cls(BracketSide.GRAND_FINAL, 0)

    @classmethod
    def from_wire(cls, value: int) -> 'RoundRef':
        value = int(value)
        if value > 0:
            return cls.winners(value)
        if value < 0:
            return cls.losers(-value)
        return cls.grand_final()

    def to_wire(self) -> int:
        if self.side is BracketSide.WINNERS:
            return self.number
        if self.side is BracketSide.LOSERS:
            return -self.number
        return 0

    @property
    def is_winners(self) -> bool:
        return self.side is BracketSide.WINNERS

    @property
    def is_losers(self) -> bool:
        return self.side is BracketSide.LOSERS

    @property
    def is_grand_final(self) -> bool:
        return self.side is BracketSide.GRAND_FINAL

    def sort_key(self):
        """Winners rounds first, then losers rounds, grand final last."""
        order = {BracketSide.WINNERS: 0, BracketSide.LOSERS: 1, BracketSide.GRAND_FINAL: 2}
        return (order[self.side], self.number)

    def __repr__(self):
        if self.is_grand_final:
            return "RoundRef(GF)"
        return f"RoundRef({self.side.name}, {self.number})"


def match_code(round_ref: RoundRef, slot: int) -> str:
    """Match identifier in the W1-M1 / L2-M3 / GF / GF-2 format."""
    if round_ref.is_grand_final:
        return 'GF' if slot == 0 else f'GF-{slot + 1}'
    prefix = 'W' if round_ref.is_winners else 'L'
    return f"{prefix}{round_ref.number}-M{slot + 1}"


class Team:
    def __init__(self, team_id, players, is_reigning_champion=False, name=None,
                 losses=0, status=STATUS_ACTIVE, had_bye=False, match_history=None):
        players = tuple(players)
        if len(players) != 2:
            raise InvalidInput(f"Team {team_id} needs exactly two players, got {len(players)}")
        if players[0] == players[1]:
            raise InvalidInput(f"Team {team_id} lists player {players[0]} twice")
        self.team_id = team_id
        self.players = players
        self.is_reigning_champion = bool(is_reigning_champion)
        self.name = name if name else f"{players[0]} & {players[1]}"
        self.losses = losses
        self.status = status
        self.had_bye = had_bye
        self.match_history = list(match_history) if match_history else []

    @property
    def matches_played(self) -> int:
        return len(self.match_history)

    @property
    def is_active(self) -> bool:
        return self.status != STATUS_ELIMINATED and self.losses < 2

    def copy(self) -> 'Team':
        return Team(self.team_id, self.players, self.is_reigning_champion, self.name,
                    self.losses, self.status, self.had_bye,
                    [dict(entry) for entry in self.match_history])

    def to_dict(self) -> dict:
        return {
            'id': self.team_id,
            'name': self.name,
            'players': list(self.players),
            'is_reigning_champion': self.is_reigning_champion,
            'losses': self.losses,
            'status': self.status,
            'had_bye': self.had_bye,
            'match_history': [dict(entry) for entry in self.match_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Team':
        return cls(
            data['id'],
            data['players'],
            is_reigning_champion=data.get('is_reigning_champion', False),
            name=data.get('name'),
            losses=data.get('losses', 0),
            status=data.get('status', STATUS_ACTIVE),
            had_bye=data.get('had_bye', False),
            match_history=data.get('match_history'),
        )

    def __repr__(self):
        return (f"Team(id={self.team_id}, players={self.players}, losses={self.losses}, "
                f"status={self.status}, champion={self.is_reigning_champion})")


class Match:
    def __init__(self, round_ref: RoundRef, slot: int, team1=None, team2=None,
                 winner=None, loser=None, is_bye=False, match_id=None):
        self.round = round_ref
        self.slot = slot
        self.team1 = team1
        self.team2 = team2
        self.winner = winner
        self.loser = loser
        self.is_bye = is_bye
        self.match_id = match_id if match_id is not None else match_code(round_ref, slot)

    @property
    def key(self):
        return (self.round, self.slot)

    @property
    def teams(self):
        return (self.team1, self.team2)

    @property
    def seated(self):
        """Team ids currently occupying a slot."""
        return [team for team in self.teams if team is not None]

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    def copy(self) -> 'Match':
        return Match(self.round, self.slot, self.team1, self.team2,
                     self.winner, self.loser, self.is_bye, self.match_id)

    def to_dict(self) -> dict:
        return {
            'id': self.match_id,
            'round': self.round.to_wire(),
            'slot': self.slot,
            'team1': self.team1,
            'team2': self.team2,
            'winner': self.winner,
            'loser': self.loser,
            'is_bye': self.is_bye,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Match':
        return cls(
            RoundRef.from_wire(data['round']),
            data['slot'],
            team1=data.get('team1'),
            team2=data.get('team2'),
            winner=data.get('winner'),
            loser=data.get('loser'),
            is_bye=bool(data.get('is_bye', False)),
            match_id=data.get('id'),
        )

    def __repr__(self):
        return (f"Match(id={self.match_id}, teams=({self.team1}, {self.team2}), "
                f"winner={self.winner}, loser={self.loser}, is_bye={self.is_bye})")


class MatchMutation:
    """Partial update to one match, or a full record when created is True."""

    def __init__(self, match_id, changes=None, created=False):
        self.match_id = match_id
        self.changes = dict(changes) if changes else {}
        self.created = created

    def to_dict(self) -> dict:
        return {'id': self.match_id, 'created': self.created, 'changes': dict(self.changes)}

    def __repr__(self):
        return f"MatchMutation(id={self.match_id}, created={self.created}, changes={self.changes})"
