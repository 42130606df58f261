"""
Data models shared by the bracket generators and the scoring layer.
"""
from enum import Enum
from typing import Optional


class BracketType(str, Enum):
    WINNERS = 'winners'
    LOSERS = 'losers'
    GRAND_FINAL = 'grand-final'


class Placement(str, Enum):
    """Terminal destination of a match winner or loser."""
    FIRST_PLACE = 'first-place'
    SECOND_PLACE = 'second-place'
    THIRD_PLACE = 'third-place'
    FOURTH_PLACE = 'fourth-place'
    ELIMINATED = 'eliminated'


class MatchSlot:
    """Routing target: slot 1 or 2 of another match in the same generation."""

    def __init__(self, match_id, slot):
        if slot not in (1, 2):
            raise ValueError(f"slot must be 1 or 2, got {slot!r}")
        self.match_id = match_id
        self.slot = slot

    def __eq__(self, other):
        if not isinstance(other, MatchSlot):
            return NotImplemented
        return self.match_id == other.match_id and self.slot == other.slot

    def __hash__(self):
        return hash((self.match_id, self.slot))

    def __repr__(self):
        return f"MatchSlot(match_id={self.match_id}, slot={self.slot})"

    def to_dict(self):
        return {'match_id': self.match_id, 'slot': self.slot}


def _route_to_data(route):
    if route is None:
        return None
    if isinstance(route, Placement):
        return route.value
    return route.to_dict()


class ParticipantSeed:
    def __init__(self, registration_id, seed):
        self.registration_id = registration_id
        self.seed = seed

    def __repr__(self):
        return f"ParticipantSeed(registration_id={self.registration_id}, seed={self.seed})"


class GeneratedMatch:
    """
    One node of a generated bracket.

    ``winner_to`` and ``loser_to`` are either a MatchSlot pointing at another
    match of the same generation, a Placement, or None when the destination
    is not modeled.
    """

    def __init__(self, id, round, match_number, bracket_position,
                 registration1_id=None, registration2_id=None,
                 bracket_type: Optional[BracketType] = None,
                 is_third_place=False):
        self.id = id
        self.round = round
        self.match_number = match_number
        self.bracket_position = bracket_position
        self.bracket_type = bracket_type
        self.registration1_id = registration1_id
        self.registration2_id = registration2_id
        self.winner_to = None
        self.loser_to = None
        self.winner_id = None
        self.played = False
        self.is_bye = False
        self.is_third_place = is_third_place
        # registrations whose standings already include this result
        self.standings_applied = []

    @property
    def occupants(self):
        return [r for r in (self.registration1_id, self.registration2_id) if r is not None]

    @property
    def has_single_occupant(self):
        return len(self.occupants) == 1

    @property
    def loser_id(self):
        if not self.played or self.is_bye or self.winner_id is None:
            return None
        if self.winner_id == self.registration1_id:
            return self.registration2_id
        return self.registration1_id

    def get_slot(self, slot):
        return self.registration1_id if slot == 1 else self.registration2_id

    def set_slot(self, slot, registration_id):
        if slot == 1:
            self.registration1_id = registration_id
        else:
            self.registration2_id = registration_id

    def __repr__(self):
        return (f"GeneratedMatch(id={self.id}, round={self.round}, "
                f"teams=({self.registration1_id}, {self.registration2_id}), "
                f"winner_to={self.winner_to}, loser_to={self.loser_to}, "
                f"winner_id={self.winner_id}, played={self.played})")

    def to_dict(self):
        return {
            'id': self.id,
            'round': self.round,
            'match_number': self.match_number,
            'bracket_type': self.bracket_type.value if self.bracket_type else None,
            'bracket_position': self.bracket_position,
            'registration1_id': self.registration1_id,
            'registration2_id': self.registration2_id,
            'winner_to': _route_to_data(self.winner_to),
            'loser_to': _route_to_data(self.loser_to),
            'winner_id': self.winner_id,
            'played': self.played,
            'is_bye': self.is_bye,
            'is_third_place': self.is_third_place,
            'standings_applied': list(self.standings_applied),
        }


class SetResult:
    def __init__(self, registration1_score, registration2_score):
        self.registration1_score = registration1_score
        self.registration2_score = registration2_score

    def __repr__(self):
        return f"SetResult({self.registration1_score}-{self.registration2_score})"


class Standings:
    """Aggregate record of one registration across an event."""

    FIELDS = ('matches_won', 'matches_lost', 'sets_won', 'sets_lost', 'points')

    def __init__(self, matches_won=0, matches_lost=0, sets_won=0, sets_lost=0,
                 points=0, version=0, registration_id=None):
        self.registration_id = registration_id
        self.matches_won = matches_won
        self.matches_lost = matches_lost
        self.sets_won = sets_won
        self.sets_lost = sets_lost
        self.points = points
        self.version = version

    @property
    def set_diff(self):
        return self.sets_won - self.sets_lost

    def __eq__(self, other):
        if not isinstance(other, Standings):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Standings(registration_id={self.registration_id}, points={self.points}, "
                f"matches={self.matches_won}-{self.matches_lost}, "
                f"sets={self.sets_won}-{self.sets_lost}, version={self.version})")

    def to_dict(self):
        data = {field: getattr(self, field) for field in self.FIELDS}
        data['version'] = self.version
        if self.registration_id is not None:
            data['registration_id'] = self.registration_id
        return data

    @classmethod
    def from_dict(cls, data, registration_id=None):
        data = data or {}
        return cls(
            matches_won=data.get('matches_won', 0),
            matches_lost=data.get('matches_lost', 0),
            sets_won=data.get('sets_won', 0),
            sets_lost=data.get('sets_lost', 0),
            points=data.get('points', 0),
            version=data.get('version', 0),
            registration_id=data.get('registration_id', registration_id),
        )
