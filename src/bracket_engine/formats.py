"""
Event formats and the round-robin (circle method) scheduler.
"""
from typing import List, Optional, Tuple

from .errors import InvalidInputError

SINGLE_ELIMINATION = 'single-elimination'
DOUBLE_ELIMINATION = 'double-elimination'
MODIFIED_DOUBLE_ELIMINATION = 'modified-double-elimination'
GROUPS = 'groups'

ELIMINATION_FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION, MODIFIED_DOUBLE_ELIMINATION)
SUPPORTED_FORMATS = ELIMINATION_FORMATS + (GROUPS,)

# Placeholder opponent added when the participant count is odd
BYE = None


def is_single_elimination_format(event_format: str) -> bool:
    return event_format == SINGLE_ELIMINATION


def is_double_elimination_format(event_format: str) -> bool:
    return event_format in (DOUBLE_ELIMINATION, MODIFIED_DOUBLE_ELIMINATION)


def is_groups_format(event_format: str) -> bool:
    return event_format == GROUPS


def _circle_rounds(participants: List) -> List[List[Tuple]]:
    """All pairings per round, including the ones against BYE."""
    if not participants:
        raise InvalidInputError("Round robin needs at least one participant")
    if any(p is BYE for p in participants):
        raise InvalidInputError("Round robin participants must not be None")

    players = list(participants)
    if len(players) % 2 == 1:
        players.append(BYE)
    num_players = len(players)

    rounds = []
    for j in range(num_players - 1):
        round_pairs = []
        for i in range(num_players // 2):
            home, away = players[i], players[num_players - 1 - i]
            # Alternate the anchor's side so home/away counts stay balanced
            if i == 0 and j % 2 == 1:
                home, away = away, home
            round_pairs.append((home, away))
        rounds.append(round_pairs)
        # Index 0 stays fixed; everything else rotates one step
        players.insert(1, players.pop())
    return rounds


def round_robin(participants: List) -> List[List[Tuple]]:
    """
    Schedule every participant against every other exactly once.

    Returns one list of (home, away) pairs per round. With an odd number of
    participants each round leaves one of them without an opponent (a bye)
    and there are as many rounds as participants.
    """
    return [
        [pair for pair in round_pairs if BYE not in pair]
        for round_pairs in _circle_rounds(participants)
    ]


def round_robin_byes(participants: List) -> List[Optional[object]]:
    """The participant sitting out each round (None for every round when the count is even)."""
    byes = []
    for round_pairs in _circle_rounds(participants):
        resting = None
        for home, away in round_pairs:
            if home is BYE:
                resting = away
            elif away is BYE:
                resting = home
        byes.append(resting)
    return byes
